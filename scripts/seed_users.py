"""Seed an admin account plus a demo donor, a verified NGO and sample listings.

    DAANSETU_USE_MONGO=1 python scripts/seed_users.py
"""
import asyncio
import logging
import os

from daansetu.core.config import get_settings
from daansetu.core.events import ChangeFeed
from daansetu.core.log import configure_logging
from daansetu.core.security import hash_password
from daansetu.main import build_repo
from daansetu.schemas import DonationIn, LatLng, RequestIn
from daansetu.services.documents import utcnow
from daansetu.services.donations import create_donation
from daansetu.services.requests import create_request
from daansetu.services.users import create_user_profile, get_user_profile

logger = logging.getLogger("seed")

ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
DEMO_PASSWORD = os.getenv("SEED_DEMO_PASSWORD", "demo123")


async def ensure_account(repo, uid: str, email: str, password: str, name: str, role: str):
    if await repo.get("credentials", uid):
        logger.info("%s already seeded", email)
        return
    await repo.insert("credentials", {
        "id": uid, "email": email, "password_hash": hash_password(password),
        "provider": "password", "created_at": utcnow(),
    })
    await create_user_profile(repo, uid, email, name, role)
    logger.info("seeded %s (%s)", email, role)


async def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    repo = build_repo(settings, ChangeFeed())
    await repo.ensure_indexes()

    await ensure_account(repo, "admin1", "admin@daansetu.org", ADMIN_PASSWORD, "Platform Admin", "admin")
    await ensure_account(repo, "donor1", "donor1@daansetu.org", DEMO_PASSWORD, "Test Donor", "donor")
    await ensure_account(repo, "ngo1", "ngo1@daansetu.org", DEMO_PASSWORD, "Test NGO", "ngo")
    await repo.update("users", "ngo1", {
        "verification_status": "verified", "is_verified": True, "verified_at": utcnow(),
        "registration_number": "NGO-0001",
    })

    if await repo.count("donations", {"donor_id": "donor1"}) == 0:
        donor = await get_user_profile(repo, "donor1")
        await create_donation(repo, donor, DonationIn(
            title="Rice bags", description="10kg bags, sealed", category="food", quantity=5,
            address="MG Road, Bengaluru", location=LatLng(lat=12.9756, lng=77.6050),
        ))
        await create_donation(repo, donor, DonationIn(
            title="Winter jackets", description="Adult sizes", category="clothes", quantity=12,
            address="Indiranagar, Bengaluru", location=LatLng(lat=12.9784, lng=77.6408),
        ))
    if await repo.count("requests", {"ngo_id": "ngo1"}) == 0:
        ngo = await get_user_profile(repo, "ngo1")
        await create_request(repo, ngo, RequestIn(
            title="School books", description="Grade 3-5 textbooks", category="books", quantity=40,
            beneficiary_count=40, urgency="high", address="Koramangala, Bengaluru",
            location=LatLng(lat=12.9352, lng=77.6245),
        ))
    logger.info("seed complete")
    await repo.close()


if __name__ == "__main__":
    asyncio.run(main())
