import logging
from typing import List, Optional

from daansetu.core.errors import InvalidTransitionError, NotFoundError, PermissionDeniedError
from daansetu.core.geo import with_geo
from daansetu.core.states import DONATION_TRANSITIONS
from daansetu.schemas import Donation, DonationIn, DonationUpdate, UserProfile
from daansetu.services.documents import check_update, load, parse, parse_many, utcnow
from daansetu.services.lifecycle import transition
from daansetu.services.matching import find_nearby
from daansetu.services.notifications import notify

logger = logging.getLogger(__name__)

COLLECTION = "donations"

NEWEST_FIRST = [("created_at", -1)]

DELETABLE = ["available", "cancelled"]


def _owns(donation: Donation, user: UserProfile) -> bool:
    return user.role == "admin" or donation.donor_id == user.id


async def create_donation(repo, donor: UserProfile, data: DonationIn) -> Donation:
    now = utcnow()
    doc = {
        **data.model_dump(),
        "donor_id": donor.id,
        "donor_name": donor.display_name,
        "status": "available",
        "created_at": now,
        "updated_at": now,
    }
    saved = parse(Donation, await repo.insert(COLLECTION, with_geo(doc)))
    logger.info("donation %s created by %s", saved.id, donor.id)
    await notify(
        repo, "donationCreated",
        title="New donation available",
        message=f"{donor.display_name} listed {saved.title} ({saved.category}).",
        target_user_role="ngo",
        metadata={"donationId": saved.id},
    )
    return saved


async def get_donation(repo, donation_id: str) -> Donation:
    return await load(repo, COLLECTION, Donation, donation_id, "Donation")


async def list_donations(repo, status: Optional[str] = None) -> List[Donation]:
    filters = {"status": status} if status else None
    return parse_many(Donation, await repo.find(COLLECTION, filters, sort=NEWEST_FIRST))


async def list_donor_donations(repo, donor_id: str) -> List[Donation]:
    return parse_many(Donation, await repo.find(COLLECTION, {"donor_id": donor_id}, sort=NEWEST_FIRST))


async def list_claimed_donations(repo, ngo_id: str) -> List[Donation]:
    docs = await repo.find(
        COLLECTION,
        {"claimed_by": ngo_id, "status": {"$in": ["claimed", "delivered"]}},
        sort=[("claimed_at", -1)],
    )
    return parse_many(Donation, docs)


async def nearby_donations(repo, lat: float, lng: float, radius_km: float) -> List[Donation]:
    return await find_nearby(repo, COLLECTION, Donation, "available", lat, lng, radius_km)


async def update_donation(repo, donation_id: str, user: UserProfile, data: DonationUpdate) -> Donation:
    donation = await get_donation(repo, donation_id)
    if not _owns(donation, user):
        raise PermissionDeniedError("Only the donor can edit this donation")
    fields = data.model_dump(exclude_unset=True)
    if "location" in fields:
        fields = with_geo(fields)
    fields["updated_at"] = utcnow()
    check_update(Donation, donation, fields)
    # edits only while nobody has claimed it
    updated = await repo.update_if(COLLECTION, donation_id, {"status": "available"}, fields)
    if updated is None:
        raise InvalidTransitionError("Only available donations can be edited")
    return parse(Donation, updated)


async def delete_donation(repo, donation_id: str, user: UserProfile) -> None:
    donation = await get_donation(repo, donation_id)
    if not _owns(donation, user):
        raise PermissionDeniedError("Only the donor can delete this donation")
    # the status may have moved since the read above
    if not await repo.delete_if(COLLECTION, donation_id, {"status": {"$in": DELETABLE}}):
        if await repo.get(COLLECTION, donation_id) is None:
            raise NotFoundError("Donation not found")
        raise InvalidTransitionError("Claimed or delivered donations cannot be deleted")
    logger.info("donation %s deleted by %s", donation_id, user.id)


async def claim_donation(repo, donation_id: str, ngo: UserProfile) -> Donation:
    donation = await transition(
        repo, COLLECTION, Donation, donation_id, DONATION_TRANSITIONS, "claimed",
        {"claimed_by": ngo.id, "claimed_by_name": ngo.display_name, "claimed_at": utcnow()},
        refusal="Donation is not available for claiming",
        label="Donation",
    )
    await notify(
        repo, "donationClaimed",
        title="Your donation was claimed",
        message=f"{ngo.display_name} claimed {donation.title}.",
        user_id=donation.donor_id,
        metadata={"donationId": donation.id, "ngoId": ngo.id},
    )
    return donation


async def deliver_donation(repo, donation_id: str, user: UserProfile) -> Donation:
    donation = await get_donation(repo, donation_id)
    if not (_owns(donation, user) or donation.claimed_by == user.id):
        raise PermissionDeniedError("Only the donor or the claiming NGO can mark this delivered")
    return await transition(
        repo, COLLECTION, Donation, donation_id, DONATION_TRANSITIONS, "delivered",
        {"delivered_at": utcnow()},
        refusal="Only claimed donations can be marked delivered",
        label="Donation",
    )


async def cancel_donation(repo, donation_id: str, user: UserProfile) -> Donation:
    donation = await get_donation(repo, donation_id)
    if not _owns(donation, user):
        raise PermissionDeniedError("Only the donor can cancel this donation")
    return await transition(
        repo, COLLECTION, Donation, donation_id, DONATION_TRANSITIONS, "cancelled",
        {"cancelled_at": utcnow()},
        refusal="Donation can no longer be cancelled",
        label="Donation",
    )
