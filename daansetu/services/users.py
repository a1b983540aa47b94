import logging
from typing import Optional

from daansetu.core.geo import with_geo
from daansetu.schemas import ProfileUpdate, PublicProfile, UserProfile
from daansetu.services.documents import check_update, load, parse, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "users"

# NGO-only profile fields
NGO_FIELDS = {"website", "focus_areas", "social_links"}


async def create_user_profile(repo, uid: str, email: str, display_name: str, role: str,
                              photo_url: Optional[str] = None) -> UserProfile:
    now = utcnow()
    doc = {
        "id": uid,
        "email": email,
        "display_name": display_name,
        "role": role,
        "photo_url": photo_url,
        # NGOs earn this through admin verification
        "is_verified": role != "ngo",
        "created_at": now,
        "updated_at": now,
    }
    profile = parse(UserProfile, await repo.insert(COLLECTION, doc))
    logger.info("profile %s created (%s)", uid, role)
    return profile


async def get_user_profile(repo, uid: str) -> UserProfile:
    return await load(repo, COLLECTION, UserProfile, uid, "User")


async def get_public_profile(repo, uid: str) -> PublicProfile:
    profile = await get_user_profile(repo, uid)
    return PublicProfile.model_validate(profile.model_dump())


async def update_user_profile(repo, user: UserProfile, data: ProfileUpdate) -> UserProfile:
    fields = data.model_dump(exclude_unset=True)
    if user.role != "ngo":
        fields = {k: v for k, v in fields.items() if k not in NGO_FIELDS}
    if "location" in fields:
        fields = with_geo(fields)
        fields.pop("geo", None)
    fields["updated_at"] = utcnow()
    check_update(UserProfile, user, fields)
    return parse(UserProfile, await repo.update(COLLECTION, user.id, fields))
