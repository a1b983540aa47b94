import logging
from typing import List, Optional

from daansetu.core.errors import InvalidTransitionError, PermissionDeniedError
from daansetu.core.geo import with_geo
from daansetu.core.states import REQUEST_TRANSITIONS
from daansetu.schemas import DonationRequest, RequestIn, RequestStats, RequestUpdate, UserProfile
from daansetu.services.documents import check_update, load, parse, parse_many, utcnow
from daansetu.services.lifecycle import transition
from daansetu.services.matching import find_nearby
from daansetu.services.notifications import notify

logger = logging.getLogger(__name__)

COLLECTION = "requests"

NEWEST_FIRST = [("created_at", -1)]


def _owns(request: DonationRequest, user: UserProfile) -> bool:
    return user.role == "admin" or request.ngo_id == user.id


async def create_request(repo, ngo: UserProfile, data: RequestIn) -> DonationRequest:
    now = utcnow()
    doc = {
        **data.model_dump(),
        "ngo_id": ngo.id,
        "ngo_name": ngo.display_name,
        "status": "open",
        "created_at": now,
        "updated_at": now,
    }
    saved = parse(DonationRequest, await repo.insert(COLLECTION, with_geo(doc)))
    logger.info("request %s created by %s", saved.id, ngo.id)
    await notify(
        repo, "requestCreated",
        title="New request from an NGO",
        message=f"{ngo.display_name} needs {saved.quantity} x {saved.title} ({saved.urgency} urgency).",
        target_user_role="donor",
        metadata={"requestId": saved.id},
    )
    return saved


async def get_request(repo, request_id: str) -> DonationRequest:
    return await load(repo, COLLECTION, DonationRequest, request_id, "Request")


async def list_requests(repo, status: Optional[str] = None) -> List[DonationRequest]:
    filters = {"status": status} if status else None
    return parse_many(DonationRequest, await repo.find(COLLECTION, filters, sort=NEWEST_FIRST))


async def list_ngo_requests(repo, ngo_id: str, status: Optional[str] = None) -> List[DonationRequest]:
    filters = {"ngo_id": ngo_id}
    if status:
        filters["status"] = status
    return parse_many(DonationRequest, await repo.find(COLLECTION, filters, sort=NEWEST_FIRST))


async def nearby_requests(repo, lat: float, lng: float, radius_km: float) -> List[DonationRequest]:
    return await find_nearby(repo, COLLECTION, DonationRequest, "open", lat, lng, radius_km)


async def ngo_request_stats(repo, ngo_id: str) -> RequestStats:
    return RequestStats(
        open=await repo.count(COLLECTION, {"ngo_id": ngo_id, "status": "open"}),
        fulfilled=await repo.count(COLLECTION, {"ngo_id": ngo_id, "status": "fulfilled"}),
    )


async def update_request(repo, request_id: str, user: UserProfile, data: RequestUpdate) -> DonationRequest:
    request = await get_request(repo, request_id)
    if not _owns(request, user):
        raise PermissionDeniedError("Only the requesting NGO can edit this request")
    fields = data.model_dump(exclude_unset=True)
    if "location" in fields:
        fields = with_geo(fields)
    fields["updated_at"] = utcnow()
    check_update(DonationRequest, request, fields)
    updated = await repo.update_if(COLLECTION, request_id, {"status": "open"}, fields)
    if updated is None:
        raise InvalidTransitionError("Only open requests can be edited")
    return parse(DonationRequest, updated)


async def fulfill_request(repo, request_id: str, donor: UserProfile) -> DonationRequest:
    request = await transition(
        repo, COLLECTION, DonationRequest, request_id, REQUEST_TRANSITIONS, "fulfilled",
        {"fulfilled_by_id": donor.id, "fulfilled_by_name": donor.display_name, "fulfilled_at": utcnow()},
        refusal="This request is no longer open",
        label="Request",
    )
    await notify(
        repo, "requestFulfilled",
        title="Your request was fulfilled",
        message=f"{donor.display_name} fulfilled {request.title}.",
        user_id=request.ngo_id,
        metadata={"requestId": request.id, "donorId": donor.id},
    )
    return request


async def close_request(repo, request_id: str, user: UserProfile) -> DonationRequest:
    request = await get_request(repo, request_id)
    if not _owns(request, user):
        raise PermissionDeniedError("Only the requesting NGO can close this request")
    return await transition(
        repo, COLLECTION, DonationRequest, request_id, REQUEST_TRANSITIONS, "closed",
        {"closed_at": utcnow()},
        refusal="This request is no longer open",
        label="Request",
    )
