"""NGO verification workflow.

Submission flips the profile to ``pending`` and files a request for admin
review. An admin decision updates the request and the profile in one
atomic batch, guarded on the request still being pending; the NGO is
told afterwards, on a best-effort basis.
"""
import logging
from typing import List

from daansetu.core.errors import ConflictError, InvalidTransitionError, NotFoundError, PermissionDeniedError
from daansetu.core.states import VERIFICATION_TRANSITIONS, can_transition
from daansetu.repos.common import BatchOp
from daansetu.schemas import (
    UserProfile,
    VerificationIn,
    VerificationRequest,
    VerificationStatusOut,
)
from daansetu.services.documents import load, parse, parse_many, utcnow
from daansetu.services.notifications import notify
from daansetu.services.users import get_user_profile

logger = logging.getLogger(__name__)

COLLECTION = "verificationRequests"


async def submit_verification(repo, ngo: UserProfile, data: VerificationIn) -> VerificationRequest:
    if ngo.role != "ngo":
        raise PermissionDeniedError("Only NGO accounts can request verification")
    if not can_transition(VERIFICATION_TRANSITIONS, ngo.verification_status, "pending", ngo.role):
        raise ConflictError(f"Verification is already {ngo.verification_status}")

    submitted = data.model_dump(exclude_none=True)
    now = utcnow()
    request = parse(VerificationRequest, await repo.insert(COLLECTION, {
        "uid": ngo.id,
        "status": "pending",
        "submitted_at": now,
        **submitted,
    }))
    profile_fields = {
        "verification_status": "pending",
        "verification_submitted_at": now,
        "verification_data": submitted,
        "registration_number": data.registration_number,
        "registration_document": data.registration_document,
        "rejection_reason": None,
        "updated_at": now,
    }
    for key in ("tax_exemption_document", "website", "focus_areas", "social_links"):
        if key in submitted:
            profile_fields[key] = submitted[key]
    await repo.update("users", ngo.id, profile_fields)
    logger.info("verification %s submitted by %s", request.id, ngo.id)

    await notify(
        repo, "verificationRequest",
        title="New NGO Verification Request",
        message="A new NGO verification request has been submitted and needs review.",
        target_user_role="admin",
        metadata={"ngoId": ngo.id, "requestId": request.id},
    )
    return request


async def get_verification_status(repo, uid: str) -> VerificationStatusOut:
    profile = await get_user_profile(repo, uid)
    return VerificationStatusOut(
        verification_status=profile.verification_status,
        is_verified=profile.is_verified,
        rejection_reason=profile.rejection_reason,
    )


async def get_verification_request(repo, request_id: str) -> VerificationRequest:
    return await load(repo, COLLECTION, VerificationRequest, request_id, "Verification request")


async def list_pending_verifications(repo, limit: int = 10) -> List[VerificationRequest]:
    docs = await repo.find(COLLECTION, {"status": "pending"}, sort=[("submitted_at", -1)], limit=limit)
    out = []
    for req in parse_many(VerificationRequest, docs):
        user = await repo.get("users", req.uid)
        if user:
            req.ngo_name = user.get("display_name")
            req.ngo_email = user.get("email")
        out.append(req)
    return out


async def _decide(repo, request_id: str, request_fields: dict, profile_fields: dict) -> VerificationRequest:
    request = await get_verification_request(repo, request_id)
    if request.status != "pending":
        raise InvalidTransitionError(f"Verification request is already {request.status}")
    committed = await repo.commit_batch([
        BatchOp(COLLECTION, request_id, request_fields, expected={"status": "pending"}),
        BatchOp("users", request.uid, profile_fields),
    ])
    if not committed:
        if await repo.get("users", request.uid) is None:
            raise NotFoundError("NGO profile not found")
        raise InvalidTransitionError("Verification request was already decided")
    return await get_verification_request(repo, request_id)


async def approve_verification(repo, request_id: str, admin: UserProfile) -> VerificationRequest:
    now = utcnow()
    request = await _decide(
        repo, request_id,
        {"status": "approved", "approved_at": now, "approved_by": admin.id},
        {"verification_status": "verified", "verified_at": now, "is_verified": True,
         "rejection_reason": None, "updated_at": now},
    )
    logger.info("verification %s approved by %s", request_id, admin.id)
    await notify(
        repo, "verificationUpdated",
        title="Verification Approved",
        message="Congratulations! Your NGO verification has been approved. "
                "You now have full access to all platform features.",
        user_id=request.uid,
    )
    return request


async def reject_verification(repo, request_id: str, admin: UserProfile, reason: str) -> VerificationRequest:
    now = utcnow()
    request = await _decide(
        repo, request_id,
        {"status": "rejected", "rejected_at": now, "rejected_by": admin.id, "rejection_reason": reason},
        {"verification_status": "rejected", "is_verified": False,
         "rejection_reason": reason, "updated_at": now},
    )
    logger.info("verification %s rejected by %s", request_id, admin.id)
    await notify(
        repo, "verificationUpdated",
        title="Verification Rejected",
        message=f"Your NGO verification has been rejected. Reason: {reason}",
        user_id=request.uid,
    )
    return request
