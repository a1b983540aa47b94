from typing import List

from fastapi import APIRouter, Depends, Query, status

from daansetu.core.security import require_roles
from daansetu.deps import get_repo
from daansetu.schemas import (
    RejectIn,
    UserProfile,
    VerificationIn,
    VerificationRequest,
    VerificationStatusOut,
)
from daansetu.services import verification as verification_service

router = APIRouter(tags=["verification"])


# ---------- NGO side ----------
@router.post("/verification", response_model=VerificationRequest, status_code=status.HTTP_201_CREATED)
async def submit(body: VerificationIn, user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await verification_service.submit_verification(repo, user, body)


@router.get("/verification", response_model=VerificationStatusOut)
async def my_status(user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await verification_service.get_verification_status(repo, user.id)


# ---------- Admin review ----------
@router.get("/admin/verifications", response_model=List[VerificationRequest])
async def pending(limit: int = Query(10, ge=1, le=100), _: UserProfile = Depends(require_roles("admin")),
                  repo=Depends(get_repo)):
    return await verification_service.list_pending_verifications(repo, limit)


@router.get("/admin/verifications/{request_id}", response_model=VerificationRequest)
async def detail(request_id: str, _: UserProfile = Depends(require_roles("admin")), repo=Depends(get_repo)):
    return await verification_service.get_verification_request(repo, request_id)


@router.post("/admin/verifications/{request_id}/approve", response_model=VerificationRequest)
async def approve(request_id: str, admin: UserProfile = Depends(require_roles("admin")), repo=Depends(get_repo)):
    return await verification_service.approve_verification(repo, request_id, admin)


@router.post("/admin/verifications/{request_id}/reject", response_model=VerificationRequest)
async def reject(request_id: str, body: RejectIn, admin: UserProfile = Depends(require_roles("admin")),
                 repo=Depends(get_repo)):
    return await verification_service.reject_verification(repo, request_id, admin, body.reason)
