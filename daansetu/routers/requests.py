# daansetu/routers/requests.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from daansetu.core.config import Settings
from daansetu.core.security import get_current_user, require_roles
from daansetu.deps import get_app_settings, get_repo
from daansetu.schemas import (
    DonationRequest,
    RequestIn,
    RequestStats,
    RequestStatus,
    RequestUpdate,
    UserProfile,
)
from daansetu.services import requests as request_service

router = APIRouter(prefix="/requests", tags=["requests"])


@router.post("", response_model=DonationRequest, status_code=status.HTTP_201_CREATED)
async def create(body: RequestIn, user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await request_service.create_request(repo, user, body)


@router.get("", response_model=List[DonationRequest])
async def list_all(status_q: Optional[RequestStatus] = Query(None, alias="status"),
                   _: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await request_service.list_requests(repo, status_q)


@router.get("/mine", response_model=List[DonationRequest])
async def mine(status_q: Optional[RequestStatus] = Query(None, alias="status"),
               user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await request_service.list_ngo_requests(repo, user.id, status_q)


@router.get("/stats", response_model=RequestStats)
async def stats(user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await request_service.ngo_request_stats(repo, user.id)


@router.get("/nearby", response_model=List[DonationRequest])
async def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0),
    _: UserProfile = Depends(get_current_user),
    repo=Depends(get_repo),
    settings: Settings = Depends(get_app_settings),
):
    radius = radius_km if radius_km is not None else settings.nearby_requests_radius_km
    return await request_service.nearby_requests(repo, lat, lng, radius)


@router.get("/{request_id}", response_model=DonationRequest)
async def detail(request_id: str, _: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await request_service.get_request(repo, request_id)


@router.patch("/{request_id}", response_model=DonationRequest)
async def edit(request_id: str, body: RequestUpdate, user: UserProfile = Depends(require_roles("ngo", "admin")),
               repo=Depends(get_repo)):
    return await request_service.update_request(repo, request_id, user, body)


@router.post("/{request_id}/fulfill", response_model=DonationRequest)
async def fulfill(request_id: str, user: UserProfile = Depends(require_roles("donor")), repo=Depends(get_repo)):
    return await request_service.fulfill_request(repo, request_id, user)


@router.post("/{request_id}/close", response_model=DonationRequest)
async def close(request_id: str, user: UserProfile = Depends(require_roles("ngo", "admin")),
                repo=Depends(get_repo)):
    return await request_service.close_request(repo, request_id, user)
