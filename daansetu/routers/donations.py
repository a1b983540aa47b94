from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from daansetu.core.config import Settings
from daansetu.core.security import get_current_user, require_roles, require_verified_ngo
from daansetu.deps import get_app_settings, get_repo
from daansetu.schemas import Donation, DonationIn, DonationStatus, DonationUpdate, UserProfile
from daansetu.services import donations as donation_service

router = APIRouter(prefix="/donations", tags=["donations"])


@router.post("", response_model=Donation, status_code=status.HTTP_201_CREATED)
async def create(body: DonationIn, user: UserProfile = Depends(require_roles("donor")),
                 repo=Depends(get_repo)):
    return await donation_service.create_donation(repo, user, body)


@router.get("", response_model=List[Donation])
async def list_all(status_q: Optional[DonationStatus] = Query(None, alias="status"),
                   _: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await donation_service.list_donations(repo, status_q)


@router.get("/mine", response_model=List[Donation])
async def mine(user: UserProfile = Depends(require_roles("donor")), repo=Depends(get_repo)):
    return await donation_service.list_donor_donations(repo, user.id)


@router.get("/claimed", response_model=List[Donation])
async def claimed(user: UserProfile = Depends(require_roles("ngo")), repo=Depends(get_repo)):
    return await donation_service.list_claimed_donations(repo, user.id)


# browse page: available donations around a point
@router.get("/nearby", response_model=List[Donation])
async def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: Optional[float] = Query(None, gt=0),
    _: UserProfile = Depends(get_current_user),
    repo=Depends(get_repo),
    settings: Settings = Depends(get_app_settings),
):
    radius = radius_km if radius_km is not None else settings.nearby_donations_radius_km
    return await donation_service.nearby_donations(repo, lat, lng, radius)


@router.get("/{donation_id}", response_model=Donation)
async def detail(donation_id: str, _: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await donation_service.get_donation(repo, donation_id)


@router.patch("/{donation_id}", response_model=Donation)
async def edit(donation_id: str, body: DonationUpdate, user: UserProfile = Depends(require_roles("donor", "admin")),
               repo=Depends(get_repo)):
    return await donation_service.update_donation(repo, donation_id, user, body)


@router.delete("/{donation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove(donation_id: str, user: UserProfile = Depends(require_roles("donor", "admin")),
                 repo=Depends(get_repo)):
    await donation_service.delete_donation(repo, donation_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{donation_id}/claim", response_model=Donation)
async def claim(donation_id: str, user: UserProfile = Depends(require_verified_ngo), repo=Depends(get_repo)):
    return await donation_service.claim_donation(repo, donation_id, user)


@router.post("/{donation_id}/deliver", response_model=Donation)
async def deliver(donation_id: str, user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await donation_service.deliver_donation(repo, donation_id, user)


@router.post("/{donation_id}/cancel", response_model=Donation)
async def cancel(donation_id: str, user: UserProfile = Depends(require_roles("donor", "admin")),
                 repo=Depends(get_repo)):
    return await donation_service.cancel_donation(repo, donation_id, user)
