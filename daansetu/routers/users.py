from typing import Union

from fastapi import APIRouter, Depends

from daansetu.core.security import get_current_user
from daansetu.deps import get_repo
from daansetu.schemas import (
    AdminDashboard,
    NgoDashboard,
    DonorDashboard,
    ProfileUpdate,
    PublicProfile,
    UserProfile,
)
from daansetu.services import stats as stats_service
from daansetu.services import users as user_service

router = APIRouter(tags=["users"])


@router.get("/users/me", response_model=UserProfile)
async def my_profile(user: UserProfile = Depends(get_current_user)):
    return user


@router.patch("/users/me", response_model=UserProfile)
async def update_my_profile(body: ProfileUpdate, user: UserProfile = Depends(get_current_user),
                            repo=Depends(get_repo)):
    return await user_service.update_user_profile(repo, user, body)


@router.get("/users/{uid}", response_model=PublicProfile)
async def public_profile(uid: str, _: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await user_service.get_public_profile(repo, uid)


# role-routed: each role gets its own dashboard payload
@router.get("/dashboard", response_model=Union[AdminDashboard, NgoDashboard, DonorDashboard])
async def dashboard(user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await stats_service.compute_overview(repo, user)
