from typing import List

from fastapi import APIRouter, Depends, Query

from daansetu.core.security import get_current_user
from daansetu.deps import get_repo
from daansetu.schemas import Notification, UnreadCount, UserProfile
from daansetu.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
async def list_mine(limit: int = Query(20, ge=1, le=100), user: UserProfile = Depends(get_current_user),
                    repo=Depends(get_repo)):
    return await notification_service.list_for_user(repo, user, limit)


@router.get("/unread-count", response_model=UnreadCount)
async def unread(user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return {"unread": await notification_service.unread_count(repo, user)}


@router.post("/read-all")
async def read_all(user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return {"updated": await notification_service.mark_all_read(repo, user)}


@router.post("/{notification_id}/read", response_model=Notification)
async def read(notification_id: str, user: UserProfile = Depends(get_current_user), repo=Depends(get_repo)):
    return await notification_service.mark_read(repo, notification_id, user)
