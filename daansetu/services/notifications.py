import logging
from typing import Any, Dict, List, Optional

from daansetu.core.errors import PermissionDeniedError
from daansetu.schemas import Notification, UserProfile
from daansetu.services.documents import load, parse, parse_many, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "notifications"


async def create_notification(
    repo,
    type_: str,
    title: str,
    message: str,
    user_id: Optional[str] = None,
    target_user_role: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Notification:
    if not user_id and not target_user_role:
        raise ValueError("notification needs a user_id or a target_user_role")
    doc = {
        "user_id": user_id,
        "target_user_role": target_user_role,
        "type": type_,
        "title": title,
        "message": message,
        "is_read": False,
        "metadata": metadata or {},
        "created_at": utcnow(),
    }
    return parse(Notification, await repo.insert(COLLECTION, doc))


async def notify(repo, type_: str, title: str, message: str, **kwargs) -> Optional[Notification]:
    """Best-effort notification: a failure is logged and never reaches the caller."""
    try:
        return await create_notification(repo, type_, title, message, **kwargs)
    except Exception:
        logger.exception("failed to write %s notification", type_)
        return None


async def list_for_user(repo, user: UserProfile, limit: int = 20) -> List[Notification]:
    """Notifications addressed to the user or broadcast to their role, newest first."""
    sort = [("created_at", -1)]
    own = await repo.find(COLLECTION, {"user_id": user.id}, sort=sort, limit=limit)
    broadcast = await repo.find(COLLECTION, {"target_user_role": user.role}, sort=sort, limit=limit)
    merged = parse_many(Notification, own + broadcast)
    merged.sort(key=lambda n: n.created_at, reverse=True)
    return merged[:limit]


async def unread_count(repo, user: UserProfile) -> int:
    own = await repo.count(COLLECTION, {"user_id": user.id, "is_read": False})
    broadcast = await repo.count(COLLECTION, {"target_user_role": user.role, "is_read": False})
    return own + broadcast


def _addressed_to(n: Notification, user: UserProfile) -> bool:
    return n.user_id == user.id or (n.target_user_role is not None and n.target_user_role == user.role)


async def mark_read(repo, notification_id: str, user: UserProfile) -> Notification:
    n = await load(repo, COLLECTION, Notification, notification_id)
    if not _addressed_to(n, user):
        raise PermissionDeniedError("Notification belongs to another user")
    return parse(Notification, await repo.update(COLLECTION, notification_id, {"is_read": True}))


async def mark_all_read(repo, user: UserProfile) -> int:
    unread = []
    unread += await repo.find(COLLECTION, {"user_id": user.id, "is_read": False})
    unread += await repo.find(COLLECTION, {"target_user_role": user.role, "is_read": False})
    for doc in unread:
        await repo.update(COLLECTION, doc["id"], {"is_read": True})
    return len(unread)
