import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterable, List, TypeVar

from daansetu.core.errors import SubscriptionTimeoutError
from daansetu.core.events import ChangeFeed
from daansetu.schemas import Donation, Notification, UserProfile
from daansetu.services import donations as donation_service
from daansetu.services import notifications as notification_service

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def watch(feed: ChangeFeed, collections: Iterable[str],
                fetch: Callable[[], Awaitable[T]]) -> AsyncIterator[T]:
    """
    Yield ``fetch()`` once, then again after every committed write to one
    of ``collections``. Changes that pile up while a snapshot is being
    built are coalesced into a single re-query.
    """
    watched = set(collections)
    async with feed.subscribe() as changes:
        yield await fetch()
        while True:
            change = await changes.get()
            relevant = change.collection in watched
            while not changes.empty():
                if changes.get_nowait().collection in watched:
                    relevant = True
            if relevant:
                yield await fetch()


async def first_snapshot(stream: AsyncIterator[T], timeout: float) -> T:
    try:
        return await asyncio.wait_for(stream.__anext__(), timeout)
    except asyncio.TimeoutError:
        logger.warning("subscription produced no snapshot within %.1fs", timeout)
        raise SubscriptionTimeoutError("Loading took too long. Please refresh the page.")


def watch_user_donations(repo, feed: ChangeFeed, user: UserProfile) -> AsyncIterator[List[Donation]]:
    return watch(feed, ["donations"], lambda: donation_service.list_donor_donations(repo, user.id))


def watch_claimed_donations(repo, feed: ChangeFeed, user: UserProfile) -> AsyncIterator[List[Donation]]:
    return watch(feed, ["donations"], lambda: donation_service.list_claimed_donations(repo, user.id))


def watch_notifications(repo, feed: ChangeFeed, user: UserProfile,
                        limit: int = 50) -> AsyncIterator[List[Notification]]:
    return watch(feed, ["notifications"], lambda: notification_service.list_for_user(repo, user, limit))
