import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Change:
    collection: str
    doc_id: str
    op: str  # insert | update | delete
    at: datetime


class ChangeFeed:
    """In-process fan-out of store writes to live subscribers.

    Every write the store commits is published here; each subscriber owns
    an unbounded queue, so a slow socket never blocks a writer.
    """

    def __init__(self):
        self._subscribers: Set[asyncio.Queue] = set()

    def publish(self, collection: str, doc_id: str, op: str) -> None:
        change = Change(collection, doc_id, op, datetime.now(timezone.utc))
        for q in list(self._subscribers):
            q.put_nowait(change)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue]:
        q: asyncio.Queue = asyncio.Queue()
        self._subscribers.add(q)
        logger.debug("subscriber added (%d active)", len(self._subscribers))
        try:
            yield q
        finally:
            self._subscribers.discard(q)
            logger.debug("subscriber removed (%d active)", len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
