# daansetu/repos/inmemory.py
import asyncio
import copy
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from daansetu.core.events import ChangeFeed
from daansetu.repos.common import BatchOp, Sort, matches, sort_docs


def _id() -> str:
    return uuid.uuid4().hex


class InMemoryRepo:
    """Process-local document store for development and tests.

    A single lock serialises writes, which makes ``update_if`` and
    ``commit_batch`` atomic with respect to each other.
    """

    def __init__(self, feed: Optional[ChangeFeed] = None):
        self._data: Dict[str, Dict[str, dict]] = defaultdict(dict)
        self._lock = asyncio.Lock()
        self.feed = feed

    def _publish(self, collection: str, doc_id: str, op: str) -> None:
        if self.feed is not None:
            self.feed.publish(collection, doc_id, op)

    async def ensure_indexes(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # Writes
    async def insert(self, collection: str, doc: dict) -> dict:
        doc = copy.deepcopy(doc)
        doc_id = doc.pop("id", None) or _id()
        async with self._lock:
            if doc_id in self._data[collection]:
                raise KeyError(f"{collection}/{doc_id} exists")
            self._data[collection][doc_id] = doc
        self._publish(collection, doc_id, "insert")
        return {"id": doc_id, **copy.deepcopy(doc)}

    async def update(self, collection: str, doc_id: str, fields: dict) -> Optional[dict]:
        return await self.update_if(collection, doc_id, None, fields)

    async def update_if(self, collection: str, doc_id: str, expected: Optional[dict],
                        fields: dict) -> Optional[dict]:
        async with self._lock:
            doc = self._data[collection].get(doc_id)
            if doc is None or not matches(doc, expected):
                return None
            doc.update(copy.deepcopy(fields))
            out = {"id": doc_id, **copy.deepcopy(doc)}
        self._publish(collection, doc_id, "update")
        return out

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self.delete_if(collection, doc_id, None)

    async def delete_if(self, collection: str, doc_id: str, expected: Optional[dict]) -> bool:
        async with self._lock:
            doc = self._data[collection].get(doc_id)
            if doc is None or not matches(doc, expected):
                return False
            del self._data[collection][doc_id]
        self._publish(collection, doc_id, "delete")
        return True

    async def commit_batch(self, ops: List[BatchOp]) -> bool:
        async with self._lock:
            for op in ops:
                doc = self._data[op.collection].get(op.doc_id)
                if doc is None or not matches(doc, op.expected):
                    return False
            for op in ops:
                self._data[op.collection][op.doc_id].update(copy.deepcopy(op.fields))
        for op in ops:
            self._publish(op.collection, op.doc_id, "update")
        return True

    # Reads
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._data[collection].get(doc_id)
        return {"id": doc_id, **copy.deepcopy(doc)} if doc is not None else None

    async def find(self, collection: str, filters: Optional[dict] = None,
                   sort: Optional[Sort] = None, limit: Optional[int] = None) -> List[dict]:
        items = [
            {"id": k, **copy.deepcopy(v)}
            for k, v in self._data[collection].items()
            if matches(v, filters)
        ]
        items = sort_docs(items, sort)
        return items[:limit] if limit else items

    async def find_one(self, collection: str, filters: dict) -> Optional[dict]:
        found = await self.find(collection, filters, limit=1)
        return found[0] if found else None

    async def count(self, collection: str, filters: Optional[dict] = None) -> int:
        return sum(1 for v in self._data[collection].values() if matches(v, filters))

    async def find_near(self, collection: str, filters: Optional[dict], lat: float, lng: float,
                        radius_km: float, sort: Optional[Sort] = None) -> List[dict]:
        # no spatial index: every candidate goes back to the caller's distance filter
        return await self.find(collection, filters, sort=sort)
