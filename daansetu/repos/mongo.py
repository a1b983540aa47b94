# daansetu/repos/mongo.py
import logging
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument

from daansetu.core.events import ChangeFeed
from daansetu.core.geo import radius_in_radians
from daansetu.repos.common import BatchOp, Sort

logger = logging.getLogger(__name__)

# (collection, keys, name, options)
INDEXES = [
    ("credentials",          [("email", ASCENDING)],        "email_1",         {"unique": True}),
    ("users",                [("role", ASCENDING)],         "role_1",          {}),
    ("donations",            [("status", ASCENDING)],       "status_1",        {}),
    ("donations",            [("donor_id", ASCENDING)],     "donor_id_1",      {}),
    ("donations",            [("claimed_by", ASCENDING)],   "claimed_by_1",    {}),
    ("donations",            [("geo", GEOSPHERE)],          "geo_2dsphere",    {}),
    ("requests",             [("status", ASCENDING)],       "status_1",        {}),
    ("requests",             [("ngo_id", ASCENDING)],       "ngo_id_1",        {}),
    ("requests",             [("geo", GEOSPHERE)],          "geo_2dsphere",    {}),
    ("notifications",        [("user_id", ASCENDING), ("created_at", DESCENDING)],
                                                            "user_id_1_created_at_-1", {}),
    ("notifications",        [("target_user_role", ASCENDING)], "target_user_role_1", {}),
    ("verificationRequests", [("status", ASCENDING)],       "status_1",        {}),
    ("reports",              [("status", ASCENDING)],       "status_1",        {}),
]


def oid() -> str:
    return str(ObjectId())


def _out(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


def _filter(filters: Optional[dict]) -> dict:
    q = dict(filters or {})
    if "id" in q:
        q["_id"] = q.pop("id")
    return q


class MongoRepo:
    """MongoDB document store (Motor).

    ``commit_batch`` runs in a multi-document transaction, which needs a
    replica set (a single-node one is enough).
    """

    def __init__(self, uri: str, db_name: str, feed: Optional[ChangeFeed] = None):
        self._client = AsyncIOMotorClient(uri, tz_aware=True, uuidRepresentation="standard")
        self._db = self._client[db_name]
        self.feed = feed

    def _publish(self, collection: str, doc_id: str, op: str) -> None:
        if self.feed is not None:
            self.feed.publish(collection, doc_id, op)

    def col(self, name: str):
        return self._db[name]

    async def ensure_indexes(self) -> None:
        for name, keys, index_name, kwargs in INDEXES:
            existing = [ix["name"] async for ix in self.col(name).list_indexes()]
            if index_name in existing:
                continue
            await self.col(name).create_index(keys, name=index_name, **kwargs)
            logger.info("created index %s on %s", index_name, name)

    async def close(self) -> None:
        self._client.close()

    # Writes
    async def insert(self, collection: str, doc: dict) -> dict:
        doc = dict(doc)
        doc["_id"] = doc.pop("id", None) or oid()
        await self.col(collection).insert_one(doc)
        self._publish(collection, doc["_id"], "insert")
        return _out(doc)

    async def update(self, collection: str, doc_id: str, fields: dict) -> Optional[dict]:
        return await self.update_if(collection, doc_id, None, fields)

    async def update_if(self, collection: str, doc_id: str, expected: Optional[dict],
                        fields: dict) -> Optional[dict]:
        doc = await self.col(collection).find_one_and_update(
            {"_id": doc_id, **(expected or {})},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None:
            self._publish(collection, doc_id, "update")
        return _out(doc)

    async def delete(self, collection: str, doc_id: str) -> bool:
        return await self.delete_if(collection, doc_id, None)

    async def delete_if(self, collection: str, doc_id: str, expected: Optional[dict]) -> bool:
        res = await self.col(collection).delete_one({"_id": doc_id, **(expected or {})})
        if res.deleted_count:
            self._publish(collection, doc_id, "delete")
        return bool(res.deleted_count)

    async def commit_batch(self, ops: List[BatchOp]) -> bool:
        async with await self._client.start_session() as session:
            async with session.start_transaction():
                for op in ops:
                    res = await self.col(op.collection).update_one(
                        {"_id": op.doc_id, **(op.expected or {})},
                        {"$set": op.fields},
                        session=session,
                    )
                    if res.matched_count == 0:
                        await session.abort_transaction()
                        return False
        for op in ops:
            self._publish(op.collection, op.doc_id, "update")
        return True

    # Reads
    async def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return _out(await self.col(collection).find_one({"_id": doc_id}))

    async def find(self, collection: str, filters: Optional[dict] = None,
                   sort: Optional[Sort] = None, limit: Optional[int] = None) -> List[dict]:
        cur = self.col(collection).find(_filter(filters))
        if sort:
            cur = cur.sort(sort)
        if limit:
            cur = cur.limit(limit)
        return [_out(d) async for d in cur]

    async def find_one(self, collection: str, filters: dict) -> Optional[dict]:
        return _out(await self.col(collection).find_one(_filter(filters)))

    async def count(self, collection: str, filters: Optional[dict] = None) -> int:
        return await self.col(collection).count_documents(_filter(filters))

    async def find_near(self, collection: str, filters: Optional[dict], lat: float, lng: float,
                        radius_km: float, sort: Optional[Sort] = None) -> List[dict]:
        q = _filter(filters)
        q["$or"] = [
            {"geo": {"$geoWithin": {"$centerSphere": [[lng, lat], radius_in_radians(radius_km)]}}},
            {"geo": None},
        ]
        return await self.find(collection, q, sort=sort)
