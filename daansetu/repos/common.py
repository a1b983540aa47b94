from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

Sort = List[Tuple[str, int]]

COLLECTIONS = [
    "users",
    "credentials",
    "revokedTokens",
    "donations",
    "requests",
    "notifications",
    "reports",
    "verificationRequests",
    "contactMessages",
]


@dataclass
class BatchOp:
    """One update inside an atomic batch.

    ``expected`` guards the write: the whole batch is discarded when any
    op's document is missing or no longer matches it.
    """
    collection: str
    doc_id: str
    fields: Dict[str, Any]
    expected: Optional[Dict[str, Any]] = field(default=None)


def matches(doc: dict, filters: Optional[dict]) -> bool:
    """Equality / ``$in`` / ``$ne`` matching, the subset of Mongo filters the services use."""
    for key, cond in (filters or {}).items():
        value = doc.get(key)
        if isinstance(cond, dict):
            if "$in" in cond and value not in cond["$in"]:
                return False
            if "$ne" in cond and value == cond["$ne"]:
                return False
        elif value != cond:
            return False
    return True


def sort_docs(docs: List[dict], sort: Optional[Sort]) -> List[dict]:
    # nulls first ascending, last descending (same as Mongo)
    for key, direction in reversed(sort or []):
        docs.sort(key=lambda d: (d.get(key) is not None, d.get(key) if d.get(key) is not None else 0),
                  reverse=direction < 0)
    return docs
