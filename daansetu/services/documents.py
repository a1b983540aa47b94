import logging
from datetime import datetime, timezone
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from daansetu.core.errors import InvalidUpdateError, MalformedDocumentError, NotFoundError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse(model: Type[M], doc: dict) -> M:
    """Validate a raw store document against its schema."""
    try:
        return model.model_validate(doc)
    except ValidationError as ex:
        logger.error("malformed %s document %s: %s", model.__name__, doc.get("id"), ex)
        raise MalformedDocumentError(f"Stored {model.__name__} {doc.get('id')} is malformed")


def check_update(model: Type[M], current: BaseModel, fields: dict) -> None:
    """Refuse a partial update that would leave the stored document invalid."""
    try:
        model.model_validate({**current.model_dump(), **fields})
    except ValidationError as ex:
        bad = sorted({str(e["loc"][0]) for e in ex.errors() if e["loc"]})
        raise InvalidUpdateError(f"Invalid value for {', '.join(bad) or model.__name__}")


def parse_many(model: Type[M], docs: List[dict]) -> List[M]:
    return [parse(model, d) for d in docs]


async def load(repo, collection: str, model: Type[M], doc_id: str, label: Optional[str] = None) -> M:
    doc = await repo.get(collection, doc_id)
    if doc is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return parse(model, doc)
