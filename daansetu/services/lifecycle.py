import logging
from typing import Type, TypeVar

from pydantic import BaseModel

from daansetu.core.errors import InvalidTransitionError, NotFoundError
from daansetu.core.states import sources_for
from daansetu.services.documents import parse, utcnow

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


async def transition(repo, collection: str, model: Type[M], doc_id: str, transitions: dict,
                     dst: str, fields: dict, refusal: str, label: str) -> M:
    """
    Move a document to ``dst`` with one conditional write.

    The write only lands while the stored status is still a legal source
    for ``dst``; otherwise nothing changes and ``refusal`` is raised. Two
    concurrent callers therefore cannot both succeed.
    """
    sources = sources_for(transitions, dst)
    update = {**fields, "status": dst, "updated_at": utcnow()}
    updated = await repo.update_if(collection, doc_id, {"status": {"$in": sources}}, update)
    if updated is None:
        current = await repo.get(collection, doc_id)
        if current is None:
            raise NotFoundError(f"{label} not found")
        logger.info("refused %s %s: %s -> %s", label.lower(), doc_id, current.get("status"), dst)
        raise InvalidTransitionError(refusal)
    logger.info("%s %s -> %s", label.lower(), doc_id, dst)
    return parse(model, updated)
