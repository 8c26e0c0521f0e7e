"""
Authorization Guard for owned entities.

Mutations on videos, comments, playlists and tweets go through `ensure_owner`:
the entity must exist and its recorded owner must be the caller.
"""

from typing import Type, TypeVar

from sqlmodel import SQLModel

from core.exceptions import AuthorizationError, NotFoundError
from core.logging_config import get_logger
from core.store import EntityStore
from core.validation import InputValidator

logger = get_logger(__name__)

OwnedModel = TypeVar("OwnedModel", bound=SQLModel)


async def ensure_owner(
    store: EntityStore,
    model: Type[OwnedModel],
    entity_id: str,
    caller_id: str,
    action: str = "modify",
) -> OwnedModel:
    """Return the entity if caller_id owns it, else raise 404/403"""
    label = model.__name__
    entity_id = InputValidator.validate_object_id(entity_id, f"{label} ID")

    entity = await store.get(model, entity_id)
    if entity is None:
        raise NotFoundError(label, entity_id)

    if entity.owner_id != caller_id:
        logger.warning(
            f"Ownership check failed for {label}",
            extra={"entity": label, "entity_id": entity_id, "caller_id": caller_id},
        )
        raise AuthorizationError(f"You are not authorized to {action} this {label.lower()}.")

    return entity
