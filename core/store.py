"""
Entity Store.

Wraps an `AsyncSession` and exposes the persisted tables as named collections of
plain documents, which is the shape the query pipeline works on.

Key Components:
- `Collection`: Registry entry tying a collection name to its SQLModel table and
  to the fields that must never leave the store (credential material).
- `EntityStore`: Document reads (`find`, `find_in`, `count`) used by the
  pipeline executor, and row-level writes (`get`, `add`, `update`, `delete`,
  `delete_where`) used by the services.
- `to_document`: Converts a row into a dict keyed by camelCase field names.

Architectural Design:
- Document keys are camelCase (`ownerId`, `createdAt`) because documents are
  what the API returns. Model attributes stay snake_case; the store translates
  with pydantic's alias generators in both directions.
- Unique-constraint violations surface as `ConflictError` after the session is
  rolled back, which lets toggles treat the constraint as the source of truth.
- Every `add`/`update` reads its row back. A row that vanished before the
  write or the read-back raises `IntegrityError`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Type

from pydantic.alias_generators import to_camel, to_snake
from sqlalchemy import delete as sa_delete, func, update as sa_update
from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError, InvalidRequestError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from core.exceptions import ConflictError, IntegrityError, ValidationError
from core.logging_config import get_logger
from core.models import Comment, Like, Playlist, Subscription, Tweet, User, Video, utcnow

logger = get_logger(__name__)

Document = Dict[str, Any]


@dataclass(frozen=True)
class Collection:
    name: str
    model: Type[SQLModel]
    hidden: FrozenSet[str] = field(default_factory=frozenset)


COLLECTIONS: Dict[str, Collection] = {
    c.name: c
    for c in (
        Collection("users", User, frozenset({"password_hash", "refresh_token"})),
        Collection("videos", Video),
        Collection("comments", Comment),
        Collection("likes", Like),
        Collection("subscriptions", Subscription),
        Collection("playlists", Playlist),
        Collection("tweets", Tweet),
    )
}


def get_collection(name: str) -> Collection:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise ValueError(f"Unknown collection: {name}") from None


def to_document(row: SQLModel, hidden: Iterable[str] = ()) -> Document:
    """Convert a row into a camelCase document, dropping hidden fields"""
    data = row.model_dump(exclude=set(hidden))
    return {to_camel(key): value for key, value in data.items()}


def document_of(row: SQLModel) -> Document:
    """Document form of a single row, with its collection's hidden fields removed"""
    for entry in COLLECTIONS.values():
        if isinstance(row, entry.model):
            return to_document(row, entry.hidden)
    raise ValueError(f"No collection for {type(row).__name__}")


def column_for(model: Type[SQLModel], document_field: str):
    """Resolve a camelCase document field to the model's column attribute"""
    attribute = to_snake(document_field)
    if attribute not in model.model_fields:
        raise ValidationError(
            f"Unknown field '{document_field}'.", field="field", value=document_field
        )
    return getattr(model, attribute)


class EntityStore:
    """Document-oriented access to the relational tables"""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Document reads (pipeline side)

    async def find(
        self, collection: str, clauses: Sequence[Any] = (), order_by: Sequence[Any] = ()
    ) -> List[Document]:
        entry = get_collection(collection)
        statement = select(entry.model).execution_options(populate_existing=True)
        if clauses:
            statement = statement.where(*clauses)
        if order_by:
            statement = statement.order_by(*order_by)
        else:
            statement = statement.order_by(entry.model.created_at, entry.model.id)
        result = await self.session.execute(statement)
        rows = result.scalars().all()
        return [to_document(row, entry.hidden) for row in rows]

    async def find_in(
        self, collection: str, document_field: str, values: Iterable[Any]
    ) -> List[Document]:
        """Batch-fetch every document whose field equals one of the values"""
        wanted = list(dict.fromkeys(v for v in values if v is not None))
        if not wanted:
            return []
        entry = get_collection(collection)
        column = column_for(entry.model, document_field)
        return await self.find(collection, [column.in_(wanted)])

    async def count(self, collection: str, **criteria: Any) -> int:
        entry = get_collection(collection)
        statement = select(func.count()).select_from(entry.model)
        for document_field, value in criteria.items():
            statement = statement.where(column_for(entry.model, document_field) == value)
        result = await self.session.execute(statement)
        return int(result.scalar_one())

    async def exists(self, collection: str, **criteria: Any) -> bool:
        return await self.count(collection, **criteria) > 0

    # Row writes (service side)

    async def get(self, model: Type[SQLModel], entity_id: str) -> Optional[SQLModel]:
        return await self.session.get(model, entity_id, populate_existing=True)

    async def get_by(self, model: Type[SQLModel], **criteria: Any) -> Optional[SQLModel]:
        statement = select(model)
        for attribute, value in criteria.items():
            statement = statement.where(getattr(model, attribute) == value)
        result = await self.session.execute(statement.limit(1))
        return result.scalars().first()

    async def add(self, row: SQLModel) -> SQLModel:
        self.session.add(row)
        await self._commit(type(row).__name__)
        return await self._read_back(row)

    async def update(self, row: SQLModel, **changes: Any) -> SQLModel:
        """Merge only the supplied fields into the row"""
        for attribute, value in changes.items():
            setattr(row, attribute, value)
        row.updated_at = utcnow()
        self.session.add(row)
        await self._commit(type(row).__name__)
        return await self._read_back(row)

    async def delete(self, row: SQLModel) -> None:
        await self.session.delete(row)
        await self._commit(type(row).__name__)

    async def delete_where(self, model: Type[SQLModel], **criteria: Any) -> int:
        statement = sa_delete(model)
        for attribute, value in criteria.items():
            statement = statement.where(getattr(model, attribute) == value)
        result = await self.session.execute(statement)
        await self._commit(model.__name__)
        return result.rowcount or 0

    async def increment(
        self, model: Type[SQLModel], entity_id: str, attribute: str, amount: int = 1
    ) -> None:
        """Increment a counter column in a single UPDATE"""
        column = getattr(model, attribute)
        statement = sa_update(model).where(model.id == entity_id).values({attribute: column + amount})
        await self.session.execute(statement)
        await self._commit(model.__name__)

    async def compare_and_set(
        self,
        model: Type[SQLModel],
        entity_id: str,
        attribute: str,
        expected: Any,
        new_value: Any,
    ) -> bool:
        """Write new_value only if the column still holds expected"""
        column = getattr(model, attribute)
        condition = column.is_(None) if expected is None else column == expected
        statement = (
            sa_update(model)
            .where(model.id == entity_id, condition)
            .values({attribute: new_value, "updated_at": utcnow()})
        )
        result = await self.session.execute(statement)
        await self._commit(model.__name__)
        return (result.rowcount or 0) == 1

    async def _commit(self, entity: str) -> None:
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            logger.error(f"Write to {entity} matched no row", extra={"entity": entity, "error": str(e)})
            raise IntegrityError(f"{entity} could not be written.", details={"entity": entity}) from e
        except SQLAlchemyIntegrityError as e:
            await self.session.rollback()
            logger.warning(
                f"Constraint violation while writing {entity}",
                extra={"entity": entity, "error": str(e.orig)},
            )
            raise ConflictError(f"{entity} violates a uniqueness constraint.") from e

    async def _read_back(self, row: SQLModel) -> SQLModel:
        """Reload a just-written row; a row that cannot be read back is an IntegrityError"""
        entity, entity_id = type(row).__name__, row.id
        try:
            await self.session.refresh(row)
        except InvalidRequestError as e:
            logger.error(
                f"{entity} {entity_id} missing after write",
                extra={"entity": entity, "entity_id": entity_id, "error": str(e)},
            )
            raise IntegrityError(
                f"{entity} could not be confirmed after writing.",
                details={"entity": entity, "identifier": entity_id},
            ) from e
        return row
