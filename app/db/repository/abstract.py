"""Generic repository with soft-delete filtering and count-then-fetch pagination."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from typing import Any
from typing import Generic
from typing import TypeVar
import uuid

from sqlalchemy import Select
from sqlalchemy import func
from sqlalchemy import inspect
from sqlalchemy import or_
from sqlalchemy import select
from sqlalchemy import update
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.interfaces import LoaderOption

from app.core.errors import AppError
from app.core.errors import validation_error_with_details
from app.db.models.base import EntityBase
from app.db.models.base import new_entity_id
from app.db.models.base import utcnow
from app.schemas.common import DataResponse
from app.schemas.common import Pageable
from app.schemas.common import PageableRequest
from app.utils.sort import normalize_and_validate_sort

EntityT = TypeVar("EntityT", bound=EntityBase)

# columns `updates` never copies from the caller's entity
_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at", "deleted_at"})


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or value == 0 or value is False


def is_lookup_miss(err: AppError) -> bool:
    """True when a wrapped lookup failed because the id was malformed or absent."""
    return isinstance(err.cause, (NoResultFound, ValueError))


def parse_entity_id(entity_id: uuid.UUID | str) -> uuid.UUID:
    """Return `entity_id` as a UUID; raises ValueError when malformed."""
    if isinstance(entity_id, uuid.UUID):
        return entity_id
    return uuid.UUID(str(entity_id))


class AbstractRepository(Generic[EntityT]):
    """Data access shared by every entity type.

    Reads never return soft-deleted rows. Writes flush but never commit; the
    caller owns the transaction.
    """

    def __init__(self, model: type[EntityT], session: Session) -> None:
        self.model = model
        self.session = session

    def _base_query(self) -> Select:
        return select(self.model).where(self.model.deleted_at.is_(None))

    def _preload_options(self, preloads: Iterable[str]) -> list[LoaderOption]:
        options: list[LoaderOption] = []
        relationships = inspect(self.model).relationships
        for name in preloads:
            if name not in relationships:
                raise ValueError(f"{self.model.__name__} has no relationship {name!r}")
            attribute = getattr(self.model, name)
            target = relationships[name].mapper.class_
            if issubclass(target, EntityBase):
                attribute = attribute.and_(target.deleted_at.is_(None))
            options.append(selectinload(attribute))
        return options

    def find_all(self, request: PageableRequest, *preloads: str) -> DataResponse[EntityT]:
        return self._find(self._base_query(), request, self._preload_options(preloads))

    def find_one_by_id(self, entity_id: uuid.UUID | str, *preloads: str) -> EntityT:
        """Fetch one live row; raises ValueError or NoResultFound unchanged."""
        identifier = parse_entity_id(entity_id)
        stmt = self._base_query().where(self.model.id == identifier)
        options = self._preload_options(preloads)
        if options:
            stmt = stmt.options(*options)
        return self.session.scalars(stmt).one()

    def _ensure_id(self, entity: EntityT) -> None:
        if not entity.has_id():
            entity.set_id(new_entity_id())

    def create(self, entity: EntityT) -> EntityT:
        self._ensure_id(entity)
        self.session.add(entity)
        self.session.flush()
        return entity

    def save(self, entity: EntityT) -> EntityT:
        """Insert or update `entity` by primary key and return the persistent copy."""
        self._ensure_id(entity)
        merged = self.session.merge(entity)
        self.session.flush()
        return merged

    def save_all(self, entities: Sequence[EntityT]) -> list[EntityT]:
        merged: list[EntityT] = []
        for entity in entities:
            self._ensure_id(entity)
            merged.append(self.session.merge(entity))
        self.session.flush()
        return merged

    def delete(self, entity: EntityT) -> None:
        entity.deleted_at = utcnow()
        self.session.flush()

    def updates(self, entity: EntityT) -> int:
        """Write only the non-zero column values of `entity`; returns matched rows."""
        values: dict[str, Any] = {}
        for column in inspect(self.model).column_attrs:
            if column.key in _MANAGED_COLUMNS:
                continue
            value = getattr(entity, column.key)
            if _is_zero(value):
                continue
            values[column.key] = value
        values["updated_at"] = utcnow()

        stmt = (
            update(self.model)
            .where(self.model.id == entity.get_id(), self.model.deleted_at.is_(None))
            .values(**values)
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def _apply_search(self, stmt: Select, q: str, columns: Sequence[Any]) -> Select:
        if not q:
            return stmt
        return stmt.where(or_(*(column.contains(q, autoescape=True) for column in columns)))

    def _apply_date_range(self, stmt: Select, request: PageableRequest) -> Select:
        if request.start_date is not None:
            stmt = stmt.where(self.model.created_at >= request.start_date)
        if request.end_date is not None:
            stmt = stmt.where(self.model.created_at <= request.end_date)
        return stmt

    def _apply_sort(
        self,
        stmt: Select,
        tokens: Sequence[str],
        columns: Mapping[str, Any],
        *,
        operation: str,
        resource: str,
    ) -> Select:
        """Order by validated sort tokens, defaulting to newest first."""
        valid, invalid = normalize_and_validate_sort(tokens, columns.keys())
        if invalid:
            raise (
                validation_error_with_details(
                    "Validation failed",
                    {"sort": "invalid sort field(s): " + ", ".join(invalid)},
                )
                .with_operation(operation)
                .with_resource(resource)
            )
        if not valid:
            return stmt.order_by(self.model.created_at.desc())
        for token in valid:
            if token.startswith("-"):
                stmt = stmt.order_by(columns[token[1:]].desc())
            else:
                stmt = stmt.order_by(columns[token].asc())
        return stmt

    def _find(
        self,
        stmt: Select,
        request: PageableRequest,
        options: Sequence[LoaderOption] = (),
    ) -> DataResponse[EntityT]:
        pageable: Pageable | None = None
        if request.should_paginate():
            count_stmt = select(func.count()).select_from(
                stmt.order_by(None).limit(None).offset(None).subquery()
            )
            total = self.session.scalar(count_stmt) or 0
            pageable = Pageable(page=request.page, page_size=request.page_size, total=total)
            if total == 0:
                return DataResponse(data=[], pageable=pageable)
            stmt = stmt.limit(request.limit).offset(request.offset)

        if options:
            stmt = stmt.options(*options)
        rows = list(self.session.scalars(stmt).all())
        return DataResponse(data=rows, pageable=pageable)
