"""Declarative base and the shared entity columns."""

from __future__ import annotations

import uuid
from datetime import datetime
from datetime import timezone

from sqlalchemy import DateTime
from sqlalchemy import Uuid
from sqlalchemy import func
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column
import uuid6


class Base(DeclarativeBase):
    """Declarative base for service ORM models."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_entity_id() -> uuid.UUID:
    """Return a time-ordered (version 7) identifier."""
    return uuid.UUID(int=uuid6.uuid7().int)


class EntityBase:
    """Identifier and lifecycle timestamps shared by every entity.

    The id column has no default: repositories assign one through
    `set_id` so identifiers are always time-ordered. `deleted_at` marks a
    soft-deleted row.
    """

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    def get_id(self) -> uuid.UUID | None:
        return self.id

    def set_id(self, value: uuid.UUID) -> None:
        self.id = value

    def has_id(self) -> bool:
        return self.id is not None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
