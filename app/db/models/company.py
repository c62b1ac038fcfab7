"""SQLAlchemy model for companies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import PrimaryKeyConstraint
from sqlalchemy import String
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column
from sqlalchemy.orm import relationship

from app.db.models.base import Base
from app.db.models.base import EntityBase

if TYPE_CHECKING:
    from app.db.models.user import User


class Company(EntityBase, Base):
    """Company that users can belong to."""

    __tablename__ = "companies"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_companies"),)

    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    identity_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    users: Mapped[list["User"]] = relationship(
        "User",
        secondary="user_companies",
        back_populates="companies",
    )
