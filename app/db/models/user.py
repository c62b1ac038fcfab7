"""SQLAlchemy model for users and their company memberships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column
from sqlalchemy import ForeignKey
from sqlalchemy import PrimaryKeyConstraint
from sqlalchemy import String
from sqlalchemy import Table
from sqlalchemy import Uuid
from sqlalchemy.orm import Mapped
from sqlalchemy.orm import mapped_column
from sqlalchemy.orm import relationship

from app.db.models.base import Base
from app.db.models.base import EntityBase

if TYPE_CHECKING:
    from app.db.models.company import Company


user_companies = Table(
    "user_companies",
    Base.metadata,
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", name="fk_user_companies_user_id_users", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "company_id",
        Uuid,
        ForeignKey("companies.id", name="fk_user_companies_company_id_companies", ondelete="CASCADE"),
        primary_key=True,
    ),
    PrimaryKeyConstraint("user_id", "company_id", name="pk_user_companies"),
)


class User(EntityBase, Base):
    """Service user, optionally a member of several companies."""

    __tablename__ = "users"
    __table_args__ = (PrimaryKeyConstraint("id", name="pk_users"),)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    identity_id: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    companies: Mapped[list["Company"]] = relationship(
        "Company",
        secondary=user_companies,
        back_populates="users",
    )
