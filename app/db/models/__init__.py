"""Model module imports for SQLAlchemy relationship registration."""

from app.db.models.base import Base
from app.db.models.base import EntityBase
from app.db.models.company import Company
from app.db.models.user import User
from app.db.models.user import user_companies

__all__ = [
    "Base",
    "Company",
    "EntityBase",
    "User",
    "user_companies",
]
