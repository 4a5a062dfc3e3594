"""Database models."""

from wynngrid_accounts.models.base import Base, TimestampMixin
from wynngrid_accounts.models.profile import Profile, Project, ProjectAverage
from wynngrid_accounts.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Profile",
    "Project",
    "ProjectAverage",
]
