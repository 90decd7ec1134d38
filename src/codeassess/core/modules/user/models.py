from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from codeassess.core.db import MongoModel
from codeassess.utils import now


class UserRole(StrEnum):
    ADMIN = "admin"
    CANDIDATE = "candidate"


class User(MongoModel):
    """User domain model. Credentials are never stored on the user."""

    email: str
    role: UserRole = UserRole.CANDIDATE
    created_at: datetime = Field(default_factory=now)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    role: UserRole = Field(..., description="Either 'admin' or 'candidate'")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, email=user.email, role=user.role)
