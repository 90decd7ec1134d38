"""Session management models."""

from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from codeassess.core.modules.user.models import User

AuthToken = NewType("AuthToken", str)


class Session(BaseModel):
    """User authentication session.

    `id` is the SHA-256 hex digest of the raw token, never the token itself.
    Indexed on user_id.
    """

    id: str = Field(alias="_id", serialization_alias="id")
    user_id: UUID
    expires_at: datetime

    model_config = ConfigDict(populate_by_name=True)

    def to_mongo(self) -> dict[str, object]:
        data = self.model_dump()
        data["_id"] = data.pop("id")
        return data


class SessionWithUser(BaseModel):
    """A stored session joined with its owning user."""

    session: Session
    user: User


class SessionValidationResult(BaseModel):
    """Outcome of validating a token; both fields are None when the token is not usable."""

    session: Session | None = None
    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.user is not None


class SessionView(BaseModel):
    """Current session information (API representation)."""

    expires_at: datetime = Field(..., description="When the session expires unless renewed")

    @classmethod
    def from_domain(cls, session: Session) -> "SessionView":
        return cls(expires_at=session.expires_at)
