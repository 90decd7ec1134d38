from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from codeassess.core.db import MongoModel
from codeassess.utils import now


class Invitation(MongoModel):
    """One-time magic-link invitation.

    Only the SHA-256 digest of the link token is stored.
    Indexed on email.
    """

    email: str
    token_hash: str
    expires_at: datetime
    consumed_at: datetime | None = None
    created_by: UUID
    created_at: datetime = Field(default_factory=now)


class InvitationView(BaseModel):
    """A sent invitation (API representation). The magic link only goes to the invited address."""

    email: str = Field(..., description="Invited email address")
    expires_at: datetime = Field(..., description="When the link stops working")
