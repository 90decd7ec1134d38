from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from codeassess.core.core import Service
from codeassess.core.modules.invitation.models import Invitation
from codeassess.core.modules.session.token import generate_invitation_token, hash_token, tokens_match
from codeassess.core.modules.user.validators import validate_email
from codeassess.errors import AuthenticationError
from codeassess.utils import normalize_email, now

logger = structlog.get_logger(__name__)

INVITATION_TTL = timedelta(minutes=30)
INVALID_LINK_MESSAGE = "Invalid or expired magic link"


class InvitationService(Service):
    """Issues and redeems one-time magic-link invitations."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]], ttl: timedelta = INVITATION_TTL) -> None:
        super().__init__(database)
        self._collection = database.get_collection("invitations")
        self.ttl = ttl

    async def on_start(self) -> None:
        """Create indexes on startup."""
        await self._collection.create_index([("email", 1), ("created_at", 1)])

    async def create_invitation(self, email: str, created_by: UUID) -> tuple[str, Invitation]:
        """Store a new invitation and return its raw token alongside the record."""
        email = normalize_email(email)
        validate_email(email)
        token = generate_invitation_token()
        invitation = Invitation(
            email=email,
            token_hash=hash_token(token),
            expires_at=now() + self.ttl,
            created_by=created_by,
        )
        await self._collection.insert_one(invitation.to_mongo())
        logger.info("invitation_created", invitation_id=str(invitation.id), created_by=str(created_by))
        return token, invitation

    async def consume_invitation(self, token: str, email: str) -> Invitation:
        """Redeem a magic-link token for the given email.

        Raises AuthenticationError when no invitation for the email matches,
        when the match was already used or when it has expired.
        """
        cursor = self._collection.find({"email": normalize_email(email)}).sort("created_at", 1)
        invitations = await Invitation.list_cursor(cursor)

        match = next((inv for inv in invitations if tokens_match(token, inv.token_hash)), None)
        if match is None:
            logger.info("invitation_not_found")
            raise AuthenticationError(INVALID_LINK_MESSAGE)
        if match.consumed_at is not None:
            logger.info("invitation_reused", invitation_id=str(match.id))
            raise AuthenticationError("Magic link has already been used")
        current = now()
        if match.expires_at <= current:
            logger.info("invitation_expired", invitation_id=str(match.id))
            raise AuthenticationError(INVALID_LINK_MESSAGE)

        # Conditional update so two concurrent redemptions cannot both succeed
        result = await self._collection.update_one(
            {"_id": match.id, "consumed_at": None},
            {"$set": {"consumed_at": current}},
        )
        if result.modified_count == 0:
            raise AuthenticationError("Magic link has already been used")

        match.consumed_at = current
        logger.info("invitation_consumed", invitation_id=str(match.id))
        return match
