from datetime import timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from codeassess.core.core import Service
from codeassess.core.modules.session.models import AuthToken, Session, SessionValidationResult
from codeassess.core.modules.session.store import MongoSessionStore, SessionStore
from codeassess.core.modules.session.token import generate_session_token, hash_token
from codeassess.utils import now

logger = structlog.get_logger(__name__)

SESSION_LIFETIME = timedelta(days=30)
SESSION_RENEWAL_WINDOW = timedelta(days=15)


def _short(session_id: str) -> str:
    return session_id[:8]


class SessionService(Service):
    """Creates, validates, renews and invalidates token-backed sessions.

    A session lives for `lifetime` after creation or last renewal. A
    validation that happens within `renewal_window` of expiry pushes the
    expiry out to a full lifetime again, so an active user is written at
    most once per (lifetime - renewal_window).
    """

    def __init__(
        self,
        database: AsyncDatabase[dict[str, Any]],
        store: SessionStore | None = None,
        lifetime: timedelta = SESSION_LIFETIME,
        renewal_window: timedelta = SESSION_RENEWAL_WINDOW,
    ) -> None:
        super().__init__(database)
        if not timedelta(0) < renewal_window < lifetime:
            raise ValueError("renewal_window must be positive and shorter than lifetime")
        self._store: SessionStore = store if store is not None else MongoSessionStore(database)
        self.lifetime = lifetime
        self.renewal_window = renewal_window

    async def on_start(self) -> None:
        """Create indexes on startup."""
        if isinstance(self._store, MongoSessionStore):
            await self._store.create_indexes()

    async def create_session(self, user_id: UUID) -> tuple[AuthToken, Session]:
        """Persist a new session for the user.

        Returns the raw token, which is not stored anywhere and cannot be
        recovered later, together with the stored record.
        """
        auth_token = AuthToken(generate_session_token())
        session = Session(id=hash_token(auth_token), user_id=user_id, expires_at=now() + self.lifetime)
        await self._store.insert(session)
        logger.info("session_created", session=_short(session.id), user_id=str(user_id))
        return auth_token, session

    async def validate_session_token(self, auth_token: AuthToken) -> SessionValidationResult:
        """Resolve a raw token to its session and user.

        Unknown and expired tokens give an empty result rather than an error.
        Expired sessions are deleted on the spot; sessions inside the renewal
        window get a fresh expiry. Store failures propagate.
        """
        session_id = hash_token(auth_token)
        found = await self._store.lookup(session_id)
        if found is None:
            logger.debug("session_not_found", session=_short(session_id))
            return SessionValidationResult()

        session, user = found.session, found.user
        current = now()

        if current >= session.expires_at:
            await self._store.delete(session.id)
            logger.info("session_expired", session=_short(session.id), user_id=str(user.id))
            return SessionValidationResult()

        if current >= session.expires_at - self.renewal_window:
            session.expires_at = current + self.lifetime
            await self._store.update_expiry(session.id, session.expires_at)
            logger.debug("session_renewed", session=_short(session.id), expires_at=session.expires_at.isoformat())

        return SessionValidationResult(session=session, user=user)

    async def invalidate_session(self, session_id: str) -> None:
        """Invalidate a session by its hashed id. Unknown ids are ignored."""
        await self._store.delete(session_id)
        logger.info("session_invalidated", session=_short(session_id))

    async def invalidate_user_sessions(self, user_id: UUID) -> int:
        """Remove every session belonging to the user."""
        deleted = await self._store.delete_by_user(user_id)
        logger.info("user_sessions_invalidated", user_id=str(user_id), count=deleted)
        return deleted
