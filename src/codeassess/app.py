from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from urllib.parse import urlencode

from pydantic import BaseModel

from codeassess.config import Config
from codeassess.core.core import Core
from codeassess.core.modules.invitation.models import InvitationView
from codeassess.core.modules.session.models import AuthToken, Session, SessionValidationResult, SessionView
from codeassess.core.modules.user.models import User, UserRole, UserView


class LoginResult(BaseModel):
    """A freshly created session. `auth_token` must go to the cookie transport and nowhere else."""

    auth_token: AuthToken
    session: Session
    user: User


class CurrentSession(BaseModel):
    user: UserView
    session: SessionView


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def check_health(self) -> None:
        """Raise if the database is unreachable."""
        await self._core.ping_database()

    async def validate_session(self, auth_token: AuthToken) -> SessionValidationResult:
        """Validate a raw session token, renewing or purging the session as needed."""
        return await self._core.services.session.validate_session_token(auth_token)

    async def login_with_invitation(self, token: str, email: str) -> LoginResult:
        """Redeem a magic link and open a session for its email, creating a candidate account on first use."""
        invitation = await self._core.services.invitation.consume_invitation(token, email)
        user = await self._core.services.user.get_or_create_user(invitation.email)
        auth_token, session = await self._core.services.session.create_session(user.id)
        return LoginResult(auth_token=auth_token, session=session, user=user)

    async def logout(self, current: SessionValidationResult) -> None:
        """Invalidate the current session."""
        authenticated = self._core.services.access.ensure_authenticated(current)
        await self._core.services.session.invalidate_session(authenticated.session.id)

    async def logout_everywhere(self, current: SessionValidationResult) -> int:
        """Invalidate every session of the current user, including this one."""
        authenticated = self._core.services.access.ensure_authenticated(current)
        return await self._core.services.session.invalidate_user_sessions(authenticated.user.id)

    async def get_current_session(self, current: SessionValidationResult) -> CurrentSession:
        """Get the authenticated user and the expiry of their session."""
        authenticated = self._core.services.access.ensure_authenticated(current)
        return CurrentSession(
            user=UserView.from_domain(authenticated.user), session=SessionView.from_domain(authenticated.session)
        )

    async def create_invitation(self, current: SessionValidationResult, email: str) -> InvitationView:
        """Invite a candidate by email (admin only). The magic link is mailed, never returned."""
        admin = self._core.services.access.ensure_admin(current)
        token, invitation = await self._core.services.invitation.create_invitation(email, admin.id)
        await self._core.services.mailer.send_magic_link(invitation.email, self._magic_link(token, invitation.email))
        return InvitationView(email=invitation.email, expires_at=invitation.expires_at)

    async def issue_admin_link(self) -> str:
        """Magic link for the configured admin account, for operators bootstrapping access."""
        admin = await self._core.services.user.get_or_create_user(self.config.admin_email, UserRole.ADMIN)
        token, invitation = await self._core.services.invitation.create_invitation(admin.email, admin.id)
        return self._magic_link(token, invitation.email)

    def _magic_link(self, token: str, email: str) -> str:
        query = urlencode({"token": token, "email": email})
        return f"{self.config.frontend_url.rstrip('/')}/auth/verify?{query}"
