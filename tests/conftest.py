"""Shared pytest fixtures."""

from collections.abc import Iterator
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from codeassess.app import App
from codeassess.config import Config
from codeassess.core.modules.access.service import AccessService
from codeassess.core.modules.invitation.mailer import OutboxMailer
from codeassess.core.modules.invitation.models import Invitation
from codeassess.core.modules.session.service import SessionService
from codeassess.core.modules.session.store import MemorySessionStore
from codeassess.core.modules.session.token import generate_invitation_token, hash_token
from codeassess.core.modules.user.models import User, UserRole
from codeassess.errors import AuthenticationError
from codeassess.utils import normalize_email, now
from codeassess.web.server import create_fastapi_app


class StubUserService:
    """Keeps users in the memory store so the session join can find them."""

    def __init__(self, store: MemorySessionStore) -> None:
        self._store = store
        self.by_email: dict[str, User] = {}

    def add(self, user: User) -> User:
        self.by_email[user.email] = user
        self._store.add_user(user)
        return user

    async def get_or_create_user(self, email: str, role: UserRole = UserRole.CANDIDATE) -> User:
        email = normalize_email(email)
        if email in self.by_email:
            return self.by_email[email]
        return self.add(User(email=email, role=role))


class StubInvitationService:
    """Single-use tokens mapped to emails."""

    def __init__(self) -> None:
        self.pending: dict[str, str] = {}

    async def create_invitation(self, email: str, created_by: UUID) -> tuple[str, Invitation]:
        token = generate_invitation_token()
        self.pending[token] = normalize_email(email)
        invitation = Invitation(
            email=normalize_email(email),
            token_hash=hash_token(token),
            expires_at=now() + timedelta(minutes=30),
            created_by=created_by,
        )
        return token, invitation

    async def consume_invitation(self, token: str, email: str) -> Invitation:
        if self.pending.get(token) != normalize_email(email):
            raise AuthenticationError("Invalid or expired magic link")
        del self.pending[token]
        return Invitation(
            email=normalize_email(email),
            token_hash=hash_token(token),
            expires_at=now() + timedelta(minutes=30),
            consumed_at=now(),
            created_by=uuid4(),
        )


@pytest.fixture
def config() -> Config:
    return Config(
        database_url="mongodb://localhost:27017/codeassess_test",
        frontend_url="https://assess.example.com/",
        cookie_secure=False,
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def memory_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def session_service(memory_store: MemorySessionStore) -> SessionService:
    return SessionService(MagicMock(), store=memory_store)


@pytest.fixture
def candidate_user(memory_store: MemorySessionStore) -> User:
    user = User(id=UUID("87654321-4321-8765-4321-876543218765"), email="alice@example.com")
    memory_store.add_user(user)
    return user


@pytest.fixture
def admin_user(memory_store: MemorySessionStore) -> User:
    user = User(id=UUID("12345678-1234-5678-1234-567812345678"), email="admin@example.com", role=UserRole.ADMIN)
    memory_store.add_user(user)
    return user


@pytest.fixture
def user_service(memory_store: MemorySessionStore) -> StubUserService:
    return StubUserService(memory_store)


@pytest.fixture
def invitation_service() -> StubInvitationService:
    return StubInvitationService()


@pytest.fixture
def mailer() -> OutboxMailer:
    return OutboxMailer()


@pytest.fixture
def app(
    config: Config,
    session_service: SessionService,
    user_service: StubUserService,
    invitation_service: StubInvitationService,
    mailer: OutboxMailer,
) -> Iterator[App]:
    """App facade with Mongo-free services."""
    with patch("codeassess.app.Core") as core_cls:
        core = core_cls.return_value
        core.config = config
        core.ping_database = AsyncMock()
        core.services.session = session_service
        core.services.user = user_service
        core.services.invitation = invitation_service
        core.services.access = AccessService(MagicMock())
        core.services.mailer = mailer
        yield App(config)


@pytest.fixture
def fastapi_app(app: App, config: Config) -> FastAPI:
    return create_fastapi_app(app, config)


@pytest.fixture
def client(fastapi_app: FastAPI) -> TestClient:
    # Lifespan is not entered: the services above need no startup
    return TestClient(fastapi_app, raise_server_exceptions=False)
