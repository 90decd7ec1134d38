from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, timedelta
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from codeassess.config import Config

if TYPE_CHECKING:
    from codeassess.core.modules.access.service import AccessService
    from codeassess.core.modules.invitation.mailer import MagicLinkMailer
    from codeassess.core.modules.invitation.service import InvitationService
    from codeassess.core.modules.session.service import SessionService
    from codeassess.core.modules.user.service import UserService


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""


class Services:
    """Service registry, started in declaration order."""

    user: UserService
    session: SessionService
    invitation: InvitationService
    access: AccessService
    mailer: MagicLinkMailer

    def __init__(self, database: AsyncDatabase[dict[str, Any]], config: Config) -> None:
        # Imported here: the service modules import Service from this module
        from codeassess.core.modules.access.service import AccessService  # noqa: PLC0415
        from codeassess.core.modules.invitation.mailer import build_mailer  # noqa: PLC0415
        from codeassess.core.modules.invitation.service import InvitationService  # noqa: PLC0415
        from codeassess.core.modules.session.service import SessionService  # noqa: PLC0415
        from codeassess.core.modules.user.service import UserService  # noqa: PLC0415

        # Order matters for initialization - user must be first
        self.user = UserService(database, admin_email=config.admin_email)
        self.session = SessionService(
            database,
            lifetime=timedelta(days=config.session_lifetime_days),
            renewal_window=timedelta(days=config.session_renewal_window_days),
        )
        self.invitation = InvitationService(database, ttl=timedelta(minutes=config.invitation_ttl_minutes))
        self.access = AccessService(database)
        self.mailer = build_mailer(config)
        self._services: list[Service] = [self.user, self.session, self.invitation, self.access]

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in reversed(self._services):
            await service.on_stop()


class Core:
    """Container providing config, database, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    services: Services

    def __init__(self, config: Config) -> None:
        """Initialize core with config, MongoDB, and services."""
        self.config = config
        # tz_aware so stored expiries come back comparable with utils.now()
        self.mongo_client = AsyncMongoClient(
            config.database_url, uuidRepresentation="standard", tz_aware=True, tzinfo=UTC
        )
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.services = Services(self.database, config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close MongoDB connection on shutdown."""
        await self.services.stop_all()
        await self.mongo_client.aclose()

    async def ping_database(self) -> None:
        await self.database.command("ping")
