import asyncio
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from codeassess.core.core import Service
from codeassess.core.modules.user.models import User, UserRole
from codeassess.core.modules.user.validators import validate_email
from codeassess.errors import NotFoundError, ValidationError
from codeassess.utils import normalize_email

logger = structlog.get_logger(__name__)


class UserService(Service):
    """Manages admin and candidate accounts."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]], admin_email: str | None = None) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")
        self._admin_email = admin_email
        self._admin_bootstrap_lock = asyncio.Lock()
        self._admin_bootstrap_attempted = False

    async def get_user_by_email(self, email: str) -> User:
        """Get user by email address (case-insensitive)."""
        doc = await self._collection.find_one({"email": normalize_email(email)})
        if doc is None:
            raise NotFoundError(f"User '{email}' not found")
        return User.model_validate(doc)

    async def has_email(self, email: str) -> bool:
        return await self._collection.count_documents({"email": normalize_email(email)}, limit=1) > 0

    async def create_user(self, email: str, role: UserRole = UserRole.CANDIDATE) -> User:
        """Create a user; emails are stored lower-cased and must be unique."""
        email = normalize_email(email)
        validate_email(email)
        user = User(email=email, role=role)
        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError as exc:
            raise ValidationError(f"User '{email}' already exists") from exc
        logger.info("user_created", user_id=str(user.id), role=role.value)
        return user

    async def get_or_create_user(self, email: str, role: UserRole = UserRole.CANDIDATE) -> User:
        """Return the existing user for the email, creating one with `role` if absent."""
        try:
            return await self.get_user_by_email(email)
        except NotFoundError:
            pass
        try:
            return await self.create_user(email, role)
        except ValidationError:
            # Lost a race with a concurrent creation of the same email
            return await self.get_user_by_email(email)

    async def ensure_admin_user_exists(self) -> None:
        """Create the configured admin user once per process."""
        if self._admin_email is None:
            return
        async with self._admin_bootstrap_lock:
            if self._admin_bootstrap_attempted:
                return
            self._admin_bootstrap_attempted = True
            if not await self.has_email(self._admin_email):
                await self.create_user(self._admin_email, UserRole.ADMIN)

    async def on_start(self) -> None:
        """Initialize indexes and admin user."""
        await self._collection.create_index([("email", 1)], unique=True)
        await self.ensure_admin_user_exists()
        logger.debug("user_service_started")
