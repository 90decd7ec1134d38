"""Persistence for sessions.

`SessionStore` is the contract the session service depends on. Every call is a
single statement; the store does not retry and does not open transactions.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from codeassess.core.modules.session.models import Session, SessionWithUser
from codeassess.core.modules.user.models import User
from codeassess.errors import StoreError


@runtime_checkable
class SessionStore(Protocol):
    async def insert(self, session: Session) -> None: ...

    async def lookup(self, session_id: str) -> SessionWithUser | None:
        """Session joined with its user; None when either side is missing."""
        ...

    async def update_expiry(self, session_id: str, expires_at: datetime) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def delete_by_user(self, user_id: UUID) -> int: ...


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        raise StoreError(f"Session store {operation} failed") from exc


class MongoSessionStore:
    """Sessions in the `sessions` collection, joined against `users`."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self._collection = database.get_collection("sessions")

    async def create_indexes(self) -> None:
        with _store_errors("create_indexes"):
            await self._collection.create_index([("user_id", 1)])

    async def insert(self, session: Session) -> None:
        with _store_errors("insert"):
            await self._collection.insert_one(session.to_mongo())

    async def lookup(self, session_id: str) -> SessionWithUser | None:
        pipeline: list[dict[str, Any]] = [
            {"$match": {"_id": session_id}},
            {"$lookup": {"from": "users", "localField": "user_id", "foreignField": "_id", "as": "user"}},
            # Without preserveNullAndEmptyArrays this drops sessions whose user is gone
            {"$unwind": "$user"},
            {"$limit": 1},
        ]
        with _store_errors("lookup"):
            cursor = await self._collection.aggregate(pipeline)
            docs = await cursor.to_list(length=1)
        if not docs:
            return None
        doc = docs[0]
        user_doc = doc.pop("user")
        return SessionWithUser(session=Session.model_validate(doc), user=User.model_validate(user_doc))

    async def update_expiry(self, session_id: str, expires_at: datetime) -> None:
        with _store_errors("update_expiry"):
            await self._collection.update_one({"_id": session_id}, {"$set": {"expires_at": expires_at}})

    async def delete(self, session_id: str) -> None:
        with _store_errors("delete"):
            await self._collection.delete_one({"_id": session_id})

    async def delete_by_user(self, user_id: UUID) -> int:
        with _store_errors("delete_by_user"):
            result = await self._collection.delete_many({"user_id": user_id})
        return result.deleted_count


class MemorySessionStore:
    """Dict-backed store used by the test suite.

    Users are registered with `add_user`; lookups of sessions whose user was
    never added (or was removed) return None, same as the Mongo join.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, Session] = {}
        self.users: dict[UUID, User] = {}

    def add_user(self, user: User) -> None:
        self.users[user.id] = user

    def remove_user(self, user_id: UUID) -> None:
        self.users.pop(user_id, None)

    async def insert(self, session: Session) -> None:
        if session.id in self.sessions:
            raise StoreError(f"Session store insert failed: duplicate id {session.id[:8]}")
        self.sessions[session.id] = session.model_copy()

    async def lookup(self, session_id: str) -> SessionWithUser | None:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        user = self.users.get(session.user_id)
        if user is None:
            return None
        return SessionWithUser(session=session.model_copy(), user=user)

    async def update_expiry(self, session_id: str, expires_at: datetime) -> None:
        session = self.sessions.get(session_id)
        if session is not None:
            self.sessions[session_id] = session.model_copy(update={"expires_at": expires_at})

    async def delete(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    async def delete_by_user(self, user_id: UUID) -> int:
        doomed = [sid for sid, session in self.sessions.items() if session.user_id == user_id]
        for sid in doomed:
            del self.sessions[sid]
        return len(doomed)
