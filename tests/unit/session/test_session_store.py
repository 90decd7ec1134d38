"""Tests for the Mongo and in-memory session stores."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from codeassess.core.modules.session.models import Session
from codeassess.core.modules.session.store import MemorySessionStore, MongoSessionStore, SessionStore
from codeassess.core.modules.user.models import User, UserRole
from codeassess.errors import StoreError

EXPIRES = datetime(2026, 4, 1, tzinfo=UTC)


def _mongo_store(collection: MagicMock) -> MongoSessionStore:
    database = MagicMock()
    database.get_collection.return_value = collection
    return MongoSessionStore(database)


def _aggregate_returning(docs: list[dict]) -> AsyncMock:
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=docs)
    return AsyncMock(return_value=cursor)


class TestMongoSessionStore:
    def test_satisfies_protocol(self):
        assert isinstance(_mongo_store(MagicMock()), SessionStore)

    async def test_insert_writes_hashed_id_as_primary_key(self):
        collection = MagicMock(insert_one=AsyncMock())
        user_id = uuid4()

        await _mongo_store(collection).insert(Session(id="ab" * 32, user_id=user_id, expires_at=EXPIRES))

        collection.insert_one.assert_awaited_once_with({"_id": "ab" * 32, "user_id": user_id, "expires_at": EXPIRES})

    async def test_lookup_joins_user(self):
        user_id = uuid4()
        collection = MagicMock()
        collection.aggregate = _aggregate_returning(
            [
                {
                    "_id": "cd" * 32,
                    "user_id": user_id,
                    "expires_at": EXPIRES,
                    "user": {"_id": user_id, "email": "bob@example.com", "role": "admin", "created_at": EXPIRES},
                }
            ]
        )

        found = await _mongo_store(collection).lookup("cd" * 32)

        assert found is not None
        assert found.session.id == "cd" * 32
        assert found.session.expires_at == EXPIRES
        assert found.user.id == user_id
        assert found.user.role == UserRole.ADMIN

    async def test_lookup_pipeline_is_an_inner_join_on_the_id(self):
        collection = MagicMock()
        collection.aggregate = _aggregate_returning([])

        assert await _mongo_store(collection).lookup("ef" * 32) is None

        pipeline = collection.aggregate.await_args.args[0]
        assert pipeline[0] == {"$match": {"_id": "ef" * 32}}
        assert pipeline[1]["$lookup"]["from"] == "users"
        assert {"$unwind": "$user"} in pipeline

    async def test_update_expiry_sets_only_expiry(self):
        collection = MagicMock(update_one=AsyncMock())

        await _mongo_store(collection).update_expiry("id", EXPIRES)

        collection.update_one.assert_awaited_once_with({"_id": "id"}, {"$set": {"expires_at": EXPIRES}})

    async def test_delete_by_user_reports_count(self):
        collection = MagicMock(delete_many=AsyncMock(return_value=MagicMock(deleted_count=3)))
        user_id = uuid4()

        assert await _mongo_store(collection).delete_by_user(user_id) == 3
        collection.delete_many.assert_awaited_once_with({"user_id": user_id})

    async def test_driver_errors_become_store_errors(self):
        collection = MagicMock(delete_one=AsyncMock(side_effect=ServerSelectionTimeoutError("no servers")))

        with pytest.raises(StoreError, match="delete failed") as exc_info:
            await _mongo_store(collection).delete("id")

        assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)

    async def test_duplicate_insert_becomes_store_error(self):
        collection = MagicMock(insert_one=AsyncMock(side_effect=DuplicateKeyError("E11000")))

        with pytest.raises(StoreError):
            await _mongo_store(collection).insert(Session(id="x", user_id=uuid4(), expires_at=EXPIRES))


class TestMemorySessionStore:
    def test_satisfies_protocol(self):
        assert isinstance(MemorySessionStore(), SessionStore)

    async def test_lookup_requires_user(self):
        store = MemorySessionStore()
        user = User(email="carol@example.com")
        await store.insert(Session(id="s1", user_id=user.id, expires_at=EXPIRES))

        assert await store.lookup("s1") is None
        store.add_user(user)
        found = await store.lookup("s1")
        assert found is not None
        assert found.user == user

    async def test_returned_sessions_are_copies(self):
        store = MemorySessionStore()
        user = User(email="dave@example.com")
        store.add_user(user)
        await store.insert(Session(id="s1", user_id=user.id, expires_at=EXPIRES))

        found = await store.lookup("s1")
        assert found is not None
        found.session.expires_at = EXPIRES + timedelta(days=1)

        assert store.sessions["s1"].expires_at == EXPIRES

    async def test_duplicate_insert_fails(self):
        store = MemorySessionStore()
        session = Session(id="s1", user_id=uuid4(), expires_at=EXPIRES)
        await store.insert(session)
        with pytest.raises(StoreError):
            await store.insert(session)

    async def test_update_and_delete_of_missing_id_are_noops(self):
        store = MemorySessionStore()
        await store.update_expiry("missing", EXPIRES)
        await store.delete("missing")
        assert store.sessions == {}
