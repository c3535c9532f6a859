"""Unit tests for the MongoDB storage backends, against mocked collections."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from change_monitor.models import Account, ChangeEvent, ChangeKind, PersistenceError, ValidationError
from change_monitor.storage import (
    MongoAccountStore,
    MongoChangeLogStore,
    MongoManager,
    MongoTargetRegistry,
)
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError


@pytest.fixture
def collection():
    collection = Mock()
    collection.create_index = AsyncMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock()
    return collection


@pytest.fixture
def manager(collection):
    manager = MongoManager("mongodb://localhost:27017", "change_monitor_test")
    manager.db = MagicMock()
    manager.db.__getitem__.return_value = collection
    return manager


class TestMongoManager:
    def test_from_config(self, settings):
        manager = MongoManager.from_config(settings)

        assert manager.uri == settings.mongodb_uri
        assert manager.database_name == settings.mongodb_database

    def test_collection_before_connect(self):
        manager = MongoManager("mongodb://localhost:27017", "db")

        with pytest.raises(PersistenceError, match="not initialized"):
            manager.get_collection("file_changes")

    @pytest.mark.asyncio
    @patch('change_monitor.storage.mongo_store.AsyncMongoClient')
    async def test_connect_pings_server(self, mock_client_class):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})
        mock_client_class.return_value = client
        manager = MongoManager("mongodb://db:27017", "monitor", timeout_ms=100)

        await manager.connect()

        mock_client_class.assert_called_once_with("mongodb://db:27017", tz_aware=True, serverSelectionTimeoutMS=100)
        client.admin.command.assert_awaited_once_with("ping")
        assert manager.db is not None

    @pytest.mark.asyncio
    @patch('change_monitor.storage.mongo_store.AsyncMongoClient')
    async def test_connect_failure(self, mock_client_class):
        client = MagicMock()
        client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))
        mock_client_class.return_value = client

        with pytest.raises(PersistenceError, match="Failed to connect"):
            await MongoManager("mongodb://db:27017", "monitor").connect()

    @pytest.mark.asyncio
    async def test_close(self):
        manager = MongoManager("mongodb://db:27017", "monitor")
        client = Mock()
        client.close = AsyncMock()
        manager.client = client
        manager.db = Mock()

        await manager.close()

        client.close.assert_awaited_once()
        assert manager.db is None


class TestMongoChangeLogStore:
    @pytest.mark.asyncio
    async def test_initialize_creates_indexes(self, manager, collection):
        await MongoChangeLogStore(manager).initialize()

        assert collection.create_index.await_count == 2

    @pytest.mark.asyncio
    async def test_append(self, manager, collection):
        event = ChangeEvent(path="/w/a.txt", change_kind=ChangeKind.CREATED)

        await MongoChangeLogStore(manager).append(event)

        document = collection.insert_one.await_args.args[0]
        assert document["event_id"] == str(event.id)
        assert document["change_kind"] == "created"

    @pytest.mark.asyncio
    async def test_append_failure(self, manager, collection):
        collection.insert_one.side_effect = PyMongoError("write failed")

        with pytest.raises(PersistenceError) as exc_info:
            await MongoChangeLogStore(manager).append(ChangeEvent(path="/w/a.txt", change_kind="created"))

        assert exc_info.value.context["collection_name"] == "file_changes"

    @pytest.mark.asyncio
    async def test_list_recent(self, manager, collection):
        stamp = datetime(2024, 5, 1, tzinfo=UTC)
        event = ChangeEvent(path="/w/a.txt", change_kind=ChangeKind.DELETED, timestamp=stamp)
        cursor = Mock()
        cursor.sort.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=[{**event.to_document(), "_id": "oid"}])
        collection.find.return_value = cursor

        events = await MongoChangeLogStore(manager).list_recent(limit=10)

        cursor.sort.assert_called_once_with([("timestamp", DESCENDING), ("_id", DESCENDING)])
        cursor.limit.assert_called_once_with(10)
        assert events == [event]

    @pytest.mark.asyncio
    async def test_list_recent_failure(self, manager, collection):
        collection.find.side_effect = PyMongoError("read failed")

        with pytest.raises(PersistenceError):
            await MongoChangeLogStore(manager).list_recent()


class TestMongoTargetRegistry:
    @pytest.mark.asyncio
    async def test_upsert_sets_supplied_fields(self, manager, collection):
        now = datetime.now(UTC)
        collection.find_one_and_update.return_value = {
            "_id": "oid",
            "owner_identity": "ana@example.com",
            "name": None,
            "path": "/srv/docs",
            "interval": 1.0,
            "tracked_files": ["*.md"],
            "recipient": None,
            "created_at": now,
            "updated_at": now,
        }

        target = await MongoTargetRegistry(manager).upsert(
            {"ownerIdentity": "ana@example.com", "path": "/srv/docs", "trackedFiles": ["*.md"]}
        )

        query, update = collection.find_one_and_update.await_args.args
        assert query == {"owner_identity": "ana@example.com"}
        assert update["$set"]["path"] == "/srv/docs"
        assert "name" not in update["$set"]
        assert "alert_recipient" not in update["$set"]
        assert "created_at" in update["$setOnInsert"]
        assert collection.find_one_and_update.await_args.kwargs["upsert"] is True
        assert target.tracked_files == ["*.md"]

    @pytest.mark.asyncio
    async def test_upsert_validation(self, manager, collection):
        with pytest.raises(ValidationError):
            await MongoTargetRegistry(manager).upsert({"path": "/srv/docs"})

        collection.find_one_and_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_find_latest(self, manager, collection):
        await MongoTargetRegistry(manager).find()

        collection.find_one.assert_awaited_once_with({}, sort=[("updated_at", DESCENDING)])

    @pytest.mark.asyncio
    async def test_find_missing(self, manager):
        assert await MongoTargetRegistry(manager).find("nobody@example.com") is None


class TestMongoAccountStore:
    @pytest.mark.asyncio
    async def test_duplicate_email(self, manager, collection):
        collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        account = Account(fullname="Ana", email="ana@example.com", mobile="1", password_hash="h")

        with pytest.raises(ValidationError, match="already registered"):
            await MongoAccountStore(manager).add(account)

    @pytest.mark.asyncio
    async def test_get_by_email(self, manager, collection):
        account = Account(fullname="Ana", email="ana@example.com", mobile="1", password_hash="h")
        collection.find_one.return_value = {**account.to_document(), "_id": "oid"}

        found = await MongoAccountStore(manager).get_by_email("ANA@example.com")

        collection.find_one.assert_awaited_once_with({"email": "ana@example.com"})
        assert found == account
