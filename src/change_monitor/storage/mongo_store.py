"""
MongoDB storage backends built on the pymongo async client.
"""

import logging
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from change_monitor.core.interfaces import IAccountStore, IChangeLogStore, ITargetRegistry
from change_monitor.models import Account, ChangeEvent, MonitorTarget, PersistenceError, ValidationError
from change_monitor.models.exceptions import raise_validation_error

logger = logging.getLogger(__name__)

CHANGES_COLLECTION = "file_changes"
TARGETS_COLLECTION = "configs"
ACCOUNTS_COLLECTION = "registerdetails"


class MongoManager:
    """Owns the async client and hands out collections."""

    def __init__(self, uri: str, database_name: str, timeout_ms: int = 5000):
        self.uri = uri
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self.client: AsyncMongoClient | None = None
        self.db: AsyncDatabase | None = None

    @classmethod
    def from_config(cls, config) -> "MongoManager":
        return cls(config.mongodb_uri, config.mongodb_database, config.mongodb_timeout_ms)

    async def connect(self) -> None:
        """
        Open the client and check the server answers.

        Raises:
            PersistenceError: If MongoDB cannot be reached
        """
        try:
            self.client = AsyncMongoClient(self.uri, tz_aware=True, serverSelectionTimeoutMS=self.timeout_ms)
            self.db = self.client[self.database_name]
            await self.client.admin.command("ping")
            logger.info("MongoDB connected: %s", self.database_name)
        except PyMongoError as e:
            logger.error("MongoDB connection error: %s", e)
            raise PersistenceError(
                f"Failed to connect to MongoDB: {e}", operation="connect", underlying_error=e
            ) from e

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.db = None

    def get_collection(self, collection_name: str) -> AsyncCollection:
        if self.db is None:
            raise PersistenceError(
                "Database not initialized. Call connect() first.",
                operation="get_collection",
                collection_name=collection_name,
            )
        return self.db[collection_name]


class MongoChangeLogStore(IChangeLogStore):
    """Change log in the ``file_changes`` collection, indexed by timestamp."""

    def __init__(self, manager: MongoManager):
        self.manager = manager

    @property
    def collection(self) -> AsyncCollection:
        return self.manager.get_collection(CHANGES_COLLECTION)

    async def initialize(self) -> None:
        try:
            await self.collection.create_index([("timestamp", DESCENDING)], name="timestamp_desc")
            await self.collection.create_index([("event_id", ASCENDING)], name="event_id", unique=True)
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to prepare change log: {e}",
                operation="initialize",
                collection_name=CHANGES_COLLECTION,
                underlying_error=e,
            ) from e

    async def append(self, event: ChangeEvent) -> None:
        try:
            await self.collection.insert_one(event.to_document())
        except PyMongoError as e:
            raise PersistenceError(
                f"Error saving to database: {e}",
                operation="append",
                collection_name=CHANGES_COLLECTION,
                underlying_error=e,
            ) from e

    async def list_recent(self, limit: int | None = None) -> list[ChangeEvent]:
        try:
            cursor = self.collection.find({}).sort([("timestamp", DESCENDING), ("_id", DESCENDING)])
            if limit is not None:
                cursor = cursor.limit(limit)
            documents = await cursor.to_list(None)
        except PyMongoError as e:
            raise PersistenceError(
                f"Error fetching file changes: {e}",
                operation="list_recent",
                collection_name=CHANGES_COLLECTION,
                underlying_error=e,
            ) from e

        return [ChangeEvent.from_document(document) for document in documents]


class MongoTargetRegistry(ITargetRegistry):
    """Monitor targets in the ``configs`` collection, unique per owner."""

    def __init__(self, manager: MongoManager):
        self.manager = manager

    @property
    def collection(self) -> AsyncCollection:
        return self.manager.get_collection(TARGETS_COLLECTION)

    async def initialize(self) -> None:
        try:
            await self.collection.create_index([("owner_identity", ASCENDING)], name="owner_identity", unique=True)
            await self.collection.create_index([("updated_at", DESCENDING)], name="updated_at_desc")
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to prepare target registry: {e}",
                operation="initialize",
                collection_name=TARGETS_COLLECTION,
                underlying_error=e,
            ) from e

    async def upsert(self, data: dict) -> MonitorTarget:
        try:
            incoming = MonitorTarget.model_validate(data)
        except PydanticValidationError as e:
            raise_validation_error("monitor configuration", e)

        supplied = incoming.model_dump(exclude_unset=True, exclude={"created_at", "updated_at", "alert_recipient"})
        supplied["updated_at"] = datetime.now(UTC)

        try:
            document = await self.collection.find_one_and_update(
                {"owner_identity": incoming.owner_identity},
                {"$set": supplied, "$setOnInsert": {"created_at": incoming.created_at}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error("Error saving configuration: %s", e)
            raise PersistenceError(
                f"Failed to save configuration: {e}",
                operation="upsert",
                collection_name=TARGETS_COLLECTION,
                underlying_error=e,
            ) from e

        return MonitorTarget.from_document(document)

    async def find(self, owner_identity: str | None = None) -> MonitorTarget | None:
        try:
            if owner_identity is not None:
                document = await self.collection.find_one({"owner_identity": owner_identity.strip()})
            else:
                document = await self.collection.find_one({}, sort=[("updated_at", DESCENDING)])
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to load configuration: {e}",
                operation="find",
                collection_name=TARGETS_COLLECTION,
                underlying_error=e,
            ) from e

        return MonitorTarget.from_document(document) if document else None


class MongoAccountStore(IAccountStore):
    """Accounts in the ``registerdetails`` collection, unique per email."""

    def __init__(self, manager: MongoManager):
        self.manager = manager

    @property
    def collection(self) -> AsyncCollection:
        return self.manager.get_collection(ACCOUNTS_COLLECTION)

    async def initialize(self) -> None:
        try:
            await self.collection.create_index([("email", ASCENDING)], name="email", unique=True)
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to prepare account store: {e}",
                operation="initialize",
                collection_name=ACCOUNTS_COLLECTION,
                underlying_error=e,
            ) from e

    async def add(self, account: Account) -> None:
        try:
            await self.collection.insert_one(account.to_document())
        except DuplicateKeyError as e:
            raise ValidationError(
                "Email is already registered", field_name="email", actual_value=account.email
            ) from e
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to save account: {e}",
                operation="add",
                collection_name=ACCOUNTS_COLLECTION,
                underlying_error=e,
            ) from e

    async def get_by_email(self, email: str) -> Account | None:
        try:
            document = await self.collection.find_one({"email": email.strip().lower()})
        except PyMongoError as e:
            raise PersistenceError(
                f"Failed to load account: {e}",
                operation="get_by_email",
                collection_name=ACCOUNTS_COLLECTION,
                underlying_error=e,
            ) from e

        return Account.from_document(document) if document else None
