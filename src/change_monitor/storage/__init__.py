"""Storage backends for the change log, monitor targets and accounts."""

from change_monitor.storage.memory_store import InMemoryAccountStore, InMemoryChangeLogStore, InMemoryTargetRegistry
from change_monitor.storage.mongo_store import (
    MongoAccountStore,
    MongoChangeLogStore,
    MongoManager,
    MongoTargetRegistry,
)

__all__ = [
    "InMemoryChangeLogStore",
    "InMemoryTargetRegistry",
    "InMemoryAccountStore",
    "MongoManager",
    "MongoChangeLogStore",
    "MongoTargetRegistry",
    "MongoAccountStore",
]
