"""
Service container.

Builds every component from settings, wires them together and owns their
startup and shutdown order.
"""

import logging
import secrets
from dataclasses import dataclass, field

from change_monitor.auth import AccountService, JwtTokenService, Pbkdf2CredentialHasher
from change_monitor.config.settings import MonitorSettings, StorageBackend
from change_monitor.core.interfaces import IAccountStore, IChangeLogStore, ITargetRegistry
from change_monitor.monitoring import ChangeEventPipeline, WatchSessionManager
from change_monitor.notifications import ConnectionManager, NotificationFanout, SmtpMessageDispatcher
from change_monitor.storage import (
    InMemoryAccountStore,
    InMemoryChangeLogStore,
    InMemoryTargetRegistry,
    MongoAccountStore,
    MongoChangeLogStore,
    MongoManager,
    MongoTargetRegistry,
)

logger = logging.getLogger(__name__)


@dataclass
class MonitorServices:
    """All long-lived components of a running service."""

    config: MonitorSettings
    change_log: IChangeLogStore
    targets: ITargetRegistry
    accounts: AccountService
    account_store: IAccountStore
    connections: ConnectionManager
    fanout: NotificationFanout
    pipeline: ChangeEventPipeline
    sessions: WatchSessionManager
    mongo: MongoManager | None = field(default=None, repr=False)

    async def startup(self) -> None:
        """
        Connect storage and start the pipeline consumer.

        Raises:
            PersistenceError: If storage cannot be reached (fatal at startup)
        """
        if self.mongo is not None:
            await self.mongo.connect()

        await self.change_log.initialize()
        await self.targets.initialize()
        await self.account_store.initialize()

        self.pipeline.start()
        logger.info("Change monitor services started (storage: %s)", self.config.storage_backend)

    async def shutdown(self) -> None:
        """Stop watching, drain the pipeline, close subscribers and storage."""
        await self.sessions.shutdown()
        await self.pipeline.stop()
        await self.connections.close_all()
        if self.mongo is not None:
            await self.mongo.close()
        logger.info("Change monitor services stopped")


def build_services(config: MonitorSettings) -> MonitorServices:
    """Create and wire all components described by the settings."""
    mongo = None
    if config.storage_backend == StorageBackend.MONGO:
        mongo = MongoManager.from_config(config)
        change_log = MongoChangeLogStore(mongo)
        targets = MongoTargetRegistry(mongo)
        account_store = MongoAccountStore(mongo)
    else:
        change_log = InMemoryChangeLogStore()
        targets = InMemoryTargetRegistry()
        account_store = InMemoryAccountStore()

    dispatcher = SmtpMessageDispatcher.from_config(config) if config.alerts_enabled else None
    if dispatcher is None:
        logger.info("No SMTP host configured, email alerts disabled")

    secret_key = config.secret_key
    if not secret_key:
        secret_key = secrets.token_urlsafe(32)
        logger.warning("No secret_key configured, using a random key; tokens will not survive a restart")

    accounts = AccountService(
        store=account_store,
        hasher=Pbkdf2CredentialHasher(iterations=config.password_hash_iterations),
        tokens=JwtTokenService(secret_key, config.token_algorithm, config.token_expiry_seconds),
        admin_secret_key=config.admin_secret_key,
    )

    connections = ConnectionManager(send_timeout=config.broadcast_send_timeout)
    fanout = NotificationFanout(connections, dispatcher)
    pipeline = ChangeEventPipeline(
        change_log,
        fanout,
        queue_size=config.event_queue_size,
        drain_timeout=config.pipeline_drain_timeout,
    )
    sessions = WatchSessionManager(config, pipeline)

    return MonitorServices(
        config=config,
        change_log=change_log,
        targets=targets,
        accounts=accounts,
        account_store=account_store,
        connections=connections,
        fanout=fanout,
        pipeline=pipeline,
        sessions=sessions,
        mongo=mongo,
    )
