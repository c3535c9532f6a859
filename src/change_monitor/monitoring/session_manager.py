"""
Watch session manager.

Owns the single process-wide watch slot: at most one target is observed
at a time, and starting a new session replaces the running one.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial

from change_monitor.models import (
    AdapterError,
    ChangeEvent,
    MonitorTarget,
    NoActiveSessionError,
    PathNotFoundError,
    SessionStatus,
    ValidationError,
)
from change_monitor.monitoring.file_watcher import ChangeEventWatcher
from change_monitor.monitoring.pipeline import ChangeEventPipeline

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[MonitorTarget, Callable[[ChangeEvent], None]], ChangeEventWatcher]


@dataclass
class WatchSession:
    """A running watch on one target."""

    target: MonitorTarget
    watcher: ChangeEventWatcher = field(repr=False)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class WatchSessionManager:
    """
    Starts, replaces and stops the active watch session.

    All transitions go through ``start`` and ``stop``, serialized by one
    lock, so a replacement (stop old, start new) is atomic with respect to
    other calls. The watcher itself is never handed out.
    """

    def __init__(
        self,
        config,
        pipeline: ChangeEventPipeline,
        watcher_factory: WatcherFactory | None = None,
    ):
        """
        Initialize the session manager.

        Args:
            config: Service settings
            pipeline: Pipeline receiving every emitted event
            watcher_factory: Optional factory for watchers (defaults to ChangeEventWatcher)
        """
        self.config = config
        self.pipeline = pipeline
        self._watcher_factory = watcher_factory or self._default_watcher_factory

        self._session: WatchSession | None = None
        self._lock = asyncio.Lock()

    def _default_watcher_factory(
        self, target: MonitorTarget, emit: Callable[[ChangeEvent], None]
    ) -> ChangeEventWatcher:
        return ChangeEventWatcher(
            config=self.config,
            target=target,
            emit=emit,
            coalesce_seconds=self.config.coalesce_seconds,
        )

    async def start(self, target: MonitorTarget) -> SessionStatus:
        """
        Activate a watch session on a target, replacing any running one.

        The path is checked before anything else, so a failed start leaves
        an existing session running.

        Args:
            target: Target to observe

        Returns:
            Status of the new session

        Raises:
            PathNotFoundError: If the target path does not exist
            ValidationError: If the target path is not a directory
            AdapterError: If the observer cannot be started
        """
        async with self._lock:
            root = target.root
            if not root.exists():
                logger.warning("The path \"%s\" does not exist", target.path)
                raise PathNotFoundError(f"The path \"{target.path}\" does not exist", path=target.path)
            if not root.is_dir():
                raise ValidationError(
                    f"The path \"{target.path}\" is not a directory", field_name="path", actual_value=target.path
                )

            if self._session is not None:
                logger.info("Replacing active session on %s", self._session.target.path)
                self._release(self._session)
                self._session = None

            emit = partial(self.pipeline.submit, recipient=target.alert_recipient)
            watcher = self._watcher_factory(target, emit)
            watcher.start_watching()

            self._session = WatchSession(target=target, watcher=watcher)
            logger.info("Monitoring %s for %s", target.path, target.owner_identity)
            return self._status()

    async def stop(self) -> SessionStatus:
        """
        Stop the active session.

        Returns:
            Status after stopping (always inactive)

        Raises:
            NoActiveSessionError: If no session is active
        """
        async with self._lock:
            if self._session is None:
                raise NoActiveSessionError()

            session, self._session = self._session, None
            self._release(session)
            logger.info("Monitoring stopped for %s", session.target.path)
            return self._status()

    async def shutdown(self) -> None:
        """Stop the active session if there is one."""
        try:
            await self.stop()
        except NoActiveSessionError:
            logger.debug("No active session at shutdown")

    def _release(self, session: WatchSession) -> None:
        try:
            session.watcher.stop_watching()
        except AdapterError as e:
            logger.error("Error releasing watcher for %s: %s", session.target.path, e)

    def _status(self) -> SessionStatus:
        if self._session is None:
            return SessionStatus(active=False)
        return SessionStatus(
            active=True,
            owner_identity=self._session.target.owner_identity,
            path=self._session.target.path,
            started_at=self._session.started_at,
        )

    def status(self) -> SessionStatus:
        """Snapshot of the session slot."""
        return self._status()

    @property
    def is_active(self) -> bool:
        return self._session is not None

    @property
    def current_target(self) -> MonitorTarget | None:
        return self._session.target if self._session else None
