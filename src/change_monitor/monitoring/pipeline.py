"""
Event processing pipeline between the watcher and its consumers.

The watcher only enqueues; a dedicated consumer task takes each event
through persist, broadcast and alert so that slow storage or mail servers
never hold up event intake.
"""

import asyncio
import logging
from typing import Any

from change_monitor.core.interfaces import IChangeLogStore
from change_monitor.models import ChangeEvent, PersistenceError
from change_monitor.notifications.fanout import NotificationFanout

logger = logging.getLogger(__name__)


class ChangeEventPipeline:
    """
    Queue plus consumer task for ChangeEvents.

    Per event the steps run in order: persist (best effort), broadcast to
    live subscribers, then alert the recipient in the background. A failure
    in one step is logged and counted and never skips the others.
    """

    def __init__(
        self,
        change_log: IChangeLogStore,
        fanout: NotificationFanout,
        queue_size: int = 0,
        drain_timeout: float = 5.0,
    ):
        self.change_log = change_log
        self.fanout = fanout
        self.drain_timeout = drain_timeout

        self._queue: asyncio.Queue[tuple[ChangeEvent, str | None]] = asyncio.Queue(maxsize=queue_size)
        self._consumer: asyncio.Task | None = None
        self._alert_tasks: set[asyncio.Task] = set()

        self._stats = {
            "events_received": 0,
            "events_dropped": 0,
            "events_persisted": 0,
            "persistence_failures": 0,
            "broadcast_deliveries": 0,
            "alerts_sent": 0,
            "alerts_failed": 0,
        }

    def submit(self, event: ChangeEvent, recipient: str | None = None) -> None:
        """
        Enqueue an event without waiting. Must be called on the loop thread.

        Args:
            event: Event to process
            recipient: Alert recipient for this event, if any
        """
        try:
            self._queue.put_nowait((event, recipient))
            self._stats["events_received"] += 1
        except asyncio.QueueFull:
            self._stats["events_dropped"] += 1
            logger.error("Event queue full, dropping %s", event)

    def start(self) -> None:
        """Launch the consumer task on the running loop."""
        if self.is_running:
            return
        self._consumer = asyncio.create_task(self._consume(), name="change-event-pipeline")
        logger.info("Change event pipeline started")

    async def stop(self) -> None:
        """Drain queued events (bounded by the drain timeout), then stop the consumer."""
        if self._consumer is None:
            return

        if not self._queue.empty():
            try:
                await asyncio.wait_for(self._queue.join(), timeout=self.drain_timeout)
            except TimeoutError:
                logger.warning("Timed out draining %d queued events", self._queue.qsize())

        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

        if self._alert_tasks:
            await asyncio.gather(*self._alert_tasks, return_exceptions=True)

        logger.info("Change event pipeline stopped")

    async def _consume(self) -> None:
        while True:
            event, recipient = await self._queue.get()
            try:
                await self.process(event, recipient)
            except Exception as e:
                logger.error("Unexpected error processing %s: %s", event, e)
            finally:
                self._queue.task_done()

    async def process(self, event: ChangeEvent, recipient: str | None = None) -> None:
        """
        Run one event through persist, broadcast and alert.

        Args:
            event: Event to process
            recipient: Alert recipient, skipped when None
        """
        logger.info("File %s: %s", event.change_kind.value, event.path)

        try:
            await self.change_log.append(event)
            self._stats["events_persisted"] += 1
        except PersistenceError as e:
            self._stats["persistence_failures"] += 1
            logger.error("Failed to persist %s: %s", event, e)
        except Exception as e:
            self._stats["persistence_failures"] += 1
            logger.error("Unexpected storage error persisting %s: %s", event, e)

        try:
            self._stats["broadcast_deliveries"] += await self.fanout.broadcast(event)
        except Exception as e:
            logger.error("Failed to broadcast %s: %s", event, e)

        if recipient and self.fanout.alerts_enabled:
            task = asyncio.create_task(self._alert(recipient, event))
            self._alert_tasks.add(task)
            task.add_done_callback(self._alert_tasks.discard)

    async def _alert(self, recipient: str, event: ChangeEvent) -> None:
        if await self.fanout.alert(recipient, event):
            self._stats["alerts_sent"] += 1
        else:
            self._stats["alerts_failed"] += 1

    async def wait_idle(self) -> None:
        """Wait until every queued event and pending alert has been handled."""
        await self._queue.join()
        if self._alert_tasks:
            await asyncio.gather(*list(self._alert_tasks), return_exceptions=True)

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def queued_count(self) -> int:
        return self._queue.qsize()

    def get_stats(self) -> dict[str, Any]:
        """Get pipeline counters."""
        return {**self._stats, "queued": self.queued_count, "running": self.is_running}
