"""
Notification fan-out for observed changes.

Pushes each event to live WebSocket subscribers and sends an out-of-band
alert to the target's recipient. Neither operation raises into the caller.
"""

import logging

from change_monitor.core.interfaces import IMessageDispatcher
from change_monitor.models import ChangeEvent
from change_monitor.notifications.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

ALERT_SUBJECT = "File Event Notification"


class NotificationFanout:
    """Distributes one ChangeEvent to subscribers and the alert recipient."""

    def __init__(self, connections: ConnectionManager, dispatcher: IMessageDispatcher | None = None):
        self.connections = connections
        self.dispatcher = dispatcher

    @property
    def alerts_enabled(self) -> bool:
        return self.dispatcher is not None

    async def broadcast(self, event: ChangeEvent) -> int:
        """
        Push an event to every connected subscriber.

        Returns:
            Number of subscribers reached
        """
        delivered = await self.connections.broadcast(event.to_message())
        logger.debug("Broadcast %s to %d subscribers", event, delivered)
        return delivered

    async def alert(self, recipient: str, event: ChangeEvent) -> bool:
        """
        Send an alert about an event.

        Returns:
            True if the message was handed to the transport, False otherwise
        """
        if self.dispatcher is None:
            logger.debug("No message dispatcher configured, skipping alert for %s", event)
            return False

        body = f"File {event.change_kind.value} on {event.path} at {event.timestamp.isoformat()}"
        try:
            await self.dispatcher.send(recipient, ALERT_SUBJECT, body)
            logger.info("Alert sent to %s for %s", recipient, event)
            return True
        except Exception as e:
            logger.error("Error sending alert to %s for %s: %s", recipient, event, e)
            return False
