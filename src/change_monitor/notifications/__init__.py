"""
Notification package: real-time subscribers and email alerts.
"""

from .connection_manager import ConnectionManager
from .email_dispatcher import SmtpMessageDispatcher
from .fanout import NotificationFanout

__all__ = [
    "ConnectionManager",
    "NotificationFanout",
    "SmtpMessageDispatcher",
]
