"""HTTP and WebSocket API."""

from change_monitor.api.app import create_app

__all__ = ["create_app"]
