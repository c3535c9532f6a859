"""
Monitoring package for file system change detection.

This package provides the watcher that turns filesystem notifications into
change events, the pipeline that persists and fans them out, and the
session manager that owns the single active watch.
"""

from .file_watcher import ChangeEventWatcher
from .pipeline import ChangeEventPipeline
from .session_manager import WatchSession, WatchSessionManager

__all__ = [
    "ChangeEventWatcher",
    "ChangeEventPipeline",
    "WatchSession",
    "WatchSessionManager",
]
