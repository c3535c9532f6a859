"""Data models and exceptions for the change monitor."""

from change_monitor.models.account import Account, AccountRole, RegistrationRequest, TokenClaims
from change_monitor.models.change_event import ChangeEvent, ChangeKind
from change_monitor.models.exceptions import (
    AdapterError,
    AlertDispatchError,
    AuthenticationError,
    BaseError,
    ConfigurationError,
    NoActiveSessionError,
    PathNotFoundError,
    PersistenceError,
    TargetNotFoundError,
    ValidationError,
)
from change_monitor.models.target import MonitorTarget, SessionStatus

__all__ = [
    "Account",
    "AccountRole",
    "RegistrationRequest",
    "TokenClaims",
    "ChangeEvent",
    "ChangeKind",
    "MonitorTarget",
    "SessionStatus",
    "BaseError",
    "ConfigurationError",
    "ValidationError",
    "PathNotFoundError",
    "TargetNotFoundError",
    "NoActiveSessionError",
    "AdapterError",
    "PersistenceError",
    "AlertDispatchError",
    "AuthenticationError",
]
