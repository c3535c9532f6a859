"""Core contracts shared by the storage, notification and auth layers."""

from change_monitor.core.interfaces import (
    IAccountStore,
    IChangeLogStore,
    ICredentialHasher,
    IMessageDispatcher,
    ITargetRegistry,
    ITokenService,
)

__all__ = [
    "IChangeLogStore",
    "ITargetRegistry",
    "IAccountStore",
    "IMessageDispatcher",
    "ICredentialHasher",
    "ITokenService",
]
