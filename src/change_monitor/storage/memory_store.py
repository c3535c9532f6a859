"""
In-memory storage backends.

Used for local runs without MongoDB and throughout the test suite. Data
lives only as long as the process.
"""

import itertools
import logging
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from change_monitor.core.interfaces import IAccountStore, IChangeLogStore, ITargetRegistry
from change_monitor.models import Account, ChangeEvent, MonitorTarget, ValidationError
from change_monitor.models.exceptions import raise_validation_error

logger = logging.getLogger(__name__)


class InMemoryChangeLogStore(IChangeLogStore):
    """Append-only change log kept in a list."""

    def __init__(self):
        self._events: list[tuple[int, ChangeEvent]] = []
        self._sequence = itertools.count()

    async def initialize(self) -> None:
        logger.debug("In-memory change log ready")

    async def append(self, event: ChangeEvent) -> None:
        self._events.append((next(self._sequence), event))

    async def list_recent(self, limit: int | None = None) -> list[ChangeEvent]:
        # Newest first; insertion order breaks timestamp ties
        ordered = sorted(self._events, key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        events = [event for _, event in ordered]
        return events[:limit] if limit is not None else events

    def __len__(self) -> int:
        return len(self._events)


class InMemoryTargetRegistry(ITargetRegistry):
    """Monitor targets keyed by owner identity."""

    def __init__(self):
        self._targets: dict[str, MonitorTarget] = {}

    async def initialize(self) -> None:
        logger.debug("In-memory target registry ready")

    async def upsert(self, data: dict) -> MonitorTarget:
        try:
            incoming = MonitorTarget.model_validate(data)
        except PydanticValidationError as e:
            raise_validation_error("monitor configuration", e)

        supplied = incoming.model_dump(exclude_unset=True, exclude={"created_at", "updated_at", "alert_recipient"})
        existing = self._targets.get(incoming.owner_identity)

        if existing is None:
            stored = incoming
        else:
            stored = existing.model_copy(update={**supplied, "updated_at": datetime.now(UTC)})

        self._targets[stored.owner_identity] = stored
        return stored

    async def find(self, owner_identity: str | None = None) -> MonitorTarget | None:
        if owner_identity is not None:
            return self._targets.get(owner_identity.strip())
        if not self._targets:
            return None
        return max(self._targets.values(), key=lambda target: target.updated_at)


class InMemoryAccountStore(IAccountStore):
    """Registered accounts keyed by email."""

    def __init__(self):
        self._accounts: dict[str, Account] = {}

    async def initialize(self) -> None:
        logger.debug("In-memory account store ready")

    async def add(self, account: Account) -> None:
        if account.email in self._accounts:
            raise ValidationError("Email is already registered", field_name="email", actual_value=account.email)
        self._accounts[account.email] = account

    async def get_by_email(self, email: str) -> Account | None:
        return self._accounts.get(email.strip().lower())
