"""
Abstract interfaces for the change monitor.

These interfaces define the contracts for storage backends and external
collaborators (mail transport, password hashing, token signing), enabling
dependency injection for testing and alternative implementations.
"""

from abc import ABC, abstractmethod

from change_monitor.models import Account, AccountRole, ChangeEvent, MonitorTarget, TokenClaims


class IChangeLogStore(ABC):
    """Interface for the append-only change log."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backing storage (indexes, collections).

        Raises:
            PersistenceError: If the storage cannot be prepared
        """
        pass

    @abstractmethod
    async def append(self, event: ChangeEvent) -> None:
        """
        Persist one change event.

        Args:
            event: Event to store

        Raises:
            PersistenceError: If the event cannot be stored
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: int | None = None) -> list[ChangeEvent]:
        """
        Return stored events ordered newest first.

        Args:
            limit: Optional maximum number of events to return

        Returns:
            Events sorted by descending timestamp

        Raises:
            PersistenceError: If the events cannot be read
        """
        pass


class ITargetRegistry(ABC):
    """Interface for storing monitor targets keyed by owner identity."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backing storage."""
        pass

    @abstractmethod
    async def upsert(self, data: dict) -> MonitorTarget:
        """
        Insert or update the target for an owner.

        Args:
            data: Target fields; owner identity, path and tracked files are required

        Returns:
            The stored target

        Raises:
            ValidationError: If required fields are missing or malformed
            PersistenceError: If the target cannot be stored
        """
        pass

    @abstractmethod
    async def find(self, owner_identity: str | None = None) -> MonitorTarget | None:
        """
        Look up a target.

        Args:
            owner_identity: Owner to look up; the most recently updated target when None

        Returns:
            The stored target, or None when nothing matches

        Raises:
            PersistenceError: If the lookup fails
        """
        pass


class IAccountStore(ABC):
    """Interface for persisting registered accounts."""

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def add(self, account: Account) -> None:
        """
        Store a new account.

        Raises:
            ValidationError: If the email is already registered
            PersistenceError: If the account cannot be stored
        """
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None:
        pass


class IMessageDispatcher(ABC):
    """Interface for the outbound message (email) transport."""

    @abstractmethod
    async def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Deliver one message.

        Raises:
            AlertDispatchError: If the message cannot be delivered
        """
        pass


class ICredentialHasher(ABC):
    """Interface for password hashing and verification."""

    @abstractmethod
    def hash(self, password: str) -> str:
        pass

    @abstractmethod
    def verify(self, password: str, encoded: str) -> bool:
        pass


class ITokenService(ABC):
    """Interface for access token issuance and verification."""

    @abstractmethod
    def issue(self, subject: str, role: AccountRole) -> str:
        pass

    @abstractmethod
    def verify(self, token: str) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            AuthenticationError: If the token is malformed, forged or expired
        """
        pass
