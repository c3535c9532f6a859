"""
Data models for observed filesystem changes.

A ChangeEvent is produced once per normalized filesystem signal, persisted
append-only by the change log store and pushed to live subscribers.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChangeKind(str, Enum):
    """Kind of filesystem change."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class ChangeEvent(BaseModel):
    """
    Represents a single observed change to a file.

    Events are immutable once created. The wire form uses camelCase keys
    (``changeKind``) and an ISO-8601 timestamp.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique event identifier")
    path: str = Field(..., min_length=1, description="Absolute path of the affected file")
    change_kind: ChangeKind = Field(..., alias="changeKind", description="What happened to the file")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the change was observed (UTC)",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator('timestamp')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps (as returned by some drivers) as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    def to_message(self) -> dict[str, Any]:
        """Serialize for the real-time channel and the HTTP API."""
        return self.model_dump(mode="json", by_alias=True)

    def to_document(self) -> dict[str, Any]:
        """Serialize for storage, keeping native datetimes."""
        return {
            "event_id": str(self.id),
            "path": self.path,
            "change_kind": self.change_kind.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "ChangeEvent":
        """Rebuild an event from its stored form."""
        return cls(
            id=document["event_id"],
            path=document["path"],
            change_kind=document["change_kind"],
            timestamp=document["timestamp"],
        )

    def __str__(self) -> str:
        return f"ChangeEvent({self.change_kind.value}: {self.path})"
