"""
Data models for monitor targets and watch session status.
"""

import fnmatch
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class MonitorTarget(BaseModel):
    """
    A directory tree to observe and the settings that go with it.

    Targets are keyed by the owner identity (the owner's email address); at
    most one target is stored per owner.
    """

    owner_identity: str = Field(..., min_length=1, alias="ownerIdentity", description="Owner email, natural key")
    name: str | None = Field(None, description="Optional display name")
    path: str = Field(..., min_length=1, description="Root directory to observe")
    interval: float = Field(default=1.0, gt=0, le=3600, description="Observer polling interval in seconds")
    tracked_files: list[str] = Field(
        ..., alias="trackedFiles", description="Glob patterns of files to report; empty means every file"
    )
    recipient: str | None = Field(None, description="Alert email recipient (defaults to the owner)")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="createdAt")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    @field_validator('tracked_files')
    @classmethod
    def validate_tracked_files(cls, v):
        """Drop blank patterns."""
        return [pattern.strip() for pattern in v if pattern and pattern.strip()]

    @field_validator('created_at', 'updated_at')
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @computed_field
    @property
    def alert_recipient(self) -> str | None:
        """Address that receives alerts for this target."""
        if self.recipient:
            return self.recipient
        return self.owner_identity if "@" in self.owner_identity else None

    @property
    def root(self) -> Path:
        return Path(self.path).expanduser()

    def tracks(self, file_path: str | Path) -> bool:
        """
        Check whether a file matches the tracked patterns.

        Patterns are matched against the file name and against the path
        relative to the root, so both ``*.txt`` and ``docs/*.md`` work.
        """
        if not self.tracked_files:
            return True

        path = Path(file_path)
        relative = path.as_posix()
        for root in (self.root, self.root.resolve()):
            try:
                relative = path.relative_to(root).as_posix()
                break
            except ValueError:
                continue

        return any(
            fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern)
            for pattern in self.tracked_files
        )

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "MonitorTarget":
        data = {key: value for key, value in document.items() if key != "_id"}
        data.pop("alert_recipient", None)
        return cls.model_validate(data)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SessionStatus(BaseModel):
    """Read-only snapshot of the watch session slot."""

    active: bool = Field(..., description="Whether a session is running")
    owner_identity: str | None = Field(None, alias="ownerIdentity")
    path: str | None = Field(None, description="Observed root path")
    started_at: datetime | None = Field(None, alias="startedAt")

    model_config = ConfigDict(populate_by_name=True)

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
