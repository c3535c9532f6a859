"""
Data models for user accounts and access token claims.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AccountRole(str, Enum):
    """Account role enumeration."""

    ADMIN = "admin"
    USER = "user"


class RegistrationRequest(BaseModel):
    """Payload accepted by account registration."""

    usertype: AccountRole = Field(..., description="Requested role")
    secretkey: str | None = Field(None, description="Admin registration secret")
    fullname: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    mobile: str = Field(..., min_length=1, max_length=32)
    password: str = Field(..., min_length=8, max_length=256)
    confirmpassword: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.lower()

    @model_validator(mode='after')
    def passwords_match(self):
        if self.password != self.confirmpassword:
            raise ValueError("password and confirmpassword do not match")
        return self


class Account(BaseModel):
    """A registered account. Only the password hash is kept."""

    id: UUID = Field(default_factory=uuid4)
    role: AccountRole = Field(default=AccountRole.USER)
    fullname: str
    email: str
    mobile: str
    password_hash: str = Field(..., repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_document(self) -> dict[str, Any]:
        data = self.model_dump()
        data["id"] = str(self.id)
        data["role"] = self.role.value
        return data

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Account":
        return cls.model_validate({key: value for key, value in document.items() if key != "_id"})

    def to_public(self) -> dict[str, Any]:
        """Account fields safe to return over the API."""
        return self.model_dump(mode="json", exclude={"password_hash"})


class TokenClaims(BaseModel):
    """Claims carried by an access token."""

    subject: str
    role: AccountRole
    expires_at: datetime
