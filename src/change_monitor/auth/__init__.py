"""Account registration, password hashing and access tokens."""

from change_monitor.auth.accounts import AccountService
from change_monitor.auth.passwords import Pbkdf2CredentialHasher
from change_monitor.auth.tokens import JwtTokenService

__all__ = ["AccountService", "Pbkdf2CredentialHasher", "JwtTokenService"]
