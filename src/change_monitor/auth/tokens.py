"""JWT access tokens."""

import logging
from datetime import UTC, datetime, timedelta

import jwt

from change_monitor.core.interfaces import ITokenService
from change_monitor.models import AccountRole, AuthenticationError, ConfigurationError, TokenClaims

logger = logging.getLogger(__name__)


class JwtTokenService(ITokenService):
    """Issues and verifies signed JWTs carrying subject, role and expiry."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expiry_seconds: int = 3600):
        if not secret_key:
            raise ConfigurationError("A token signing key is required", config_key="secret_key")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expiry_seconds = expiry_seconds

    def issue(self, subject: str, role: AccountRole) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": subject,
            "role": AccountRole(role).value,
            "iat": now,
            "exp": now + timedelta(seconds=self.expiry_seconds),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired", reason="expired") from e
        except jwt.InvalidTokenError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthenticationError("Invalid token", reason="invalid") from e

        try:
            return TokenClaims(
                subject=payload["sub"],
                role=payload["role"],
                expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            )
        except ValueError as e:
            raise AuthenticationError("Invalid token claims", reason="claims") from e
