"""
Account registration and login.
"""

import asyncio
import hmac
import logging

from pydantic import ValidationError as PydanticValidationError

from change_monitor.core.interfaces import IAccountStore, ICredentialHasher, ITokenService
from change_monitor.models import (
    Account,
    AccountRole,
    AuthenticationError,
    RegistrationRequest,
    TokenClaims,
    ValidationError,
)
from change_monitor.models.exceptions import raise_validation_error

logger = logging.getLogger(__name__)


class AccountService:
    """
    Registers accounts and exchanges credentials for access tokens.

    Admin accounts can only be registered with the configured admin secret.
    """

    def __init__(
        self,
        store: IAccountStore,
        hasher: ICredentialHasher,
        tokens: ITokenService,
        admin_secret_key: str | None = None,
    ):
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.admin_secret_key = admin_secret_key

    async def register(self, data: dict) -> Account:
        """
        Register a new account.

        Args:
            data: Registration payload

        Returns:
            The stored account

        Raises:
            ValidationError: If the payload is invalid, the admin secret is wrong
                or the email is taken
        """
        try:
            request = RegistrationRequest.model_validate(data)
        except PydanticValidationError as e:
            raise_validation_error("registration", e)

        if request.usertype == AccountRole.ADMIN and not self._admin_secret_matches(request.secretkey):
            raise ValidationError("Invalid admin secret key", field_name="secretkey", validation_rule="admin_secret")

        # Hashing runs in a worker thread, never on the event loop
        password_hash = await asyncio.to_thread(self.hasher.hash, request.password)
        account = Account(
            role=request.usertype,
            fullname=request.fullname,
            email=request.email,
            mobile=request.mobile,
            password_hash=password_hash,
        )
        await self.store.add(account)
        logger.info("Registered %s account %s", account.role.value, account.email)
        return account

    def _admin_secret_matches(self, supplied: str | None) -> bool:
        if not self.admin_secret_key or not supplied:
            return False
        return hmac.compare_digest(supplied.encode("utf-8"), self.admin_secret_key.encode("utf-8"))

    async def login(self, email: str | None, password: str | None) -> str:
        """
        Verify credentials and issue an access token.

        Raises:
            AuthenticationError: If the email is unknown or the password is wrong
        """
        if not email or not password:
            raise AuthenticationError("Email and password are required", reason="missing_credentials")

        account = await self.store.get_by_email(email)
        verified = account is not None and await asyncio.to_thread(self.hasher.verify, password, account.password_hash)
        if not verified:
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password", reason="bad_credentials")

        return self.tokens.issue(str(account.id), account.role)

    def authenticate(self, token: str) -> TokenClaims:
        """Verify an access token and return its claims."""
        return self.tokens.verify(token)
