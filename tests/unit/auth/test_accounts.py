"""Unit tests for account registration and login."""

import threading
from unittest.mock import Mock

import pytest
from change_monitor.auth import AccountService, JwtTokenService, Pbkdf2CredentialHasher
from change_monitor.models import AccountRole, AuthenticationError, ValidationError
from change_monitor.storage import InMemoryAccountStore


def registration(**overrides):
    data = {
        "usertype": "user",
        "fullname": "Ana Lima",
        "email": "ana@example.com",
        "mobile": "+351900000000",
        "password": "correct horse",
        "confirmpassword": "correct horse",
    }
    data.update(overrides)
    return data


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def service(store):
    return AccountService(
        store=store,
        hasher=Pbkdf2CredentialHasher(iterations=1000),
        tokens=JwtTokenService("unit-test-signing-key-0123456789abcdef"),
        admin_secret_key="let-me-admin",
    )


class TestAccountService:
    @pytest.mark.asyncio
    async def test_register_user(self, service, store):
        account = await service.register(registration())

        assert account.role == AccountRole.USER
        assert account.password_hash != "correct horse"
        assert await store.get_by_email("ana@example.com") == account

    @pytest.mark.asyncio
    async def test_register_admin_requires_secret(self, service):
        with pytest.raises(ValidationError, match="admin secret"):
            await service.register(registration(usertype="admin", secretkey="guess"))

        account = await service.register(registration(usertype="admin", secretkey="let-me-admin"))
        assert account.role == AccountRole.ADMIN

    @pytest.mark.asyncio
    async def test_admin_registration_closed_without_configured_secret(self, store):
        service = AccountService(
            store=store,
            hasher=Pbkdf2CredentialHasher(iterations=1000),
            tokens=JwtTokenService("unit-test-signing-key-0123456789abcdef"),
        )

        with pytest.raises(ValidationError):
            await service.register(registration(usertype="admin", secretkey=""))

    @pytest.mark.asyncio
    async def test_register_password_mismatch(self, service):
        with pytest.raises(ValidationError, match="do not match"):
            await service.register(registration(confirmpassword="different"))

    @pytest.mark.asyncio
    async def test_register_missing_fields(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.register({"email": "ana@example.com"})

        assert "fullname" in exc_info.value.context["fields"]

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, service):
        await service.register(registration())

        with pytest.raises(ValidationError, match="already registered"):
            await service.register(registration(fullname="Someone Else"))

    @pytest.mark.asyncio
    async def test_login_issues_token(self, service):
        account = await service.register(registration())

        token = await service.login("ana@example.com", "correct horse")
        claims = service.authenticate(token)

        assert claims.subject == str(account.id)
        assert claims.role == AccountRole.USER

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, service):
        await service.register(registration())

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await service.login("ana@example.com", "wrong password")

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, service):
        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await service.login("nobody@example.com", "correct horse")

    @pytest.mark.asyncio
    async def test_login_missing_credentials(self, service):
        with pytest.raises(AuthenticationError) as exc_info:
            await service.login("", None)

        assert exc_info.value.context["reason"] == "missing_credentials"

    @pytest.mark.asyncio
    async def test_hashing_runs_off_the_event_loop(self, store):
        loop_thread = threading.get_ident()
        hasher = Pbkdf2CredentialHasher(iterations=1000)
        threads = []

        def record(method):
            def wrapper(*args):
                threads.append(threading.get_ident())
                return method(*args)

            return wrapper

        tracking_hasher = Mock(hash=record(hasher.hash), verify=record(hasher.verify))
        service = AccountService(
            store=store,
            hasher=tracking_hasher,
            tokens=JwtTokenService("unit-test-signing-key-0123456789abcdef"),
        )

        await service.register(registration())
        await service.login("ana@example.com", "correct horse")

        assert len(threads) == 2
        assert loop_thread not in threads
