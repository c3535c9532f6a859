"""Unit tests for account models."""

import pytest
from change_monitor.models import Account, AccountRole, RegistrationRequest
from pydantic import ValidationError


def registration(**overrides):
    data = {
        "usertype": "user",
        "fullname": "Ana Lima",
        "email": "Ana@Example.com",
        "mobile": "+351900000000",
        "password": "correct horse",
        "confirmpassword": "correct horse",
    }
    data.update(overrides)
    return data


class TestRegistrationRequest:
    def test_valid_registration(self):
        request = RegistrationRequest.model_validate(registration())

        assert request.usertype == AccountRole.USER
        assert request.email == "ana@example.com"

    def test_password_mismatch(self):
        with pytest.raises(ValidationError, match="do not match"):
            RegistrationRequest.model_validate(registration(confirmpassword="something else"))

    def test_unknown_usertype(self):
        with pytest.raises(ValidationError):
            RegistrationRequest.model_validate(registration(usertype="root"))

    def test_email_requires_at_sign(self):
        with pytest.raises(ValidationError):
            RegistrationRequest.model_validate(registration(email="not-an-email"))


class TestAccount:
    def test_public_view_hides_hash(self):
        account = Account(fullname="Ana", email="ana@example.com", mobile="1", password_hash="secret-hash")
        public = account.to_public()

        assert "password_hash" not in public
        assert public["role"] == "user"

    def test_document_round_trip(self):
        account = Account(
            role=AccountRole.ADMIN, fullname="Ana", email="ana@example.com", mobile="1", password_hash="h"
        )
        document = account.to_document()
        document["_id"] = "object-id"

        assert document["role"] == "admin"
        assert Account.from_document(document) == account
