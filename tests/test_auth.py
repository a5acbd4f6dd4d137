"""
Unit tests for password hashing and session tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from workitems.auth import TokenIssuer, hash_password, verify_password
from workitems.config import Settings
from workitems.errors import Err, ErrorKind, Ok


@pytest.fixture
def issuer(settings):
    return TokenIssuer(settings)


class TestPasswordHashing:

    def test_hash_is_salted(self):
        first = hash_password("password123")
        second = hash_password("password123")

        assert first != "password123"
        assert first != second
        assert verify_password("password123", first)
        assert verify_password("password123", second)

    def test_wrong_password(self):
        assert not verify_password("wrong", hash_password("password123"))

    def test_malformed_hash(self):
        assert verify_password("password123", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_accepted(self):
        """Only the first 72 bytes are significant."""
        long_password = "x" * 100
        hashed = hash_password(long_password)

        assert verify_password(long_password, hashed)
        assert verify_password("x" * 72, hashed)


class TestTokenIssuer:

    def test_issue_and_validate(self, issuer):
        user_id = uuid.uuid4()
        token, expires_at = issuer.issue(user_id, "alice", "alice@example.com")

        result = issuer.validate(token)

        assert isinstance(result, Ok)
        assert result.value.user_id == user_id
        assert result.value.username == "alice"
        assert result.value.email == "alice@example.com"
        assert result.value.expires_at == expires_at

    def test_claims(self, issuer, settings):
        token, _ = issuer.issue(uuid.uuid4(), "alice", "alice@example.com")

        claims = jwt.get_unverified_claims(token)

        assert claims["iss"] == settings.JWT_ISSUER == "WorkItemsApi"
        assert claims["aud"] == settings.JWT_AUDIENCE == "WorkItemsApiUsers"
        assert claims["unique_name"] == "alice"
        assert claims["exp"] - claims["iat"] == 24 * 3600
        assert jwt.get_unverified_header(token)["alg"] == "HS256"

    def test_token_ids_are_unique(self, issuer):
        user_id = uuid.uuid4()
        first, _ = issuer.issue(user_id, "alice", "alice@example.com")
        second, _ = issuer.issue(user_id, "alice", "alice@example.com")

        assert issuer.validate(first).value.token_id != issuer.validate(second).value.token_id

    def test_expires_in_configured_hours(self, issuer):
        _, expires_at = issuer.issue(uuid.uuid4(), "alice", "alice@example.com")

        remaining = expires_at - datetime.now(timezone.utc)
        assert timedelta(hours=23, minutes=59) < remaining <= timedelta(hours=24)

    def test_expired_token_rejected(self, issuer):
        token, _ = issuer.issue(uuid.uuid4(), "alice", "alice@example.com", expires_delta=timedelta(seconds=-1))

        result = issuer.validate(token)

        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.UNAUTHENTICATED

    def test_wrong_secret_rejected(self, issuer):
        other = TokenIssuer(Settings(JWT_SECRET_KEY="AnotherSecretThatIsAlsoAtLeast32CharsLong!!"))
        token, _ = other.issue(uuid.uuid4(), "alice", "alice@example.com")

        assert issuer.validate(token).error.kind is ErrorKind.UNAUTHENTICATED

    def test_wrong_audience_rejected(self, issuer):
        other = TokenIssuer(Settings(JWT_AUDIENCE="SomeoneElse"))
        token, _ = other.issue(uuid.uuid4(), "alice", "alice@example.com")

        assert isinstance(issuer.validate(token), Err)

    def test_wrong_issuer_rejected(self, issuer):
        other = TokenIssuer(Settings(JWT_ISSUER="SomeoneElse"))
        token, _ = other.issue(uuid.uuid4(), "alice", "alice@example.com")

        assert isinstance(issuer.validate(token), Err)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token_rejected(self, issuer, token):
        assert isinstance(issuer.validate(token), Err)

    def test_failures_are_indistinguishable(self, issuer):
        expired, _ = issuer.issue(uuid.uuid4(), "alice", "alice@example.com", expires_delta=timedelta(seconds=-1))

        assert issuer.validate(expired) == issuer.validate("garbage")
