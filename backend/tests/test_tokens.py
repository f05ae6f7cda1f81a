# backend/tests/test_tokens.py
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from waitlist.auth.tokens import JWT_ALGORITHM, VerificationTokenService
from waitlist.errors import InvalidTokenError

SECRET = "unit-test-secret-0123456789abcdef"


@pytest.fixture
def tokens() -> VerificationTokenService:
    return VerificationTokenService(secret_key=SECRET, issuer="quantara", audience="user")


def test_issue_and_consume(tokens):
    token = tokens.issue(42, "bob@example.com")
    assert tokens.consume(token) == 42


def test_claims(tokens):
    now = datetime(2026, 10, 1, tzinfo=timezone.utc)
    token = tokens.issue(7, now=now)
    claims = jwt.get_unverified_claims(token)

    assert claims["sub"] == "7"
    assert claims["typ"] == "email-verify"
    assert claims["iss"] == "quantara"
    assert claims["aud"] == "user"
    assert claims["exp"] - claims["iat"] == int(timedelta(hours=48).total_seconds())


def test_expired_token_rejected(tokens):
    token = tokens.issue(42, now=datetime.now(timezone.utc) - timedelta(days=3))
    with pytest.raises(InvalidTokenError):
        tokens.consume(token)


def test_wrong_secret_rejected(tokens):
    other = VerificationTokenService(secret_key="another-secret-0123456789abcdef", issuer="quantara", audience="user")
    with pytest.raises(InvalidTokenError):
        tokens.consume(other.issue(42))


def test_wrong_type_rejected(tokens):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "42", "typ": "session", "iss": "quantara", "aud": "user", "iat": now, "exp": now + timedelta(hours=1)},
        SECRET,
        algorithm=JWT_ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        tokens.consume(token)


def test_non_numeric_subject_rejected(tokens):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "bob", "typ": "email-verify", "iss": "quantara", "aud": "user", "iat": now, "exp": now + timedelta(hours=1)},
        SECRET,
        algorithm=JWT_ALGORITHM,
    )
    with pytest.raises(InvalidTokenError):
        tokens.consume(token)


def test_garbage_rejected(tokens):
    with pytest.raises(InvalidTokenError):
        tokens.consume("not-a-jwt")
