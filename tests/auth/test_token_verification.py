"""Tests for identity-token verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from conftest import make_token

from movibeers.auth.jwt import verify_token
from movibeers.config import get_settings


class TestVerifyToken:
    def test_valid_token(self):
        payload = verify_token(make_token("alice"))
        assert payload["sub"] == "alice"

    def test_extra_claims_preserved(self):
        payload = verify_token(make_token("alice", email="alice@example.com"))
        assert payload["email"] == "alice@example.com"

    def test_expired(self):
        token = make_token("alice", exp=datetime.now(timezone.utc) - timedelta(seconds=5))
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(token)

    def test_empty_subject(self):
        with pytest.raises(jwt.InvalidTokenError, match="empty subject"):
            verify_token(make_token("  "))

    def test_missing_exp(self):
        token = jwt.encode({"sub": "alice"}, get_settings().jwt_secret, algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": "alice", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
