"""
Unit Tests for password hashing and JWT tokens
"""

from datetime import timedelta

import jwt
import pytest

from agentdesk.security import (
    create_access_token,
    hash_password,
    password_problem,
    verify_password,
)
from agentdesk.security.jwt_handler import verify_token


class TestPasswords:
    """Test suite for bcrypt helpers"""

    def test_hash_and_verify(self):
        hashed = hash_password("mypassword123")

        assert hashed.startswith("$2b$")
        assert verify_password("mypassword123", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(ValueError):
            hash_password("")

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("mypassword123", "not-a-bcrypt-hash") is False
        assert verify_password("", "anything") is False

    def test_password_problems(self):
        assert password_problem("secret123") is None
        assert password_problem("") == "Password is required"
        assert "at least 6" in password_problem("abc")
        assert "72 bytes" in password_problem("é" * 40)


class TestTokens:
    """Test suite for JWT handling"""

    def test_round_trip_claims(self):
        token = create_access_token(user_id=42, email="owner@acme.com", role="client")

        payload = verify_token(token)

        assert payload.sub == "42"
        assert payload.user_id == 42
        assert payload.email == "owner@acme.com"
        assert payload.role == "client"
        assert payload.jti

    def test_expired_token(self):
        token = create_access_token(42, "owner@acme.com", "client", expires_delta=timedelta(seconds=-1))

        with pytest.raises(jwt.ExpiredSignatureError):
            verify_token(token)

    def test_token_signed_with_another_key(self):
        forged = jwt.encode({"sub": "42", "role": "admin"}, "not-the-server-key", algorithm="HS256")

        with pytest.raises(jwt.InvalidTokenError):
            verify_token(forged)

    def test_garbage_token(self):
        with pytest.raises(jwt.InvalidTokenError):
            verify_token("not.a.token")
