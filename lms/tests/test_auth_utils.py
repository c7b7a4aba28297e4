"""
Tests for password hashing and JWT helpers.
"""

import pytest

from lms.common.auth.exceptions import ExpiredTokenError, InvalidTokenError
from lms.common.auth.jwt import (
    TokenType, create_access_token, create_refresh_token, get_token_identity, validate_token
)
from lms.common.auth.password import hash_password, validate_admin_password, verify_password


def test_hash_and_verify_password():
    encoded = hash_password("secret123")
    assert encoded != "secret123"
    assert verify_password("secret123", encoded)
    assert not verify_password("wrong", encoded)


def test_verify_password_rejects_malformed_hash():
    assert not verify_password("secret123", "not-a-hash")


def test_same_password_gets_different_salts():
    assert hash_password("secret123") != hash_password("secret123")


def test_admin_password_policy():
    ok, message = validate_admin_password("short")
    assert not ok
    assert message.startswith("Admin password requirements:")
    assert "uppercase" in message

    assert validate_admin_password("Admin#Passw0rd!") == (True, None)


def test_access_token_round_trip():
    token = create_access_token("user-1", additional_claims={"role": "STUDENT"})
    payload = validate_token(token, TokenType.ACCESS)
    assert get_token_identity(payload) == "user-1"
    assert payload["role"] == "STUDENT"


def test_refresh_token_is_not_an_access_token():
    token = create_refresh_token("user-1")
    with pytest.raises(InvalidTokenError):
        validate_token(token, TokenType.ACCESS)


def test_expired_token():
    token = create_access_token("user-1", expires_in=-1)
    with pytest.raises(ExpiredTokenError):
        validate_token(token, TokenType.ACCESS)


def test_tampered_token():
    token = create_access_token("user-1")
    with pytest.raises(InvalidTokenError):
        validate_token(token + "x", TokenType.ACCESS)
