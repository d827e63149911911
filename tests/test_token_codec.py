"""Signed admin tokens and password hashing."""
from datetime import timedelta

import pytest
from jose import jwt

from apps.dashboard.auth import (
    TokenPayload,
    create_access_token,
    hash_password,
    verify_password,
    verify_token,
)
from apps.dashboard.config import ConfigurationError, Settings, require_jwt_secret, get_settings

PAYLOAD = TokenPayload(admin_id="a-1", username="operator", name="Operator Desa", role="village_admin")


def test_token_roundtrip_returns_same_identity():
    token = create_access_token(PAYLOAD)
    decoded = verify_token(token)
    assert decoded == PAYLOAD


def test_token_expires_24h_after_issue():
    token = create_access_token(PAYLOAD)
    claims = jwt.get_unverified_claims(token)
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_tokens_for_same_admin_are_distinct():
    assert create_access_token(PAYLOAD) != create_access_token(PAYLOAD)


def test_expired_token_is_invalid():
    token = create_access_token(PAYLOAD, expires_delta=timedelta(seconds=-5))
    assert verify_token(token) is None


def test_tampered_token_is_invalid():
    token = create_access_token(PAYLOAD)
    header, body, sig = token.split(".")
    forged_body = jwt.encode({"adminId": "a-1", "username": "operator", "role": "superadmin"}, "x").split(".")[1]
    assert verify_token(f"{header}.{forged_body}.{sig}") is None


def test_token_signed_with_other_secret_is_invalid():
    s = get_settings()
    foreign = jwt.encode(
        {"adminId": "a-1", "username": "operator", "name": "", "role": "superadmin"},
        "another-secret",
        algorithm=s.jwt_algorithm,
    )
    assert verify_token(foreign) is None


@pytest.mark.parametrize("value", [None, "", "not-a-jwt", "a.b.c"])
def test_garbage_is_invalid(value):
    assert verify_token(value) is None


def test_token_without_identity_claims_is_invalid():
    s = get_settings()
    token = jwt.encode({"sub": "x"}, require_jwt_secret(s), algorithm=s.jwt_algorithm)
    assert verify_token(token) is None


def test_missing_secret_is_fatal_in_production():
    with pytest.raises(ConfigurationError):
        require_jwt_secret(Settings(app_env="production", jwt_secret=""))


def test_configured_secret_is_used(settings_env):
    settings_env(jwt_secret="s3cret-value")
    token = create_access_token(PAYLOAD)
    assert jwt.decode(token, "s3cret-value", algorithms=["HS256"])["username"] == "operator"


def test_password_hash_is_salted_and_verifies():
    h1 = hash_password("kata sandi ")
    h2 = hash_password("kata sandi ")
    assert h1 != h2
    assert verify_password("kata sandi ", h1)
    assert not verify_password("kata sandi", h1)


def test_verify_password_never_raises_on_bad_hash():
    assert verify_password("x", "not-a-bcrypt-hash") is False
