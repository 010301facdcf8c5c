"""
Unit tests for vendor_contracts/services/auth_service.py and the actor helper.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import JWTError, jwt

from vendor_contracts.middleware.auth import actor_of
from vendor_contracts.services import auth_service


def test_token_round_trip(jwt_keys):
    token = auth_service.create_access_token("u-17", "legal", "legal@acme.com")
    claims = auth_service.verify_access_token(token)

    assert claims["sub"] == "u-17"
    assert claims["role"] == "legal"
    assert claims["email"] == "legal@acme.com"
    assert claims["iss"] == "vendor-contracts"


def test_token_without_email(jwt_keys):
    token = auth_service.create_access_token("svc-seeder", "admin")
    assert "email" not in auth_service.verify_access_token(token)


def _sign(rsa_keys, **overrides) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": "u-1",
        "role": "admin",
        "iss": "vendor-contracts",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "type": "access",
    }
    claims.update(overrides)
    return jwt.encode(claims, rsa_keys[0], algorithm="RS256")


def test_rejects_refresh_token(jwt_keys, rsa_keys):
    with pytest.raises(JWTError):
        auth_service.verify_access_token(_sign(rsa_keys, type="refresh"))


def test_rejects_foreign_issuer(jwt_keys, rsa_keys):
    with pytest.raises(JWTError):
        auth_service.verify_access_token(_sign(rsa_keys, iss="someone-else"))


def test_rejects_expired_token(jwt_keys, rsa_keys):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    with pytest.raises(JWTError):
        auth_service.verify_access_token(_sign(rsa_keys, iat=past, exp=past + timedelta(minutes=5)))


def test_actor_prefers_email():
    assert actor_of({"user_id": "u-1", "role": "admin", "email": "a@acme.com"}) == "a@acme.com"
    assert actor_of({"user_id": "u-1", "role": "admin", "email": None}) == "u-1"
