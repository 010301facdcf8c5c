"""
Access tokens for the contracts API.

Tokens are RS256 JWTs issued by the identity service; this service can also
mint them for scripts and tests. Claims: sub, role, email, iss, type=access.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from jose import jwt, JWTError
import structlog

from vendor_contracts.config import settings

logger = structlog.get_logger()


class KeyRing:
    """PEM keys read from disk on first use."""

    def __init__(self, private_path: Optional[str], public_path: Optional[str]):
        self.private_path = private_path
        self.public_path = public_path
        self.private_pem: Optional[str] = None
        self.public_pem: Optional[str] = None

    def private(self) -> str:
        if self.private_pem is None:
            self.private_pem = Path(self.private_path).read_text()
        return self.private_pem

    def public(self) -> str:
        if self.public_pem is None:
            self.public_pem = Path(self.public_path).read_text()
        return self.public_pem


keys = KeyRing(settings.JWT_PRIVATE_KEY_PATH, settings.JWT_PUBLIC_KEY_PATH)


def create_access_token(user_id: str, role: str, email: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "iss": settings.JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        "type": "access",
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, keys.private(), algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """Raises JWTError on a bad signature, expiry, wrong issuer or token type."""
    payload = jwt.decode(
        token,
        keys.public(),
        algorithms=[settings.JWT_ALGORITHM],
        issuer=settings.JWT_ISSUER,
    )
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload
