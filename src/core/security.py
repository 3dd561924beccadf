"""
Credentials for journal users: bcrypt password hashes and JWT bearer
access tokens whose subject is the user id.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from src.config import get_settings
from src.core.exceptions import AuthenticationError, ValidationError


__all__ = [
    "AccessToken",
    "create_access_token",
    "verify_token",
    "hash_password",
    "verify_password",
]

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_in: int


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    **claims: Any,
) -> AccessToken:
    """
    Issue a signed access token for a user.

    Args:
        subject: User id, stored as the "sub" claim
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        **claims: Additional claims to embed

    Returns:
        AccessToken with the encoded JWT and its lifetime in seconds
    """
    settings = get_settings()
    lifetime = expires_delta if expires_delta is not None else timedelta(
        minutes=settings.access_token_expire_minutes
    )
    issued_at = datetime.now(timezone.utc)
    payload = {
        **claims,
        "sub": subject,
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    encoded = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return AccessToken(token=encoded, expires_in=int(lifetime.total_seconds()))


def verify_token(token: str) -> dict[str, Any]:
    """
    Decode and check an access token.

    Raises:
        AuthenticationError: Bad signature, expired, wrong type or no subject
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Invalid or expired token: {e}")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type: expected access")
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")
    return payload


def hash_password(password: str) -> str:
    """
    Raises:
        ValidationError: Password longer than bcrypt accepts
    """
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    encoded = plain_password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))
