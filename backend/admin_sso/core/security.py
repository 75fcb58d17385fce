"""Security utilities."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any, Union
import jwt
from pwdlib import PasswordHash

from admin_sso.config import get_settings

settings = get_settings()

# Modern Argon2 password hasher using recommended settings
pwd_hasher = PasswordHash.recommended()


def generate_password() -> str:
    """Generate a random password for accounts that only sign in through SSO."""
    return secrets.token_urlsafe(32)


def create_access_token(subject: Union[str, Any], expires_delta: timedelta) -> str:
    """Create a JWT access token."""
    expire = datetime.now(tz=UTC) + expires_delta

    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(
        to_encode, settings.secret_key.get_secret_value(), algorithm=settings.algorithm
    )
    return encoded_jwt


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT access token.

    Returns the payload if valid, raises JWTError if invalid.
    """
    return jwt.decode(
        token,
        settings.secret_key.get_secret_value(),
        algorithms=[settings.algorithm],
    )


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_hasher.hash(password)
