"""Password hashing and access tokens."""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import Settings, settings as default_settings
from app.core.exceptions import AuthenticationError

# Argon2 for new hashes
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Sign an access token for ``subject`` (a user id)."""
    settings = settings or default_settings
    expires_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        **(claims or {}),
        "sub": subject,
        "type": ACCESS_TOKEN_TYPE,
        "exp": datetime.now(UTC) + expires_delta,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(
    token: str,
    token_type: str = ACCESS_TOKEN_TYPE,
    settings: Settings | None = None,
) -> dict[str, Any]:
    """Decode a token, raising AuthenticationError if it is invalid or expired."""
    settings = settings or default_settings
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {e}")
    if payload.get("type") != token_type:
        raise AuthenticationError("Invalid token type")
    return payload


def create_tokens(user_id: str, email: str, settings: Settings | None = None) -> dict[str, Any]:
    """Token fields returned on sign-up and login.

    Roles are not embedded: they can change (a developer may add the
    customer role) and are read from the database on every request.
    """
    settings = settings or default_settings
    return {
        "access_token": create_access_token(user_id, {"email": email}, settings=settings),
        "token_type": "bearer",
        "expires_in": settings.access_token_expire_minutes * 60,
    }
