"""Security helpers for admin authentication."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import HTTPException, status
from passlib.context import CryptContext

from app.config import Settings, get_settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ADMIN_SUBJECT = "admin"


def get_password_hash(password: str) -> str:
    """Hash a password for the ``ADMIN_PASSWORD_HASH`` setting."""

    return pwd_context.hash(password)


def verify_admin_credentials(email: str, password: str, settings: Settings | None = None) -> bool:
    """Check an email/password pair against the configured admin account.

    A configured hash takes precedence over the plain password. With neither
    configured, admin access is disabled.
    """

    settings = settings or get_settings()
    email_ok = secrets.compare_digest(email.encode("utf-8"), settings.admin_email.encode("utf-8"))
    if settings.admin_password_hash:
        password_ok = pwd_context.verify(password, settings.admin_password_hash)
    elif settings.admin_password:
        password_ok = secrets.compare_digest(
            password.encode("utf-8"), settings.admin_password.encode("utf-8")
        )
    else:
        return False
    return email_ok and password_ok


def create_access_token(
    data: Dict[str, Any],
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> str:
    """Create a signed JWT access token with an expiration time."""

    settings = settings or get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> Dict[str, Any]:
    """Decode and validate a JWT access token."""

    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials") from exc
    return payload
