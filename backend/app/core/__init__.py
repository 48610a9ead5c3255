"""Core utilities for the relay backend."""

from .security import (
    ADMIN_SUBJECT,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_admin_credentials,
)

__all__ = [
    "ADMIN_SUBJECT",
    "create_access_token",
    "decode_access_token",
    "get_password_hash",
    "verify_admin_credentials",
]
