from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.config import Settings
from app.core.security import (
    ADMIN_SUBJECT,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_admin_credentials,
)


def test_password_hash_takes_precedence_over_plain_password():
    settings = Settings(
        admin_email="mod@example.com",
        admin_password="plain",
        admin_password_hash=get_password_hash("hashed-secret"),
    )

    assert verify_admin_credentials("mod@example.com", "hashed-secret", settings) is True
    assert verify_admin_credentials("mod@example.com", "plain", settings) is False


def test_admin_access_is_disabled_without_a_password():
    settings = Settings(admin_email="mod@example.com", admin_password=None, admin_password_hash=None)
    assert verify_admin_credentials("mod@example.com", "", settings) is False


def test_tokens_round_trip_and_reject_tampering():
    settings = Settings(jwt_secret_key="unit-test-secret")
    token = create_access_token({"sub": ADMIN_SUBJECT}, settings=settings)

    assert decode_access_token(token, settings)["sub"] == ADMIN_SUBJECT
    with pytest.raises(HTTPException):
        decode_access_token(token, Settings(jwt_secret_key="other-secret"))
