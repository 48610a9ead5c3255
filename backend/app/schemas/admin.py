"""Schemas used by the moderation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class AdminLoginResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"


class OperationResult(BaseModel):
    success: bool = True


class DeleteMessageRequest(BaseModel):
    message_id: str = Field(
        ..., min_length=1, max_length=36, validation_alias=AliasChoices("messageId", "message_id")
    )


class BlockIPRequest(BaseModel):
    ip: str = Field(..., min_length=1, max_length=45)
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("ip")
    @classmethod
    def strip_ip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("IP address must not be blank")
        return value


class UnblockIPRequest(BaseModel):
    ip: str = Field(..., min_length=1, max_length=45)

    @field_validator("ip")
    @classmethod
    def strip_ip(cls, value: str) -> str:
        return value.strip()


class BlockedIPRead(BaseModel):
    """Blocked address as returned to the admin panel."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    ip: str
    reason: str | None = None
    blocked_at: datetime | None = Field(default=None, alias="blockedAt")
