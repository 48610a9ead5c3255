"""Schemas for chat messages and the websocket event protocol."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _coerce_scalar(value: Any) -> Any:
    """Accept scalar JSON values as text the way browsers stringify them."""

    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class MessageRead(BaseModel):
    """Serialized representation of a chat message."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str
    text: str
    nick: str
    ts: int = Field(..., ge=0, description="Server timestamp in milliseconds since the epoch")
    reactions: dict[str, int] = Field(default_factory=dict)
    user_color: str | None = Field(default=None, alias="userColor")
    user_status: str | None = Field(default=None, alias="userStatus")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SubmitMessageEvent(BaseModel):
    """Inbound request to publish a chat message."""

    type: Literal["submit-message"]
    text: str | None = None
    nick: str | None = None
    user_color: str | None = Field(default=None, validation_alias=AliasChoices("userColor", "user_color"))
    user_status: str | None = Field(default=None, validation_alias=AliasChoices("userStatus", "user_status"))

    @field_validator("text", "nick", "user_color", "user_status", mode="before")
    @classmethod
    def coerce_scalars(cls, value: Any) -> Any:
        return _coerce_scalar(value)


class SubmitReactionEvent(BaseModel):
    """Inbound request to add one reaction to a message."""

    type: Literal["submit-reaction"]
    message_id: str = Field(
        ..., min_length=1, max_length=36, validation_alias=AliasChoices("messageId", "msgId")
    )
    emoji: str = Field(..., min_length=1, max_length=32)


class PingEvent(BaseModel):
    type: Literal["ping"]


InboundEvent = Annotated[
    Union[SubmitMessageEvent, SubmitReactionEvent, PingEvent],
    Field(discriminator="type"),
]

inbound_event_adapter: TypeAdapter[InboundEvent] = TypeAdapter(InboundEvent)


class ReactionUpdate(BaseModel):
    """New authoritative count for one (message, emoji) pair."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: str = Field(..., alias="messageId")
    emoji: str
    new_count: int = Field(..., ge=0, alias="newCount")
