"""Pydantic schemas exposed by the API layer."""

from .admin import (
    AdminLoginResponse,
    BlockIPRequest,
    BlockedIPRead,
    DeleteMessageRequest,
    OperationResult,
    UnblockIPRequest,
)
from .messages import (
    InboundEvent,
    MessageRead,
    PingEvent,
    ReactionUpdate,
    SubmitMessageEvent,
    SubmitReactionEvent,
    inbound_event_adapter,
)

__all__ = [
    "AdminLoginResponse",
    "BlockIPRequest",
    "BlockedIPRead",
    "DeleteMessageRequest",
    "InboundEvent",
    "MessageRead",
    "OperationResult",
    "PingEvent",
    "ReactionUpdate",
    "SubmitMessageEvent",
    "SubmitReactionEvent",
    "UnblockIPRequest",
    "inbound_event_adapter",
]
