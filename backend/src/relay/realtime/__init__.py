"""Realtime fan-out and websocket session handling for the chat relay."""

from .managers import (  # noqa: F401
    Broadcaster,
    ConnectionRegistry,
    get_broadcaster,
    safe_send_json,
)
from .session import (  # noqa: F401
    MessageClock,
    SessionGateway,
    SessionState,
    ValidationFailure,
    build_message,
)

__all__ = [
    "Broadcaster",
    "ConnectionRegistry",
    "MessageClock",
    "SessionGateway",
    "SessionState",
    "ValidationFailure",
    "build_message",
    "get_broadcaster",
    "safe_send_json",
]
