"""Database models package."""

from .base import Base
from .chat import BlockedIP, Message

__all__ = [
    "Base",
    "BlockedIP",
    "Message",
]
