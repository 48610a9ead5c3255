"""Unit tests validating Pydantic schema constraints."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.schemas import (
    MessageRead,
    SubmitMessageEvent,
    SubmitReactionEvent,
    inbound_event_adapter,
)


def test_inbound_events_dispatch_on_type():
    message = inbound_event_adapter.validate_python({"type": "submit-message", "text": "hi", "userColor": "#fff"})
    reaction = inbound_event_adapter.validate_python({"type": "submit-reaction", "messageId": "m1", "emoji": "🎉"})

    assert isinstance(message, SubmitMessageEvent)
    assert message.user_color == "#fff"
    assert isinstance(reaction, SubmitReactionEvent)
    assert reaction.message_id == "m1"


def test_reaction_accepts_legacy_msg_id_key():
    reaction = inbound_event_adapter.validate_python({"type": "submit-reaction", "msgId": "m1", "emoji": "👍"})
    assert reaction.message_id == "m1"


def test_scalar_text_is_stringified():
    event = SubmitMessageEvent(type="submit-message", text=42, nick=7)
    assert (event.text, event.nick) == ("42", "7")


def test_reaction_emoji_length_is_bounded():
    with pytest.raises(ValidationError):
        SubmitReactionEvent(type="submit-reaction", messageId="m1", emoji="x" * 33)


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValidationError):
        inbound_event_adapter.validate_python({"type": "edit-message", "text": "nope"})


def test_message_payload_uses_client_field_names():
    payload = MessageRead(id="m1", text="hi", nick="bob", ts=5, user_status="away").to_payload()
    assert payload == {
        "id": "m1",
        "text": "hi",
        "nick": "bob",
        "ts": 5,
        "reactions": {},
        "userColor": None,
        "userStatus": "away",
    }
