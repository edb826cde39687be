"""Tests for inbound message classification."""

from __future__ import annotations

import pytest

from questbot.conversation.classifier import classify, classify_message, iter_messages
from questbot.schemas.inbound import EventKind, InboundEvent


def _value(message: dict, phone_number_id: str | None = "123456", name: str = "Ada") -> dict:
    value: dict = {
        "messaging_product": "whatsapp",
        "contacts": [{"profile": {"name": name}, "wa_id": message.get("from", "")}],
        "messages": [message],
    }
    if phone_number_id is not None:
        value["metadata"] = {"display_phone_number": "15550001234", "phone_number_id": phone_number_id}
    return value


def _payload(*values: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "BIZ", "changes": [{"value": v, "field": "messages"} for v in values]}],
    }


class TestIterMessages:
    def test_flattens_nested_payload(self):
        m1 = {"from": "1", "type": "text", "text": {"body": "a"}}
        m2 = {"from": "2", "type": "text", "text": {"body": "b"}}
        pairs = iter_messages(_payload(_value(m1), _value(m2)))
        assert [m for m, _ in pairs] == [m1, m2]

    def test_status_callbacks_yield_nothing(self):
        payload = _payload({"statuses": [{"id": "wamid.x", "status": "delivered"}]})
        assert iter_messages(payload) == []

    def test_missing_object_yields_nothing(self):
        assert iter_messages({"entry": []}) == []

    def test_garbage_yields_nothing(self):
        assert iter_messages([]) == []  # type: ignore[arg-type]


class TestClassifyMessage:
    def test_text(self):
        event = classify_message({"type": "text", "text": {"body": "  42 \n"}})
        assert event == InboundEvent.text("42")

    def test_blank_text_ignored(self):
        assert classify_message({"type": "text", "text": {"body": "   "}}).kind == EventKind.IGNORE

    def test_list_reply_uses_row_id(self):
        message = {
            "type": "interactive",
            "interactive": {
                "type": "list_reply",
                "list_reply": {"id": "A very long option label", "title": "A very long option lab"},
            },
        }
        assert classify_message(message) == InboundEvent.choice("A very long option label")

    @pytest.mark.parametrize(
        ("button_id", "expected"),
        [
            ("confirm_yes", InboundEvent.confirm(True)),
            ("confirm_no", InboundEvent.confirm(False)),
            ("answer_yes", InboundEvent.boolean(True)),
            ("answer_no", InboundEvent.boolean(False)),
        ],
    )
    def test_button_reply(self, button_id, expected):
        message = {
            "type": "interactive",
            "interactive": {"type": "button_reply", "button_reply": {"id": button_id, "title": "x"}},
        }
        assert classify_message(message) == expected

    def test_unknown_button_ignored(self):
        message = {
            "type": "interactive",
            "interactive": {"type": "button_reply", "button_reply": {"id": "yes_response", "title": "Yes"}},
        }
        assert classify_message(message).kind == EventKind.IGNORE

    @pytest.mark.parametrize("msg_type", ["image", "sticker", "audio", "location", "reaction", None])
    def test_unsupported_types_ignored(self, msg_type):
        assert classify_message({"type": msg_type}).kind == EventKind.IGNORE


class TestClassify:
    def test_envelope(self):
        message = {"from": "15550001111", "id": "wamid.abc", "type": "text", "text": {"body": "hi"}}
        envelope, event = classify(message, _value(message))

        assert envelope.identity_key == "15550001111"
        assert envelope.phone_number_id == "123456"
        assert envelope.message_id == "wamid.abc"
        assert envelope.display_name == "Ada"
        assert event.kind == EventKind.FREE_TEXT

    def test_missing_sender(self):
        message = {"type": "text", "text": {"body": "hi"}}
        envelope, event = classify(message, _value(message))
        assert envelope is None
        assert event.kind == EventKind.IGNORE

    def test_missing_phone_number_id(self):
        message = {"from": "15550001111", "type": "text", "text": {"body": "hi"}}
        envelope, event = classify(message, _value(message, phone_number_id=None))
        assert envelope is None
        assert event.kind == EventKind.IGNORE

    def test_unknown_contact_has_no_name(self):
        message = {"from": "15550001111", "type": "text", "text": {"body": "hi"}}
        value = _value(message)
        value["contacts"] = []
        envelope, _ = classify(message, value)
        assert envelope.display_name is None
