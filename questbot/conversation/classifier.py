"""Inbound message classification.

Maps one raw WhatsApp message (plus the `value` block it arrived in) to an
addressing Envelope and a semantic InboundEvent. Pure: never touches the
ledger, the database, or the network.
"""

from __future__ import annotations

import logging
from typing import Any

from questbot.conversation.prompts import ANSWER_NO_ID, ANSWER_YES_ID, CONFIRM_NO_ID, CONFIRM_YES_ID
from questbot.schemas.inbound import Envelope, InboundEvent

logger = logging.getLogger(__name__)

_BUTTON_EVENTS: dict[str, InboundEvent] = {
    CONFIRM_YES_ID: InboundEvent.confirm(True),
    CONFIRM_NO_ID: InboundEvent.confirm(False),
    ANSWER_YES_ID: InboundEvent.boolean(True),
    ANSWER_NO_ID: InboundEvent.boolean(False),
}


def iter_messages(payload: dict[str, Any]) -> list[tuple[dict[str, Any], dict[str, Any]]]:
    """Flatten Meta's nested webhook payload into (message, value) pairs.

    payload.entry[].changes[].value.messages[] — status callbacks and other
    non-message changes yield nothing.
    """
    pairs: list[tuple[dict[str, Any], dict[str, Any]]] = []
    if not isinstance(payload, dict) or not payload.get("object"):
        return pairs

    for entry in payload.get("entry") or []:
        for change in (entry or {}).get("changes") or []:
            value = (change or {}).get("value") or {}
            messages = value.get("messages")
            if not isinstance(messages, list):
                continue
            pairs.extend((message, value) for message in messages if isinstance(message, dict))
    return pairs


def _display_name(value: dict[str, Any], wa_id: str) -> str | None:
    for contact in value.get("contacts") or []:
        if contact.get("wa_id") == wa_id:
            return (contact.get("profile") or {}).get("name") or None
    return None


def classify(message: dict[str, Any], value: dict[str, Any]) -> tuple[Envelope | None, InboundEvent]:
    """Classify a single inbound message.

    Returns (None, Ignore) when the message lacks a sender or business phone
    number id; otherwise an envelope and the event, which may still be Ignore
    for unsupported subtypes.
    """
    wa_id = message.get("from")
    phone_number_id = (value.get("metadata") or {}).get("phone_number_id")
    if not wa_id or not phone_number_id:
        return None, InboundEvent.ignore()

    envelope = Envelope(
        identity_key=str(wa_id),
        phone_number_id=str(phone_number_id),
        message_id=message.get("id"),
        display_name=_display_name(value, wa_id),
    )
    return envelope, classify_message(message)


def classify_message(message: dict[str, Any]) -> InboundEvent:
    """Map the message body to an event, ignoring addressing."""
    msg_type = message.get("type")

    if msg_type == "text":
        body = ((message.get("text") or {}).get("body") or "").strip()
        return InboundEvent.text(body) if body else InboundEvent.ignore()

    if msg_type == "interactive":
        interactive = message.get("interactive") or {}
        list_reply = interactive.get("list_reply")
        if list_reply:
            selection = list_reply.get("id") or list_reply.get("title")
            return InboundEvent.choice(selection) if selection else InboundEvent.ignore()

        button_reply = interactive.get("button_reply")
        if button_reply:
            event = _BUTTON_EVENTS.get(button_reply.get("id", ""))
            if event is None:
                logger.debug("Unknown button id %r", button_reply.get("id"))
                return InboundEvent.ignore()
            return event

    return InboundEvent.ignore()
