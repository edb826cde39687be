"""Outbound message shapes and their WhatsApp Cloud API payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# WhatsApp Cloud API limits
MAX_BUTTONS = 3
MAX_LIST_ROWS = 10
MAX_ROW_TITLE = 24
MAX_HEADER_TEXT = 60
MAX_BUTTON_TITLE = 20


class MessageKind(str, Enum):
    TEXT = "text"
    BUTTONS = "buttons"
    LIST = "list"


class Button(BaseModel):
    id: str
    title: str

    model_config = {"frozen": True}


class ListRow(BaseModel):
    id: str
    title: str

    model_config = {"frozen": True}


class OutboundMessage(BaseModel):
    """A single renderable message, independent of who it is sent to."""

    kind: MessageKind
    body: str
    header: str | None = None
    buttons: tuple[Button, ...] = ()
    rows: tuple[ListRow, ...] = ()
    list_button: str = Field(default="View options", description="Label of the button that opens a list")

    model_config = {"frozen": True}

    def to_payload(self, to: str) -> dict[str, Any]:
        """Build the Cloud API `/messages` request body for recipient `to`."""
        payload: dict[str, Any] = {"messaging_product": "whatsapp", "to": to}

        if self.kind == MessageKind.TEXT:
            payload["type"] = "text"
            payload["text"] = {"body": self.body}
            return payload

        payload["type"] = "interactive"
        if self.kind == MessageKind.BUTTONS:
            payload["interactive"] = {
                "type": "button",
                "body": {"text": self.body},
                "action": {
                    "buttons": [
                        {"type": "reply", "reply": {"id": btn.id, "title": btn.title[:MAX_BUTTON_TITLE]}}
                        for btn in self.buttons[:MAX_BUTTONS]
                    ],
                },
            }
            return payload

        interactive: dict[str, Any] = {
            "type": "list",
            "body": {"text": self.body},
            "action": {
                "button": self.list_button,
                "sections": [
                    {
                        "title": (self.header or "Options")[:MAX_ROW_TITLE],
                        "rows": [{"id": row.id, "title": row.title} for row in self.rows[:MAX_LIST_ROWS]],
                    },
                ],
            },
        }
        if self.header:
            interactive["header"] = {"type": "text", "text": self.header[:MAX_HEADER_TEXT]}
        payload["interactive"] = interactive
        return payload
