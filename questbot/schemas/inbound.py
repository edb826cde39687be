"""Classified inbound events and their addressing envelope."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class EventKind(str, Enum):
    """Closed set of semantic events the state machine understands."""

    CHOICE_SELECTED = "choice_selected"
    BOOLEAN_ANSWERED = "boolean_answered"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    FREE_TEXT = "free_text"
    IGNORE = "ignore"


class InboundEvent(BaseModel):
    """A classified inbound message.

    `value` carries the selected option, "yes"/"no" for boolean answers, or the
    trimmed free text. It is None for confirmations and ignored messages.
    """

    kind: EventKind
    value: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def choice(cls, value: str) -> InboundEvent:
        return cls(kind=EventKind.CHOICE_SELECTED, value=value)

    @classmethod
    def boolean(cls, yes: bool) -> InboundEvent:
        return cls(kind=EventKind.BOOLEAN_ANSWERED, value="yes" if yes else "no")

    @classmethod
    def confirm(cls, accepted: bool) -> InboundEvent:
        return cls(kind=EventKind.CONFIRM_YES if accepted else EventKind.CONFIRM_NO)

    @classmethod
    def text(cls, raw: str) -> InboundEvent:
        return cls(kind=EventKind.FREE_TEXT, value=raw)

    @classmethod
    def ignore(cls) -> InboundEvent:
        return cls(kind=EventKind.IGNORE)


class Envelope(BaseModel):
    """Who sent a message and which business number received it."""

    identity_key: str
    phone_number_id: str
    message_id: str | None = None
    display_name: str | None = None

    model_config = {"frozen": True}
