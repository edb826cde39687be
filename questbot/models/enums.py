"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class AnswerType(str, Enum):
    """How a question expects to be answered — drives prompt shape and validation."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OPTIONS = "options"


class ConversationState(str, Enum):
    """Logical conversation state, always derived from a ledger and never stored."""

    NEW = "new"
    AWAITING_ANSWER = "awaiting_answer"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMPLETE = "complete"
