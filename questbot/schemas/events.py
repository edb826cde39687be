"""SystemEvent schema — the event type that flows through the event system.

The conversation engine and the outbound adapters emit SystemEvents.
Subscribers (the audit logger) consume them asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Ledger lifecycle
    LEDGER_CREATED = "ledger.created"

    # Answers
    ANSWER_RECORDED = "answer.recorded"
    ANSWER_INVALID = "answer.invalid"
    ANSWER_CONFIRMED = "answer.confirmed"
    ANSWER_REJECTED = "answer.rejected"
    QUESTIONNAIRE_COMPLETED = "questionnaire.completed"

    # Outbound
    MESSAGE_SENT = "message.sent"
    MESSAGE_FAILED = "message.failed"
    NOTIFICATION_SENT = "notification.sent"
    NOTIFICATION_FAILED = "notification.failed"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Core event that flows through the QuestBot system.

    Immutable once created. Consumed by the audit logger, which writes
    it to the audit_log table.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional; system events have no identity)
    identity_key: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
