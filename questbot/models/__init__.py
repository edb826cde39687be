"""SQLAlchemy ORM models for QuestBot.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from questbot.models.audit import AuditLog
from questbot.models.base import Base
from questbot.models.enums import AnswerType, ConversationState
from questbot.models.ledger import Ledger
from questbot.models.question import Question

__all__ = [
    # Base
    "Base",
    # Models
    "Question",
    "Ledger",
    "AuditLog",
    # Enums
    "AnswerType",
    "ConversationState",
]
