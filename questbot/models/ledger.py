"""Ledger model — one identity's provisional and confirmed answers.

Entries are stored as a single JSONB document and saved whole, so a ledger
write is always one row update. The ids of recently applied inbound messages
are saved in the same row, which makes duplicate detection part of the
ledger write itself.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from questbot.models.base import Base, TimestampMixin


class Ledger(TimestampMixin, Base):
    """Answer ledger keyed by the WhatsApp identity."""

    __tablename__ = "ledgers"

    identity_key: Mapped[str] = mapped_column(String(50), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100))

    # [{"question_id": "...", "answer_value": "...", "confirmed": bool}, ...]
    entries: Mapped[list[dict[str, Any]]] = mapped_column(JSONB, default=list, nullable=False)
    # ["wamid...", ...], oldest first, bounded by MESSAGE_ID_HISTORY
    message_ids: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<Ledger identity={self.identity_key} entries={len(self.entries or [])}>"
