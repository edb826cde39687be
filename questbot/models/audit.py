"""AuditLog model — append-only trail of every system event."""

from __future__ import annotations

from typing import Any

from sqlalchemy import BigInteger, Identity, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from questbot.models.base import Base, TimestampMixin


class AuditLog(TimestampMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    identity_key: Mapped[str | None] = mapped_column(String(50), index=True)
    actor_role: Mapped[str | None] = mapped_column(String(50), comment="user, system, bot")

    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} identity={self.identity_key}>"
