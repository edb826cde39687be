"""Question model — one entry of the questionnaire catalog.

Read-only at request time. `order` defines the sequence in which questions
are asked; there is no skipping.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column

from questbot.models.base import Base, TimestampMixin
from questbot.models.enums import AnswerType


class Question(TimestampMixin, Base):
    """A single catalog question."""

    __tablename__ = "questions"

    # Ledger entries refer to this id, so reordering the catalog keeps answers attached
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, server_default=func.gen_random_uuid()
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    answer_type: Mapped[str] = mapped_column(String(20), default=AnswerType.TEXT.value, nullable=False)
    options: Mapped[list[str]] = mapped_column(
        ARRAY(String(200)), default=list, nullable=False, comment="Choices for answer_type=options"
    )

    def __repr__(self) -> str:
        return f"<Question order={self.order} type={self.answer_type}>"
