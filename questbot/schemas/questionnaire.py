"""Pydantic schemas for the questionnaire core.

Pure data classes — no DB dependencies. The state machine works on these;
the repository maps them to and from ORM rows.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from questbot.models.enums import AnswerType

# How many inbound message ids a ledger remembers for duplicate detection
MESSAGE_ID_HISTORY = 50


class QuestionSpec(BaseModel):
    """One catalog question, immutable for the duration of a conversation."""

    id: str
    order: int = Field(ge=0)
    text: str
    answer_type: AnswerType = AnswerType.TEXT
    options: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _options_required(self) -> QuestionSpec:
        if self.answer_type == AnswerType.OPTIONS and not self.options:
            msg = f"Question {self.id} has answer_type=options but no options"
            raise ValueError(msg)
        return self


class ResponseEntry(BaseModel):
    """One provisional or confirmed answer to one question."""

    question_id: str
    answer_value: str
    confirmed: bool = False

    model_config = {"frozen": True}


class LedgerState(BaseModel):
    """One identity's answers.

    Instances are treated as values: every mutation helper returns a new
    ledger, leaving the original untouched.
    """

    identity_key: str
    display_name: str | None = None
    entries: tuple[ResponseEntry, ...] = ()
    # Most recent inbound message ids, oldest first
    message_ids: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def confirmed_entries(self) -> list[ResponseEntry]:
        return [e for e in self.entries if e.confirmed]

    @property
    def confirmed_count(self) -> int:
        """Number of confirmed answers — also the index of the pending question."""
        return sum(1 for e in self.entries if e.confirmed)

    @property
    def pending_entry(self) -> ResponseEntry | None:
        """The single unconfirmed entry, if any."""
        for entry in self.entries:
            if not entry.confirmed:
                return entry
        return None

    def is_complete(self, catalog: list[QuestionSpec]) -> bool:
        return self.confirmed_count >= len(catalog)

    def with_pending(self, question_id: str, answer_value: str) -> LedgerState:
        """Record a provisional answer, replacing any existing unconfirmed entry."""
        entries = tuple(e for e in self.entries if e.confirmed) + (
            ResponseEntry(question_id=question_id, answer_value=answer_value, confirmed=False),
        )
        return self.model_copy(update={"entries": entries})

    def with_pending_confirmed(self) -> LedgerState:
        """Mark the unconfirmed entry as confirmed. No-op if nothing is pending."""
        entries = tuple(
            e if e.confirmed else e.model_copy(update={"confirmed": True}) for e in self.entries
        )
        return self.model_copy(update={"entries": entries})

    def without_pending(self) -> LedgerState:
        """Drop the unconfirmed entry."""
        return self.model_copy(update={"entries": tuple(e for e in self.entries if e.confirmed)})

    def has_processed(self, message_id: str | None) -> bool:
        """True if `message_id` was already applied to this ledger."""
        return bool(message_id) and message_id in self.message_ids

    def with_message_id(self, message_id: str) -> LedgerState:
        """Remember `message_id`, keeping only the newest MESSAGE_ID_HISTORY ids."""
        if message_id in self.message_ids:
            return self
        ids = (*self.message_ids, message_id)[-MESSAGE_ID_HISTORY:]
        return self.model_copy(update={"message_ids": ids})
