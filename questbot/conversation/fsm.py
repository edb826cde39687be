"""Conversation state machine.

Given one classified event, the current ledger and the catalog, decides the
next ledger, the outbound messages, and whether the completion notifier
must run. Pure: persistence and delivery are the engine's job.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from questbot.conversation import prompts
from questbot.conversation.states import TRANSITIONS, current_question, derive_state
from questbot.models.enums import AnswerType, ConversationState
from questbot.schemas.inbound import EventKind, InboundEvent
from questbot.schemas.outbound import OutboundMessage
from questbot.schemas.questionnaire import LedgerState, QuestionSpec

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+", re.ASCII)


class Outcome(str, Enum):
    """What a decision did, for logging and audit events."""

    CREATED = "created"
    RECORDED = "recorded"
    INVALID = "invalid"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    ALREADY_COMPLETE = "already_complete"
    NOTHING_PENDING = "nothing_pending"
    IGNORED = "ignored"


MUTATING_OUTCOMES: frozenset[Outcome] = frozenset(
    {Outcome.CREATED, Outcome.RECORDED, Outcome.CONFIRMED, Outcome.REJECTED, Outcome.COMPLETED}
)


@dataclass(frozen=True)
class Decision:
    """The result of feeding one event to the state machine."""

    from_state: ConversationState
    to_state: ConversationState
    outcome: Outcome
    ledger: LedgerState | None
    messages: list[OutboundMessage] = field(default_factory=list)
    notify: bool = False
    warning: str | None = None

    @property
    def mutated(self) -> bool:
        return self.outcome in MUTATING_OUTCOMES


class FSM:
    """Decides transitions for any ledger against a fixed catalog."""

    def __init__(self, catalog: list[QuestionSpec], page_size: int = prompts.DEFAULT_PAGE_SIZE) -> None:
        if not catalog:
            msg = "FSM needs at least one question"
            raise ValueError(msg)
        self.catalog = sorted(catalog, key=lambda q: q.order)
        self.page_size = page_size

    def decide(
        self,
        ledger: LedgerState | None,
        event: InboundEvent,
        *,
        identity_key: str | None = None,
        display_name: str | None = None,
    ) -> Decision:
        """Compute the transition for `event`.

        `identity_key` and `display_name` are only used to seed a new ledger
        when `ledger` is None.
        """
        state = derive_state(ledger, self.catalog)

        if event.kind == EventKind.IGNORE:
            return Decision(state, state, Outcome.IGNORED, ledger)

        if state == ConversationState.NEW:
            if identity_key is None:
                msg = "identity_key is required to create a ledger"
                raise ValueError(msg)
            created = LedgerState(identity_key=identity_key, display_name=display_name)
            return self._finish(state, Outcome.CREATED, created, self._prompt(self.catalog[0]))

        assert ledger is not None

        if state == ConversationState.COMPLETE:
            return Decision(
                state,
                state,
                Outcome.ALREADY_COMPLETE,
                ledger,
                [prompts.text_message(prompts.ALREADY_COMPLETED_MESSAGE)],
                notify=True,
            )

        question = current_question(ledger, self.catalog)
        assert question is not None

        if event.kind in (EventKind.CONFIRM_YES, EventKind.CONFIRM_NO):
            if state != ConversationState.AWAITING_CONFIRMATION:
                # Stray or duplicate confirmation: nothing to act on
                return Decision(state, state, Outcome.NOTHING_PENDING, ledger)
            if event.kind == EventKind.CONFIRM_NO:
                return self._finish(
                    state, Outcome.REJECTED, ledger.without_pending(), self._prompt(question), event.kind
                )
            return self._confirm(state, ledger)

        return self._answer(state, ledger, question, event)

    # ── Transitions ──────────────────────────────────────────────────

    def _answer(
        self,
        state: ConversationState,
        ledger: LedgerState,
        question: QuestionSpec,
        event: InboundEvent,
    ) -> Decision:
        """Validate a submitted answer and record it as pending."""
        warning = self.validate(question, event)
        if warning is not None:
            messages = [prompts.text_message(warning), *self._prompt(question)]
            return Decision(state, state, Outcome.INVALID, ledger, messages, warning=warning)

        value = event.value or ""
        updated = ledger.with_pending(question.id, value)
        confirmation = prompts.render_confirmation(prompts.display_answer(question, value))
        return self._finish(state, Outcome.RECORDED, updated, [confirmation], event.kind)

    def _confirm(self, state: ConversationState, ledger: LedgerState) -> Decision:
        updated = ledger.with_pending_confirmed()
        next_question = current_question(updated, self.catalog)
        if next_question is not None:
            return self._finish(
                state, Outcome.CONFIRMED, updated, self._prompt(next_question), EventKind.CONFIRM_YES
            )

        logger.info("Questionnaire completed by %s", updated.identity_key)
        return Decision(
            state,
            ConversationState.COMPLETE,
            Outcome.COMPLETED,
            updated,
            [prompts.text_message(prompts.COMPLETED_MESSAGE)],
            notify=True,
        )

    def _finish(
        self,
        state: ConversationState,
        outcome: Outcome,
        ledger: LedgerState,
        messages: list[OutboundMessage],
        kind: EventKind | None = None,
    ) -> Decision:
        next_state = derive_state(ledger, self.catalog)
        if kind is not None and TRANSITIONS[state].get(kind) != next_state:
            msg = f"Invalid transition: {state.value} --{kind.value}--> {next_state.value}"
            raise RuntimeError(msg)
        logger.info(
            "State transition: %s --%s--> %s (identity=%s)",
            state.value,
            outcome.value,
            next_state.value,
            ledger.identity_key,
        )
        return Decision(state, next_state, outcome, ledger, messages)

    # ── Helpers ──────────────────────────────────────────────────────

    def _prompt(self, question: QuestionSpec) -> list[OutboundMessage]:
        return prompts.render(question, self.page_size)

    @staticmethod
    def validate(question: QuestionSpec, event: InboundEvent) -> str | None:
        """Return a warning if `event` cannot answer `question`, else None."""
        answer_type = question.answer_type

        if event.kind == EventKind.FREE_TEXT:
            if answer_type == AnswerType.OPTIONS:
                return prompts.USE_LIST_WARNING
            if answer_type == AnswerType.BOOLEAN:
                return prompts.USE_BUTTONS_WARNING
            if answer_type == AnswerType.NUMBER and not _DIGITS.fullmatch(event.value or ""):
                return prompts.INVALID_NUMBER_WARNING
            return None

        if event.kind == EventKind.CHOICE_SELECTED:
            if answer_type != AnswerType.OPTIONS:
                return _wrong_input_warning(answer_type)
            if event.value not in question.options:
                return prompts.UNKNOWN_CHOICE_WARNING
            return None

        if event.kind == EventKind.BOOLEAN_ANSWERED:
            if answer_type != AnswerType.BOOLEAN:
                return _wrong_input_warning(answer_type)
            return None

        return None


def _wrong_input_warning(answer_type: AnswerType) -> str:
    if answer_type == AnswerType.OPTIONS:
        return prompts.USE_LIST_WARNING
    if answer_type == AnswerType.BOOLEAN:
        return prompts.USE_BUTTONS_WARNING
    if answer_type == AnswerType.NUMBER:
        return prompts.INVALID_NUMBER_WARNING
    return "⚠️ Please type your answer."
