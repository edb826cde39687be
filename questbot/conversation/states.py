"""State derivation and the transition map.

The conversation state is never stored: it is computed from the ledger and
the catalog here, and nowhere else.
"""

from __future__ import annotations

from questbot.models.enums import ConversationState
from questbot.schemas.inbound import EventKind
from questbot.schemas.questionnaire import LedgerState, QuestionSpec

# Transition map: {current_state: {event_kind: next_state on success}}
# Events missing from a state's map leave the state unchanged.
TRANSITIONS: dict[ConversationState, dict[EventKind, ConversationState]] = {
    ConversationState.NEW: {
        EventKind.CHOICE_SELECTED: ConversationState.AWAITING_ANSWER,
        EventKind.BOOLEAN_ANSWERED: ConversationState.AWAITING_ANSWER,
        EventKind.CONFIRM_YES: ConversationState.AWAITING_ANSWER,
        EventKind.CONFIRM_NO: ConversationState.AWAITING_ANSWER,
        EventKind.FREE_TEXT: ConversationState.AWAITING_ANSWER,
    },
    ConversationState.AWAITING_ANSWER: {
        EventKind.CHOICE_SELECTED: ConversationState.AWAITING_CONFIRMATION,
        EventKind.BOOLEAN_ANSWERED: ConversationState.AWAITING_CONFIRMATION,
        EventKind.FREE_TEXT: ConversationState.AWAITING_CONFIRMATION,
    },
    ConversationState.AWAITING_CONFIRMATION: {
        EventKind.CONFIRM_YES: ConversationState.AWAITING_ANSWER,
        EventKind.CONFIRM_NO: ConversationState.AWAITING_ANSWER,
        # A fresh answer replaces the pending one
        EventKind.CHOICE_SELECTED: ConversationState.AWAITING_CONFIRMATION,
        EventKind.BOOLEAN_ANSWERED: ConversationState.AWAITING_CONFIRMATION,
        EventKind.FREE_TEXT: ConversationState.AWAITING_CONFIRMATION,
    },
    ConversationState.COMPLETE: {},
}

# Terminal states accept events but never leave
TERMINAL_STATES: set[ConversationState] = {ConversationState.COMPLETE}


def derive_state(ledger: LedgerState | None, catalog: list[QuestionSpec]) -> ConversationState:
    """Compute the logical state of a conversation."""
    if ledger is None:
        return ConversationState.NEW
    if ledger.is_complete(catalog):
        return ConversationState.COMPLETE
    if ledger.pending_entry is not None:
        return ConversationState.AWAITING_CONFIRMATION
    return ConversationState.AWAITING_ANSWER


def current_question(ledger: LedgerState, catalog: list[QuestionSpec]) -> QuestionSpec | None:
    """The pending question, or None when the ledger is complete."""
    index = ledger.confirmed_count
    return catalog[index] if index < len(catalog) else None
