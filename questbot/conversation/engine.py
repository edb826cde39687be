"""Conversation orchestrator.

Receives classified events from the channel adapter, serializes work per
identity, runs fetch → decide → persist, and hands the resulting messages
and notifications to the injected outbound collaborators.

Handling is split in two so the webhook can acknowledge as soon as the
ledger is committed:
    handled = await engine.handle(repo, envelope, event)   # inside the request
    await engine.deliver(handled)                          # after the response
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from questbot.events import emit
from questbot.conversation.fsm import FSM, Decision, Outcome
from questbot.conversation.locks import IdentityLocks
from questbot.conversation.prompts import DEFAULT_PAGE_SIZE
from questbot.errors import CatalogEmptyError
from questbot.schemas.events import EventType, SystemEvent
from questbot.schemas.inbound import Envelope, EventKind, InboundEvent
from questbot.schemas.outbound import OutboundMessage
from questbot.schemas.questionnaire import LedgerState, QuestionSpec

logger = logging.getLogger(__name__)

# Audit event emitted for each outcome (outcomes not listed emit nothing)
OUTCOME_EVENTS: dict[Outcome, EventType] = {
    Outcome.CREATED: EventType.LEDGER_CREATED,
    Outcome.RECORDED: EventType.ANSWER_RECORDED,
    Outcome.INVALID: EventType.ANSWER_INVALID,
    Outcome.CONFIRMED: EventType.ANSWER_CONFIRMED,
    Outcome.REJECTED: EventType.ANSWER_REJECTED,
    Outcome.COMPLETED: EventType.QUESTIONNAIRE_COMPLETED,
}


# ── Collaborator interfaces ──────────────────────────────────────────


class Repository(Protocol):
    async def load_catalog(self) -> list[QuestionSpec]: ...

    async def get_ledger(self, identity_key: str) -> LedgerState | None: ...

    async def create_ledger(self, identity_key: str, display_name: str | None = None) -> LedgerState: ...

    async def save_ledger(self, ledger: LedgerState) -> None: ...

    async def commit(self) -> None: ...


class MessageSender(Protocol):
    async def send(self, to: str, message: OutboundMessage, *, phone_number_id: str) -> bool: ...


class Notifier(Protocol):
    async def notify(self, ledger: LedgerState, catalog: list[QuestionSpec]) -> None: ...


class DuplicateGuard(Protocol):
    async def seen(self, message_id: str | None) -> bool: ...

    async def remember(self, message_id: str | None) -> None: ...


@dataclass(frozen=True)
class HandledEvent:
    """A committed decision waiting for outbound delivery."""

    envelope: Envelope
    decision: Decision
    catalog: list[QuestionSpec]


# ── Engine ───────────────────────────────────────────────────────────


class ConversationEngine:
    """Runs the questionnaire for every identity."""

    def __init__(
        self,
        sender: MessageSender,
        notifier: Notifier,
        guard: DuplicateGuard | None = None,
        locks: IdentityLocks | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._sender = sender
        self._notifier = notifier
        self._guard = guard
        self._locks = locks if locks is not None else IdentityLocks()
        self._page_size = page_size

    async def handle(
        self,
        repo: Repository,
        envelope: Envelope,
        event: InboundEvent,
    ) -> HandledEvent | None:
        """Decide and persist one event. Returns None when there is nothing to deliver.

        Raises:
            CatalogEmptyError: No questions are configured.
            PersistenceError: The ledger could not be read or written.
        """
        if event.kind == EventKind.IGNORE:
            return None

        identity = envelope.identity_key
        async with self._locks.hold(identity):
            if self._guard is not None and await self._guard.seen(envelope.message_id):
                logger.info("Duplicate delivery of %s from %s found in cache", envelope.message_id, identity)
                return None

            catalog = await repo.load_catalog()
            if not catalog:
                raise CatalogEmptyError()
            fsm = FSM(catalog, self._page_size)

            ledger = await repo.get_ledger(identity)
            if ledger is not None and ledger.has_processed(envelope.message_id):
                return await self._skip_duplicate(repo, envelope)
            decision = fsm.decide(
                ledger, event, identity_key=identity, display_name=envelope.display_name
            )

            dirty = decision.mutated
            if decision.outcome == Outcome.CREATED:
                stored = await repo.create_ledger(identity, envelope.display_name)
                if stored.has_processed(envelope.message_id):
                    return await self._skip_duplicate(repo, envelope)
                if stored.entries:
                    # Another worker created and advanced this ledger first
                    decision = fsm.decide(stored, event)
                    dirty = decision.mutated
                else:
                    dirty = False

            # The message id is written with the entries, under the same row lock
            if envelope.message_id and decision.ledger is not None:
                decision = replace(decision, ledger=decision.ledger.with_message_id(envelope.message_id))
                dirty = True
            if dirty:
                await repo.save_ledger(decision.ledger)

            await repo.commit()
            if self._guard is not None:
                await self._guard.remember(envelope.message_id)

        await self._emit_outcome(envelope, decision)
        return HandledEvent(envelope=envelope, decision=decision, catalog=fsm.catalog)

    async def _skip_duplicate(self, repo: Repository, envelope: Envelope) -> None:
        """End the unit of work for a message the ledger has already seen."""
        logger.info(
            "Duplicate delivery of %s from %s found on ledger", envelope.message_id, envelope.identity_key
        )
        await repo.commit()
        if self._guard is not None:
            await self._guard.remember(envelope.message_id)

    async def deliver(self, handled: HandledEvent) -> None:
        """Send the decision's messages in order, then notify if required.

        Never raises: outbound failures are logged and not retried.
        """
        envelope, decision = handled.envelope, handled.decision
        for message in decision.messages:
            try:
                await self._sender.send(
                    envelope.identity_key, message, phone_number_id=envelope.phone_number_id
                )
            except Exception:
                logger.exception("Outbound delivery to %s failed", envelope.identity_key)

        if decision.notify and decision.ledger is not None:
            try:
                await self._notifier.notify(decision.ledger, handled.catalog)
            except Exception:
                logger.exception("Completion notifier failed for %s", envelope.identity_key)

    async def _emit_outcome(self, envelope: Envelope, decision: Decision) -> None:
        event_type = OUTCOME_EVENTS.get(decision.outcome)
        if event_type is None:
            return
        data: dict[str, object] = {
            "from_state": decision.from_state.value,
            "to_state": decision.to_state.value,
            "message_id": envelope.message_id,
        }
        if decision.ledger is not None:
            data["confirmed_count"] = decision.ledger.confirmed_count
        if decision.warning:
            data["warning"] = decision.warning
        await emit(SystemEvent(
            event_type=event_type,
            identity_key=envelope.identity_key,
            actor_role="user",
            data=data,
            source_module="conversation.engine",
        ))
