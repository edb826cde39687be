"""Completion notifier — emails a summary of a finished questionnaire.

Best effort: every failure is logged and swallowed, so a broken mail server
can never fail the webhook that triggered the notification.
"""

from __future__ import annotations

import html
import logging
from typing import Protocol

from questbot.events import emit
from questbot.conversation.prompts import display_answer
from questbot.schemas.events import EventType, SystemEvent
from questbot.schemas.questionnaire import LedgerState, QuestionSpec

logger = logging.getLogger(__name__)

UNKNOWN_QUESTION = "Unknown question"


class Mailer(Protocol):
    async def send_summary(self, recipients: list[str], subject: str, body: str) -> bool: ...


def build_subject(ledger: LedgerState) -> str:
    return f"Questionnaire completed by {ledger.identity_key}"


def build_summary(ledger: LedgerState, catalog: list[QuestionSpec]) -> str:
    """HTML body pairing every confirmed answer with its question text.

    Answers whose question is no longer in the catalog get a placeholder.
    """
    by_id = {q.id: q for q in catalog}
    parts = [f"<h3>New responses from {html.escape(ledger.identity_key)}</h3>"]
    if ledger.display_name:
        parts.append(f"<p><strong>Name:</strong> {html.escape(ledger.display_name)}</p>")

    parts.append("<ul>")
    for entry in ledger.confirmed_entries:
        question = by_id.get(entry.question_id)
        label = question.text if question is not None else UNKNOWN_QUESTION
        answer = display_answer(question, entry.answer_value)
        parts.append(f"<li><strong>{html.escape(label)}</strong>: {html.escape(answer)}</li>")
    parts.append("</ul>")
    return "".join(parts)


class CompletionNotifier:
    """Formats a ledger summary and hands it to the mailer."""

    def __init__(self, mailer: Mailer, recipients: list[str]) -> None:
        self._mailer = mailer
        self._recipients = recipients

    async def notify(self, ledger: LedgerState, catalog: list[QuestionSpec]) -> None:
        if not self._recipients:
            logger.warning("No notification emails configured")
            return

        try:
            subject = build_subject(ledger)
            body = build_summary(ledger, catalog)
            sent = await self._mailer.send_summary(self._recipients, subject, body)
        except Exception:
            logger.exception("Completion notification failed for %s", ledger.identity_key)
            sent = False

        await emit(SystemEvent(
            event_type=EventType.NOTIFICATION_SENT if sent else EventType.NOTIFICATION_FAILED,
            identity_key=ledger.identity_key,
            actor_role="system",
            data={"recipients": len(self._recipients), "answers": ledger.confirmed_count},
            source_module="notifications.completion",
        ))
