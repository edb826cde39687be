"""Exceptions that abort a single webhook request with HTTP 500.

Answer validation failures are not exceptions: the state machine reports them
as a warning message and the request still succeeds.
"""

from __future__ import annotations


class QuestBotError(Exception):
    """Base class for request-fatal errors."""


class CatalogEmptyError(QuestBotError):
    """No questions are configured, so there is nothing to ask."""

    def __init__(self) -> None:
        super().__init__("No questions in database")


class PersistenceError(QuestBotError):
    """Reading or writing a ledger failed."""
