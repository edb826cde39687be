"""Catalog and ledger persistence.

Maps ORM rows to the pydantic schemas the state machine works on. All
database errors are re-raised as PersistenceError so the webhook can turn
them into a 500 for the one request that hit them.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from questbot.errors import PersistenceError
from questbot.models.enums import AnswerType
from questbot.models.ledger import Ledger
from questbot.models.question import Question
from questbot.schemas.questionnaire import LedgerState, QuestionSpec, ResponseEntry

logger = logging.getLogger(__name__)


def question_to_spec(row: Question) -> QuestionSpec:
    return QuestionSpec(
        id=str(row.id),
        order=row.order,
        text=row.text,
        answer_type=AnswerType(row.answer_type),
        options=list(row.options or []),
    )


def ledger_to_state(row: Ledger) -> LedgerState:
    return LedgerState(
        identity_key=row.identity_key,
        display_name=row.display_name,
        entries=tuple(ResponseEntry.model_validate(e) for e in (row.entries or [])),
        message_ids=tuple(row.message_ids or ()),
    )


class LedgerRepository:
    """Reads the catalog and reads/writes ledgers within one AsyncSession.

    The caller owns the session; `commit()` ends the unit of work and
    releases the row lock taken by `get_ledger`.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def load_catalog(self) -> list[QuestionSpec]:
        """All questions, sorted by `order` ascending."""
        try:
            result = await self._db.execute(select(Question).order_by(Question.order.asc()))
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load question catalog") from exc
        return [question_to_spec(row) for row in rows]

    async def get_ledger(self, identity_key: str) -> LedgerState | None:
        """Fetch a ledger and lock its row until commit."""
        try:
            result = await self._db.execute(
                select(Ledger).where(Ledger.identity_key == identity_key).with_for_update()
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load ledger for {identity_key}") from exc
        return ledger_to_state(row) if row is not None else None

    async def create_ledger(self, identity_key: str, display_name: str | None = None) -> LedgerState:
        """Insert an empty ledger; a concurrent insert for the same identity wins silently.

        Returns the stored ledger, which is the other writer's if it got there first.
        """
        stmt = (
            insert(Ledger)
            .values(identity_key=identity_key, display_name=display_name, entries=[], message_ids=[])
            .on_conflict_do_nothing(index_elements=[Ledger.identity_key])
        )
        try:
            await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to create ledger for {identity_key}") from exc

        ledger = await self.get_ledger(identity_key)
        if ledger is None:
            raise PersistenceError(f"Ledger for {identity_key} vanished after insert")
        logger.info("Created ledger for %s", identity_key)
        return ledger

    async def save_ledger(self, ledger: LedgerState) -> None:
        """Overwrite the stored entries, display name and message ids with `ledger`."""
        try:
            result = await self._db.execute(
                select(Ledger).where(Ledger.identity_key == ledger.identity_key)
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise PersistenceError(f"No ledger to save for {ledger.identity_key}")
            row.entries = [entry.model_dump() for entry in ledger.entries]
            row.display_name = ledger.display_name
            row.message_ids = list(ledger.message_ids)
            await self._db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save ledger for {ledger.identity_key}") from exc

    async def commit(self) -> None:
        try:
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise PersistenceError("Commit failed") from exc
