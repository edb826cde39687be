"""Tests for the catalog/ledger repository against a mocked AsyncSession."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from questbot.db.repository import LedgerRepository, ledger_to_state, question_to_spec
from questbot.errors import PersistenceError
from questbot.models.audit import AuditLog
from questbot.models.base import NAMING_CONVENTION, Base
from questbot.models.enums import AnswerType
from questbot.models.ledger import Ledger
from questbot.models.question import Question


def _result(rows: list | None = None, one=None) -> MagicMock:
    # scalar_one_or_none / scalars are synchronous on the Result object
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []
    result.scalar_one_or_none.return_value = one
    return result


def _ledger_row(entries: list[dict] | None = None, message_ids: list[str] | None = None) -> Ledger:
    return Ledger(
        identity_key="15550001111", display_name="Ada", entries=entries or [], message_ids=message_ids or []
    )


@pytest.fixture()
def db():
    session = AsyncMock()
    session.add = MagicMock()
    return session


class TestMappers:
    def test_question_to_spec(self):
        qid = uuid.uuid4()
        row = Question(id=qid, order=3, text="Pick", answer_type="options", options=["A", "B"])
        spec = question_to_spec(row)

        assert spec.id == str(qid)
        assert spec.order == 3
        assert spec.answer_type == AnswerType.OPTIONS
        assert spec.options == ["A", "B"]

    def test_ledger_to_state(self):
        row = _ledger_row([
            {"question_id": "q1", "answer_value": "42", "confirmed": True},
            {"question_id": "q2", "answer_value": "no", "confirmed": False},
        ], message_ids=["wamid.1", "wamid.2"])
        state = ledger_to_state(row)

        assert state.identity_key == "15550001111"
        assert state.display_name == "Ada"
        assert state.confirmed_count == 1
        assert state.pending_entry.question_id == "q2"
        assert state.message_ids == ("wamid.1", "wamid.2")
        assert state.has_processed("wamid.2")


class TestModels:
    def test_primary_keys(self):
        assert [c.name for c in Ledger.__table__.primary_key] == ["identity_key"]
        assert [c.name for c in Question.__table__.primary_key] == ["id"]
        assert [c.name for c in AuditLog.__table__.primary_key] == ["id"]

    def test_ledger_keeps_message_ids_column(self):
        column = Ledger.__table__.c.message_ids
        assert column.nullable is False
        assert "id" not in Ledger.__table__.c

    def test_question_order_is_unique(self):
        assert Question.__table__.c.order.unique is True

    def test_constraint_naming_convention(self):
        assert Base.metadata.naming_convention["pk"] == NAMING_CONVENTION["pk"] == "pk_%(table_name)s"


class TestLedgerRepository:
    @pytest.mark.asyncio()
    async def test_load_catalog(self, db):
        rows = [
            Question(id=uuid.uuid4(), order=0, text="A?", answer_type="text", options=[]),
            Question(id=uuid.uuid4(), order=1, text="B?", answer_type="number", options=[]),
        ]
        db.execute = AsyncMock(return_value=_result(rows))

        catalog = await LedgerRepository(db).load_catalog()

        assert [q.text for q in catalog] == ["A?", "B?"]
        assert catalog[1].answer_type == AnswerType.NUMBER

    @pytest.mark.asyncio()
    async def test_get_missing_ledger(self, db):
        db.execute = AsyncMock(return_value=_result(one=None))
        assert await LedgerRepository(db).get_ledger("15550001111") is None

    @pytest.mark.asyncio()
    async def test_get_ledger_locks_row(self, db):
        db.execute = AsyncMock(return_value=_result(one=_ledger_row()))
        await LedgerRepository(db).get_ledger("15550001111")

        stmt = db.execute.call_args.args[0]
        assert stmt._for_update_arg is not None

    @pytest.mark.asyncio()
    async def test_create_returns_stored_ledger(self, db):
        stored = _ledger_row([{"question_id": "q1", "answer_value": "42", "confirmed": False}])
        db.execute = AsyncMock(side_effect=[MagicMock(), _result(one=stored)])

        ledger = await LedgerRepository(db).create_ledger("15550001111", "Ada")

        assert len(ledger.entries) == 1
        assert db.execute.await_count == 2

    @pytest.mark.asyncio()
    async def test_save_overwrites_entries(self, db, make_ledger):
        row = _ledger_row()
        db.execute = AsyncMock(return_value=_result(one=row))

        ledger = make_ledger(("q1", "42", True), display_name="Ada L.").with_message_id("wamid.9")
        await LedgerRepository(db).save_ledger(ledger)

        assert row.entries == [{"question_id": "q1", "answer_value": "42", "confirmed": True}]
        assert row.display_name == "Ada L."
        assert row.message_ids == ["wamid.9"]
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_save_without_row_raises(self, db, make_ledger):
        db.execute = AsyncMock(return_value=_result(one=None))
        with pytest.raises(PersistenceError):
            await LedgerRepository(db).save_ledger(make_ledger())

    @pytest.mark.asyncio()
    async def test_database_errors_wrapped(self, db):
        db.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        repo = LedgerRepository(db)

        with pytest.raises(PersistenceError):
            await repo.load_catalog()
        with pytest.raises(PersistenceError):
            await repo.get_ledger("15550001111")

    @pytest.mark.asyncio()
    async def test_failed_commit_rolls_back(self, db):
        db.commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("down")))

        with pytest.raises(PersistenceError):
            await LedgerRepository(db).commit()
        db.rollback.assert_awaited_once()
