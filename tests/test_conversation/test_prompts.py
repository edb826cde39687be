"""Tests for prompt rendering and Cloud API payloads."""

from __future__ import annotations

from questbot.conversation.prompts import (
    ANSWER_NO_ID,
    ANSWER_YES_ID,
    CONFIRM_NO_ID,
    CONFIRM_YES_ID,
    paginate,
    render,
    render_confirmation,
)
from questbot.models.enums import AnswerType
from questbot.schemas.outbound import MessageKind
from questbot.schemas.questionnaire import QuestionSpec


def _options_question(count: int) -> QuestionSpec:
    return QuestionSpec(
        id="q",
        order=0,
        text="Which city do you live in?",
        answer_type=AnswerType.OPTIONS,
        options=[f"City number {i}" for i in range(count)],
    )


class TestPaginate:
    def test_exact_multiple(self):
        assert [len(p) for p in paginate(list(range(20)))] == [10, 10]

    def test_remainder(self):
        assert [len(p) for p in paginate(list(range(7)), page_size=3)] == [3, 3, 1]

    def test_empty(self):
        assert paginate([]) == []


class TestRenderOptions:
    def test_scenario_e_25_choices_three_pages(self):
        messages = render(_options_question(25))

        assert [len(m.rows) for m in messages] == [10, 10, 5]
        for message in messages:
            assert message.kind == MessageKind.LIST
            assert message.header == "Which city do you live in?"
            payload = message.to_payload("15550001111")
            assert payload["type"] == "interactive"
            assert payload["interactive"]["type"] == "list"
            assert payload["interactive"]["action"]["button"] == "View options"
            assert len(payload["interactive"]["action"]["sections"][0]["rows"]) == len(message.rows)

    def test_pages_cover_every_option_once(self):
        question = _options_question(25)
        ids = [row.id for m in render(question) for row in m.rows]
        assert ids == question.options

    def test_single_page(self):
        assert len(render(_options_question(3))) == 1

    def test_custom_page_size(self):
        assert len(render(_options_question(25), page_size=5)) == 5

    def test_long_option_title_truncated_id_kept(self):
        long_option = "A very long option label that exceeds the limit"
        question = QuestionSpec(
            id="q", order=0, text="Pick", answer_type=AnswerType.OPTIONS, options=[long_option]
        )
        row = render(question)[0].rows[0]
        assert row.id == long_option
        assert len(row.title) == 24


class TestRenderOthers:
    def test_boolean_two_buttons(self):
        question = QuestionSpec(id="q", order=0, text="Do you agree?", answer_type=AnswerType.BOOLEAN)
        (message,) = render(question)

        assert message.kind == MessageKind.BUTTONS
        assert message.body == "Do you agree?"
        assert [b.id for b in message.buttons] == [ANSWER_YES_ID, ANSWER_NO_ID]

    def test_text_and_number_plain_prompt(self):
        for answer_type in (AnswerType.TEXT, AnswerType.NUMBER):
            question = QuestionSpec(id="q", order=0, text="Tell me", answer_type=answer_type)
            (message,) = render(question)
            payload = message.to_payload("15550001111")
            assert payload == {
                "messaging_product": "whatsapp",
                "to": "15550001111",
                "type": "text",
                "text": {"body": "Tell me"},
            }


class TestRenderConfirmation:
    def test_echoes_value_verbatim(self):
        message = render_confirmation("  42 apples ")
        assert message.body == 'You entered: "  42 apples "\nIs this correct?'

    def test_accept_reject_buttons(self):
        payload = render_confirmation("42").to_payload("15550001111")
        buttons = payload["interactive"]["action"]["buttons"]

        assert payload["interactive"]["type"] == "button"
        assert [b["reply"]["id"] for b in buttons] == [CONFIRM_YES_ID, CONFIRM_NO_ID]
        assert [b["reply"]["title"] for b in buttons] == ["Yes", "No, enter again"]

    def test_confirmation_ids_differ_from_answer_ids(self):
        assert {CONFIRM_YES_ID, CONFIRM_NO_ID}.isdisjoint({ANSWER_YES_ID, ANSWER_NO_ID})
