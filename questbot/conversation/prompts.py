"""Prompt rendering — turns questions and confirmations into outbound messages.

Pure translation, no state. A long choice list is split into several list
messages; every page is complete on its own and they all stand for the same
pending question.
"""

from __future__ import annotations

from questbot.models.enums import AnswerType
from questbot.schemas.outbound import MAX_ROW_TITLE, Button, ListRow, MessageKind, OutboundMessage
from questbot.schemas.questionnaire import QuestionSpec

DEFAULT_PAGE_SIZE = 10

# Button ids. Confirmation and boolean answer ids must never collide
CONFIRM_YES_ID = "confirm_yes"
CONFIRM_NO_ID = "confirm_no"
ANSWER_YES_ID = "answer_yes"
ANSWER_NO_ID = "answer_no"

LIST_BODY = "Please choose an option."
LIST_BUTTON = "View options"

INVALID_NUMBER_WARNING = "⚠️ Please enter a valid number."
USE_LIST_WARNING = "⚠️ Please select from the provided list."
USE_BUTTONS_WARNING = "⚠️ Please reply using the Yes/No buttons."
UNKNOWN_CHOICE_WARNING = "⚠️ That option is not on the list. Please choose again."

COMPLETED_MESSAGE = "✅ Thank you! You’ve completed all questions."
ALREADY_COMPLETED_MESSAGE = "You’ve completed all questions. Thank you!"


def text_message(body: str) -> OutboundMessage:
    return OutboundMessage(kind=MessageKind.TEXT, body=body)


def paginate(options: list[str], page_size: int = DEFAULT_PAGE_SIZE) -> list[list[str]]:
    """Split options into consecutive pages of at most `page_size` items."""
    return [options[i : i + page_size] for i in range(0, len(options), page_size)]


def render(question: QuestionSpec, page_size: int = DEFAULT_PAGE_SIZE) -> list[OutboundMessage]:
    """Render the prompt for a question.

    Returns one message, except for `options` questions which get one list
    message per page.
    """
    if question.answer_type == AnswerType.OPTIONS and question.options:
        return [
            OutboundMessage(
                kind=MessageKind.LIST,
                header=question.text,
                body=LIST_BODY,
                list_button=LIST_BUTTON,
                # Row ids carry the full option; titles are cut to the API limit
                rows=tuple(ListRow(id=opt, title=opt[:MAX_ROW_TITLE]) for opt in page),
            )
            for page in paginate(question.options, page_size)
        ]

    if question.answer_type == AnswerType.BOOLEAN:
        return [
            OutboundMessage(
                kind=MessageKind.BUTTONS,
                body=question.text,
                buttons=(
                    Button(id=ANSWER_YES_ID, title="Yes"),
                    Button(id=ANSWER_NO_ID, title="No"),
                ),
            )
        ]

    return [text_message(question.text)]


def render_confirmation(answer_value: str) -> OutboundMessage:
    """Ask the user to accept or reject the value they just submitted."""
    return OutboundMessage(
        kind=MessageKind.BUTTONS,
        body=f'You entered: "{answer_value}"\nIs this correct?',
        buttons=(
            Button(id=CONFIRM_YES_ID, title="Yes"),
            Button(id=CONFIRM_NO_ID, title="No, enter again"),
        ),
    )


def display_answer(question: QuestionSpec | None, answer_value: str) -> str:
    """Human-readable form of a stored answer (boolean answers are stored as yes/no)."""
    if question is not None and question.answer_type == AnswerType.BOOLEAN:
        return {"yes": "Yes", "no": "No"}.get(answer_value, answer_value)
    return answer_value
