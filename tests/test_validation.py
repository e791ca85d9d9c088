from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import apple_question
from vocab_lessons.models import QuizQuestion
from vocab_lessons.services.naming import build_audio_filename, build_lesson_id, build_lesson_title
from vocab_lessons.services.validation import (
    LessonValidationError,
    find_quiz_issues,
    is_correct_answer,
    validate_lesson_id,
    validate_quiz_questions,
)


def test_consistent_quiz_has_no_issues() -> None:
    questions = [QuizQuestion.model_validate(apple_question())]

    assert find_quiz_issues(questions) == []
    validate_quiz_questions(questions)


def test_answer_label_outside_options_is_reported() -> None:
    questions = [
        QuizQuestion.model_validate(apple_question()),
        QuizQuestion.model_validate(apple_question(vocabularyWord="book", correctOption="D")),
    ]

    issues = find_quiz_issues(questions)

    assert len(issues) == 1
    assert issues[0].index == 1
    assert issues[0].vocabulary_word == "book"
    with pytest.raises(LessonValidationError) as excinfo:
        validate_quiz_questions(questions)
    assert "book" in str(excinfo.value)
    assert excinfo.value.issues == issues


def test_duplicate_labels_are_reported() -> None:
    question = QuizQuestion.model_validate(
        apple_question(
            options=[
                {"label": "A", "text": "quả táo"},
                {"label": "A", "text": "quả cam"},
            ]
        )
    )

    messages = [issue.message for issue in find_quiz_issues([question])]

    assert any("duplicate" in message for message in messages)
    assert any("exactly one" in message for message in messages)


def test_question_without_options_is_reported() -> None:
    question = QuizQuestion.model_validate(apple_question(options=[]))

    [issue] = find_quiz_issues([question])

    assert issue.message == "has no options"


def test_is_correct_answer() -> None:
    question = QuizQuestion.model_validate(apple_question())

    assert is_correct_answer(question, "A")
    assert not is_correct_answer(question, "B")
    assert not is_correct_answer(question, "")


@pytest.mark.parametrize("lesson_id", ["", "   ", "..", "a/b", "a\\b"])
def test_validate_lesson_id_rejects_unusable_ids(lesson_id: str) -> None:
    with pytest.raises(LessonValidationError):
        validate_lesson_id(lesson_id)


def test_lesson_naming_helpers() -> None:
    moment = datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=timezone.utc)

    lesson_id = build_lesson_id(moment)

    assert lesson_id == "2024-05-01T10-20-30-123Z"
    validate_lesson_id(lesson_id)
    assert build_audio_filename(lesson_id, "reading", "My Recording.MP3") == f"{lesson_id}-reading.mp3"
    assert build_audio_filename(lesson_id, "review", "noext") == f"{lesson_id}-review"
    assert build_lesson_title("x" * 40) == "x" * 30 + "..."
