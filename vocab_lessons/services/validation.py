"""Consistency checks applied outside the stores' read/write path."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from ..models import QuizQuestion
from .naming import is_safe_identifier


class LessonValidationError(ValueError):
    """Raised when a lesson or its quiz fails validation."""

    def __init__(self, message: str, *, issues: Sequence["QuizIssue"] = ()) -> None:
        super().__init__(message)
        self.issues = list(issues)


@dataclass(frozen=True)
class QuizIssue:
    index: int
    vocabulary_word: str
    message: str

    def describe(self) -> str:
        word = self.vocabulary_word or "<unknown>"
        return f"question {self.index + 1} ({word}): {self.message}"


def validate_lesson_id(lesson_id: str) -> str:
    """Return *lesson_id* when it is usable as a join key and filename stem."""

    if not lesson_id or not lesson_id.strip():
        raise LessonValidationError("Lesson id is required")
    if not is_safe_identifier(lesson_id):
        raise LessonValidationError(f"Lesson id {lesson_id!r} contains unsupported characters")
    return lesson_id


def find_quiz_issues(questions: Sequence[QuizQuestion]) -> List[QuizIssue]:
    """Return every question whose labels or answer do not line up."""

    issues: List[QuizIssue] = []
    for index, question in enumerate(questions):
        labels = [option.label for option in question.options]
        if not labels:
            issues.append(QuizIssue(index, question.vocabulary_word, "has no options"))
            continue
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            issues.append(
                QuizIssue(
                    index,
                    question.vocabulary_word,
                    f"duplicate option labels {', '.join(duplicates)}",
                )
            )
        if labels.count(question.correct_option) != 1:
            issues.append(
                QuizIssue(
                    index,
                    question.vocabulary_word,
                    f"correct option {question.correct_option!r} does not match exactly one of "
                    f"{', '.join(labels)}",
                )
            )
    return issues


def validate_quiz_questions(questions: Sequence[QuizQuestion]) -> None:
    issues = find_quiz_issues(questions)
    if issues:
        summary = "; ".join(issue.describe() for issue in issues)
        raise LessonValidationError(f"Quiz is inconsistent: {summary}", issues=issues)


def is_correct_answer(question: QuizQuestion, label: str) -> bool:
    return bool(label) and label == question.correct_option


__all__ = [
    "LessonValidationError",
    "QuizIssue",
    "find_quiz_issues",
    "is_correct_answer",
    "validate_lesson_id",
    "validate_quiz_questions",
]
