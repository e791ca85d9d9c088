"""Alternate JSON layouts for sharing a lesson's quiz."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from ..models import QuizQuestion


def convert_quiz(questions: Sequence[QuizQuestion]) -> Dict[str, List[Dict[str, Any]]]:
    """Return ``{"quiz": [...]}`` with hints folded into the question text.

    Each entry carries the prompt and hints joined by newlines, the options as
    a label to text mapping, and the answer label.
    """

    converted: List[Dict[str, Any]] = []
    for question in questions:
        lines = [line for line in (question.question, *question.hints) if line]
        converted.append(
            {
                "question": "\n".join(lines),
                "options": {option.label: option.text for option in question.options},
                "answer": question.correct_option,
            }
        )
    return {"quiz": converted}


def render_quiz_json(questions: Sequence[QuizQuestion], *, converted: bool = False) -> str:
    if converted:
        document: Any = convert_quiz(questions)
    else:
        document = [question.to_wire() for question in questions]
    return json.dumps(document, ensure_ascii=False, indent=2)


__all__ = ["convert_quiz", "render_quiz_json"]
