"""Typed decoding of API payloads into tagged results."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, List, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

from ..models import LessonEntry, QuizQuestion


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    items: List[T]


@dataclass(frozen=True)
class Malformed:
    reason: str


DecodeResult = Union[Ok[T], Malformed]

_LESSON_LIST = TypeAdapter(List[LessonEntry])
_QUESTION_LIST = TypeAdapter(List[QuizQuestion])


def _decode_list(payload: Any, *, key: str, adapter: TypeAdapter, label: str) -> DecodeResult:
    if isinstance(payload, list):
        LOGGER.debug("Accepted bare list payload for %s", label)
        items = payload
    elif isinstance(payload, dict):
        if key not in payload:
            return Malformed(f"{label} payload has no '{key}' field")
        items = payload[key]
        if not isinstance(items, list):
            return Malformed(f"'{key}' must be a list, found {type(items).__name__}")
    else:
        return Malformed(f"{label} payload must be an object or list, found {type(payload).__name__}")

    try:
        return Ok(adapter.validate_python(items))
    except ValidationError as error:
        first = error.errors()[0] if error.error_count() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return Malformed(
            f"{label} payload failed validation at '{location}': {first.get('msg', 'invalid value')}"
        )


def decode_lessons(payload: Any) -> DecodeResult[LessonEntry]:
    """Decode ``{"lessons": [...]}`` (or a bare list) into lesson entries."""

    return _decode_list(payload, key="lessons", adapter=_LESSON_LIST, label="Lesson list")


def decode_quiz(payload: Any) -> DecodeResult[QuizQuestion]:
    """Decode ``{"quizQuestions": [...]}`` (or a bare list) into questions."""

    return _decode_list(payload, key="quizQuestions", adapter=_QUESTION_LIST, label="Quiz")


__all__ = ["DecodeResult", "Malformed", "Ok", "decode_lessons", "decode_quiz"]
