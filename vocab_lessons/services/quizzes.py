"""Quiz sidecar files stored next to, but apart from, lesson metadata."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from ..config import AppConfig
from ..models import QuizQuestion
from .events import EventEmitter, track_file_operation
from .files import StorageError, atomic_write_text
from .naming import is_safe_identifier


LOGGER = logging.getLogger(__name__)

_QUESTION_LIST = TypeAdapter(List[QuizQuestion])


class QuizNotFoundError(LookupError):
    """Raised when a lesson has no quiz sidecar."""

    def __init__(self, lesson_id: str) -> None:
        super().__init__(f"No quiz stored for lesson '{lesson_id}'")
        self.lesson_id = lesson_id


class QuizSidecarStore:
    """One JSON file per lesson id under ``quiz_root``."""

    def __init__(
        self,
        config: AppConfig,
        *,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        self._root = config.quiz_root
        self._event_emitter = event_emitter

    def configure_event_emitter(self, emitter: Optional[EventEmitter]) -> None:
        self._event_emitter = emitter

    def path_for(self, lesson_id: str) -> Path:
        if not is_safe_identifier(lesson_id):
            raise ValueError(f"Unsafe lesson id: {lesson_id!r}")
        return self._root / f"{lesson_id}.json"

    def exists(self, lesson_id: str) -> bool:
        """Return whether a sidecar is present without reading it."""

        if not is_safe_identifier(lesson_id):
            return False
        return self.path_for(lesson_id).is_file()

    def write(self, lesson_id: str, questions: Sequence[QuizQuestion]) -> Path:
        target = self.path_for(lesson_id)
        document = json.dumps(
            [question.to_wire() for question in questions],
            ensure_ascii=False,
            indent=2,
        )
        with track_file_operation(
            self._event_emitter, "quiz.write", lesson_id=lesson_id, count=len(questions)
        ):
            try:
                atomic_write_text(target, document)
            except OSError as error:
                raise StorageError(f"Could not write quiz for lesson '{lesson_id}': {error}") from error
        LOGGER.info("Wrote %d quiz question(s) for lesson %s", len(questions), lesson_id)
        return target

    def remove(self, lesson_id: str) -> bool:
        """Delete the sidecar for *lesson_id*; return whether one existed."""

        target = self.path_for(lesson_id)
        with track_file_operation(self._event_emitter, "quiz.remove", lesson_id=lesson_id) as event:
            try:
                target.unlink()
            except FileNotFoundError:
                event["status"] = "missing"
                return False
            except OSError as error:
                raise StorageError(f"Could not remove quiz for lesson '{lesson_id}': {error}") from error
        LOGGER.info("Removed quiz for lesson %s", lesson_id)
        return True

    def read(self, lesson_id: str) -> List[QuizQuestion]:
        """Return the stored questions in their original order.

        Raises :class:`QuizNotFoundError` when the sidecar does not exist and
        :class:`StorageError` for any other failure.
        """

        if not is_safe_identifier(lesson_id):
            raise QuizNotFoundError(lesson_id)
        target = self.path_for(lesson_id)
        with track_file_operation(self._event_emitter, "quiz.read", lesson_id=lesson_id) as event:
            try:
                content = target.read_text(encoding="utf-8")
            except FileNotFoundError as error:
                event["status"] = "missing"
                raise QuizNotFoundError(lesson_id) from error
            except OSError as error:
                raise StorageError(f"Could not read quiz for lesson '{lesson_id}': {error}") from error

            if not content.strip():
                return []
            try:
                questions = _QUESTION_LIST.validate_json(content)
            except ValidationError as error:
                raise StorageError(
                    f"Quiz file for lesson '{lesson_id}' is malformed: {error.error_count()} error(s)"
                ) from error
            event["count"] = len(questions)
        return questions


__all__ = ["QuizNotFoundError", "QuizSidecarStore"]
