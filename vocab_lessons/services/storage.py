"""Lesson metadata persisted as one JSON collection file."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..config import AppConfig
from ..models import Lesson, LessonEntry, strip_quiz_fields
from .events import EventEmitter, track_file_operation
from .files import StorageError, atomic_write_text
from .quizzes import QuizSidecarStore


LOGGER = logging.getLogger(__name__)


class LessonRepository:
    """Read and rewrite the ordered list of lesson metadata records.

    Records are kept in creation order. ``upsert`` rewrites the whole
    collection through a temporary file; writers inside one process are
    serialized, writers in different processes are last-writer-wins.
    """

    def __init__(
        self,
        config: AppConfig,
        quiz_store: QuizSidecarStore,
        *,
        event_emitter: Optional[EventEmitter] = None,
    ) -> None:
        self._path = config.lessons_file
        self._quiz_store = quiz_store
        self._event_emitter = event_emitter
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def configure_event_emitter(self, emitter: Optional[EventEmitter]) -> None:
        self._event_emitter = emitter

    def _load_records(self) -> List[Dict[str, Any]]:
        with track_file_operation(
            self._event_emitter, "lessons.read", path=self._path
        ) as event:
            try:
                content = self._path.read_text(encoding="utf-8")
            except FileNotFoundError:
                event["status"] = "missing"
                return []
            except OSError as error:
                raise StorageError(f"Could not read lessons file '{self._path}': {error}") from error

            if not content.strip():
                return []
            try:
                document = json.loads(content)
            except json.JSONDecodeError as error:
                raise StorageError(f"Lessons file '{self._path}' is not valid JSON: {error}") from error
            if not isinstance(document, list):
                raise StorageError(
                    f"Lessons file '{self._path}' must contain a list, found {type(document).__name__}"
                )
            event["count"] = len(document)
            return document

    def _load_lessons(self) -> List[Lesson]:
        lessons: List[Lesson] = []
        for index, record in enumerate(self._load_records()):
            if not isinstance(record, dict):
                LOGGER.warning("Skipping non-object lesson record at position %d", index)
                continue
            try:
                lessons.append(Lesson.model_validate(record))
            except ValidationError as error:
                raise StorageError(
                    f"Lesson record at position {index} is malformed: {error.error_count()} error(s)"
                ) from error
        return lessons

    def _write_lessons(self, lessons: List[Lesson]) -> None:
        document = json.dumps(
            [strip_quiz_fields(lesson.to_wire()) for lesson in lessons],
            ensure_ascii=False,
            indent=2,
        )
        with track_file_operation(
            self._event_emitter, "lessons.write", path=self._path, count=len(lessons)
        ):
            try:
                atomic_write_text(self._path, document)
            except OSError as error:
                raise StorageError(f"Could not write lessons file '{self._path}': {error}") from error

    def list_all(self) -> List[LessonEntry]:
        """Return every lesson decorated with ``has_quiz``."""

        return [
            LessonEntry.from_lesson(lesson, has_quiz=self._quiz_store.exists(lesson.id))
            for lesson in self._load_lessons()
        ]

    def get(self, lesson_id: str) -> Optional[LessonEntry]:
        for entry in self.list_all():
            if entry.id == lesson_id:
                return entry
        return None

    def upsert(self, lesson: Lesson) -> Lesson:
        """Insert *lesson* or replace the record sharing its id in place."""

        record = Lesson.model_validate(strip_quiz_fields(lesson.model_dump()))
        with self._write_lock:
            lessons = self._load_lessons()
            for index, existing in enumerate(lessons):
                if existing.id == record.id:
                    lessons[index] = record
                    LOGGER.info("Replacing lesson %s at position %d", record.id, index)
                    break
            else:
                lessons.append(record)
                LOGGER.info("Appending lesson %s at position %d", record.id, len(lessons) - 1)
            self._write_lessons(lessons)
        return record


__all__ = ["LessonRepository", "StorageError"]
