"""Facade composing the metadata, audio and quiz stores into one lesson store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import AppConfig
from ..models import AudioUpload, Lesson, LessonEntry, QuizQuestion
from .audio import AudioBlobStore, AudioWriteError
from .events import EventEmitter
from .quizzes import QuizSidecarStore
from .storage import LessonRepository
from .validation import QuizIssue, find_quiz_issues, validate_lesson_id


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioFailure:
    role: str
    filename: str
    error: str

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role, "filename": self.filename, "error": self.error}


@dataclass
class SaveResult:
    lesson: LessonEntry
    audio_errors: List[AudioFailure] = field(default_factory=list)


class LessonStore:
    """Single entry point over the three independent storage units.

    Nothing here is transactional: a save writes audio, then metadata, then
    writes the quiz sidecar (or removes it for an empty quiz). A failure
    part-way leaves the earlier writes in place.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        audio_store: Optional[AudioBlobStore] = None,
        quiz_store: Optional[QuizSidecarStore] = None,
        repository: Optional[LessonRepository] = None,
    ) -> None:
        self._config = config
        self.audio = audio_store or AudioBlobStore(config)
        self.quizzes = quiz_store or QuizSidecarStore(config)
        self.repository = repository or LessonRepository(config, self.quizzes)

    @property
    def config(self) -> AppConfig:
        return self._config

    def configure_event_emitter(self, emitter: Optional[EventEmitter]) -> None:
        """Register the callable receiving structured store events."""

        for store in (self.audio, self.quizzes, self.repository):
            store.configure_event_emitter(emitter)

    def list_lessons(self) -> List[LessonEntry]:
        return self.repository.list_all()

    def load_quiz(self, lesson_id: str) -> List[QuizQuestion]:
        return self.quizzes.read(lesson_id)

    def save_lesson(
        self,
        lesson: Lesson,
        *,
        reading_audio: Optional[AudioUpload] = None,
        review_audio: Optional[AudioUpload] = None,
        quiz_questions: Sequence[QuizQuestion] = (),
    ) -> SaveResult:
        validate_lesson_id(lesson.id)
        questions = list(quiz_questions)

        audio_errors: List[AudioFailure] = []
        for role, upload in (("reading", reading_audio), ("review", review_audio)):
            if upload is None or not upload.data:
                continue
            try:
                self.audio.store(upload.filename, upload.data)
            except AudioWriteError as error:
                LOGGER.error(
                    "Failed to store %s audio %r for lesson %s: %s",
                    role,
                    upload.filename,
                    lesson.id,
                    error,
                )
                audio_errors.append(AudioFailure(role, upload.filename, str(error)))

        saved = self.repository.upsert(lesson)

        if questions:
            self.quizzes.write(saved.id, questions)
        else:
            self.quizzes.remove(saved.id)

        LOGGER.info(
            "Saved lesson %s (%d flashcard(s), %d quiz question(s), %d audio failure(s))",
            saved.id,
            len(saved.flashcards),
            len(questions),
            len(audio_errors),
        )
        return SaveResult(
            lesson=LessonEntry.from_lesson(saved, has_quiz=bool(questions)),
            audio_errors=audio_errors,
        )

    def check_quizzes(self) -> Dict[str, List[QuizIssue]]:
        """Return the answer-label issues of every stored quiz, keyed by lesson id."""

        report: Dict[str, List[QuizIssue]] = {}
        for entry in self.list_lessons():
            if not entry.has_quiz:
                continue
            issues = find_quiz_issues(self.load_quiz(entry.id))
            if issues:
                report[entry.id] = issues
        return report


__all__ = ["AudioFailure", "LessonStore", "SaveResult"]
