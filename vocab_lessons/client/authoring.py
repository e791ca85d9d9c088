"""Authoring flow: turn a draft into a saved lesson."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from ..models import AudioUpload, Flashcard, Lesson, QuizQuestion
from ..services.naming import build_audio_filename, build_lesson_id, build_lesson_title
from ..services.validation import LessonValidationError, validate_quiz_questions
from .api import CreatedLesson, LessonApiClient, LessonApiError


LOGGER = logging.getLogger(__name__)


class ContentGenerationError(RuntimeError):
    """Raised by a content generator when the remote call or its output fails."""


class AuthoringError(RuntimeError):
    """Raised when a draft cannot be turned into a saved lesson."""


class ContentGenerator(Protocol):
    """Black-box service producing study material from a vocabulary list."""

    async def generate_flashcards(self, vocabulary: str) -> Sequence[Flashcard]: ...

    async def generate_quiz_questions(self, vocabulary: str) -> Sequence[QuizQuestion]: ...


@dataclass(frozen=True)
class LessonDraft:
    reading_text: str
    reading_audio: Optional[Path]
    vocabulary: str
    review_text: str
    review_audio: Optional[Path]

    def missing_fields(self) -> List[str]:
        missing: List[str] = []
        if not self.reading_text.strip():
            missing.append("reading text")
        if self.reading_audio is None:
            missing.append("reading audio")
        if not self.vocabulary.strip():
            missing.append("vocabulary")
        if not self.review_text.strip():
            missing.append("review text")
        if self.review_audio is None:
            missing.append("review audio")
        return missing


def _encode_file(path: Path) -> str:
    return base64.b64encode(path.read_bytes()).decode("ascii")


def _require_audio_files(draft: LessonDraft) -> Tuple[Path, Path]:
    paths = (draft.reading_audio, draft.review_audio)
    missing = [str(path) for path in paths if path is None or not path.is_file()]
    if missing:
        raise AuthoringError(f"Audio file not found: {', '.join(missing)}")
    reading, review = paths
    return Path(reading), Path(review)


class LessonAuthor:
    """Generate flashcards and quiz questions, then save the lesson.

    The draft is never mutated, so a failed attempt can simply be retried.
    """

    def __init__(
        self,
        generator: ContentGenerator,
        api: LessonApiClient,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._generator = generator
        self._api = api
        self._clock = clock

    async def create(self, draft: LessonDraft) -> CreatedLesson:
        missing = draft.missing_fields()
        if missing:
            raise AuthoringError(
                f"Please complete all fields before creating the lesson (missing: {', '.join(missing)})."
            )
        reading_audio, review_audio = _require_audio_files(draft)

        try:
            flashcards, quiz_questions = await asyncio.gather(
                self._generator.generate_flashcards(draft.vocabulary),
                self._generator.generate_quiz_questions(draft.vocabulary),
            )
        except ContentGenerationError as error:
            LOGGER.error("Content generation failed: %s", error)
            raise AuthoringError(str(error)) from error
        except Exception as error:
            LOGGER.exception("Content generator raised an unexpected error")
            raise AuthoringError(f"Content generation failed: {error}") from error

        questions = list(quiz_questions)
        try:
            validate_quiz_questions(questions)
        except LessonValidationError as error:
            raise AuthoringError(f"Generated quiz was rejected: {error}") from error

        lesson_id = build_lesson_id(self._clock() if self._clock else None)
        lesson = Lesson(
            id=lesson_id,
            title=build_lesson_title(draft.reading_text),
            reading_text=draft.reading_text,
            reading_audio=build_audio_filename(lesson_id, "reading", reading_audio.name),
            flashcards=list(flashcards),
            review_text=draft.review_text,
            review_audio=build_audio_filename(lesson_id, "review", review_audio.name),
        )

        try:
            reading_data, review_data = await asyncio.gather(
                asyncio.to_thread(_encode_file, reading_audio),
                asyncio.to_thread(_encode_file, review_audio),
            )
        except OSError as error:
            raise AuthoringError(f"Failed to read audio file: {error}") from error

        try:
            created = await self._api.create_lesson(
                lesson,
                reading_audio=AudioUpload(filename=lesson.reading_audio, data=reading_data),
                review_audio=AudioUpload(filename=lesson.review_audio, data=review_data),
                quiz_questions=questions,
            )
        except LessonApiError as error:
            raise AuthoringError(str(error)) from error

        LOGGER.info(
            "Created lesson %s with %d flashcard(s) and %d quiz question(s)",
            created.lesson.id,
            len(lesson.flashcards),
            len(questions),
        )
        return created


__all__ = [
    "AuthoringError",
    "ContentGenerationError",
    "ContentGenerator",
    "LessonAuthor",
    "LessonDraft",
]
