"""Async HTTP client for the lessons API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..models import AudioUpload, Lesson, LessonEntry, QuizQuestion
from .decoding import DecodeResult, Malformed, decode_lessons, decode_quiz


LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT_SECONDS = 10.0


class LessonApiError(Exception):
    """Raised when the lessons API cannot satisfy a request."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LessonApiTimeout(LessonApiError):
    """Raised when a request exceeds the client timeout."""


class QuizUnavailable(LessonApiError):
    """Raised when the server reports that a lesson has no quiz."""


@dataclass
class CreatedLesson:
    lesson: LessonEntry
    audio_errors: List[Dict[str, Any]] = field(default_factory=list)


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("message")
        if isinstance(detail, str) and detail:
            return detail
    return fallback


class LessonApiClient:
    """Thin wrapper over :class:`httpx.AsyncClient` speaking the lessons API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LessonApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as error:
            raise LessonApiTimeout(f"Request to {path} timed out") from error
        except httpx.HTTPError as error:
            raise LessonApiError(f"Request to {path} failed: {error}") from error

    async def fetch_lessons(self) -> DecodeResult[LessonEntry]:
        response = await self._request("GET", "/api/lessons")
        if response.status_code != 200:
            raise LessonApiError(
                _error_message(response, "Failed to load lessons"),
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError:
            return Malformed("Lesson list response is not JSON")
        return decode_lessons(payload)

    async def fetch_quiz(self, lesson_id: str) -> List[QuizQuestion]:
        path = f"/api/lessons/{quote(lesson_id, safe='')}/quiz"
        response = await self._request("GET", path)
        if response.status_code == 404:
            raise QuizUnavailable(f"Lesson '{lesson_id}' has no quiz", status_code=404)
        if response.status_code != 200:
            raise LessonApiError(
                _error_message(response, "Failed to load quiz questions"),
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as error:
            raise LessonApiError("Quiz response is not JSON", status_code=200) from error

        result = decode_quiz(payload)
        if isinstance(result, Malformed):
            LOGGER.warning("Discarding malformed quiz for lesson %s: %s", lesson_id, result.reason)
            raise LessonApiError(result.reason, status_code=200)
        return result.items

    async def create_lesson(
        self,
        lesson: Lesson,
        *,
        reading_audio: AudioUpload,
        review_audio: AudioUpload,
        quiz_questions: Sequence[QuizQuestion] = (),
    ) -> CreatedLesson:
        body = {
            "lesson": lesson.to_wire(),
            "readingAudio": reading_audio.to_wire(),
            "reviewAudio": review_audio.to_wire(),
            "quizQuestions": [question.to_wire() for question in quiz_questions],
        }
        response = await self._request("POST", "/api/lessons", json=body)
        if response.status_code != 200:
            raise LessonApiError(
                _error_message(response, "Failed to save lesson. Please try again."),
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as error:
            raise LessonApiError("Save response is not JSON", status_code=response.status_code) from error
        saved = payload.get("lesson") if isinstance(payload, dict) else None
        if isinstance(saved, dict):
            try:
                entry = LessonEntry.model_validate(saved)
            except ValidationError as error:
                raise LessonApiError(
                    "Saved lesson in response is malformed",
                    status_code=response.status_code,
                ) from error
        else:
            entry = LessonEntry.from_lesson(lesson, has_quiz=bool(quiz_questions))
        audio_errors = payload.get("audioErrors") if isinstance(payload, dict) else None
        return CreatedLesson(lesson=entry, audio_errors=list(audio_errors or []))


__all__ = [
    "CreatedLesson",
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "LessonApiClient",
    "LessonApiError",
    "LessonApiTimeout",
    "QuizUnavailable",
]
