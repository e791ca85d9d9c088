"""FastAPI application exposing the lesson store over HTTP."""

from __future__ import annotations

import contextvars
import logging
import os
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.types import ASGIApp, Receive, Scope, Send

from ..config import AppConfig
from ..models import LessonCreatePayload
from ..services.events import emit_file_event, emit_structured_event
from ..services.files import StorageError
from ..services.lessons import LessonStore
from ..services.quizzes import QuizNotFoundError
from ..services.validation import LessonValidationError


_DEFAULT_MAX_REQUEST_BYTES = 200 * 1024 * 1024
try:
    _MAX_REQUEST_BYTES = int(
        (os.environ.get("VOCAB_LESSONS_MAX_REQUEST_BYTES") or "").strip() or _DEFAULT_MAX_REQUEST_BYTES
    )
except ValueError:
    _MAX_REQUEST_BYTES = _DEFAULT_MAX_REQUEST_BYTES


def get_max_request_bytes() -> int:
    """Return the configured maximum request body size in bytes."""

    return int(_MAX_REQUEST_BYTES)


_REQUEST_ID_VAR: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "vocab_lessons_request_id",
    default=None,
)


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


def _collect_correlation_context() -> Dict[str, str]:
    request_id = _REQUEST_ID_VAR.get()
    return {"request_id": str(request_id)} if request_id else {}


class RequestContextMiddleware:
    """Assign a correlation identifier to each request and expose it via contextvars."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = _new_correlation_id()
        scope_state = scope.get("state")
        if scope_state is None:
            scope_state = {}
            scope["state"] = scope_state
        if isinstance(scope_state, dict):
            scope_state["request_id"] = request_id
        else:
            setattr(scope_state, "request_id", request_id)

        async def send_with_request_id(message: Dict[str, Any]) -> None:
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                headers.append((b"x-request-id", request_id.encode("ascii")))
                message["headers"] = headers
            await send(message)

        token = _REQUEST_ID_VAR.set(request_id)
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            _REQUEST_ID_VAR.reset(token)


class RequestTooLargeError(HTTPException):
    """Raised while streaming a body that outgrows the configured limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(status_code=413, detail=f"Request body exceeds {limit} bytes")
        self.limit = limit


class RequestSizeLimitMiddleware:
    """Reject request bodies larger than ``max_bytes`` with HTTP 413.

    A declared ``Content-Length`` is checked before the application runs;
    bodies without one are counted as they are received.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or self.max_bytes <= 0:
            await self.app(scope, receive, send)
            return

        declared = _declared_content_length(scope)
        if declared is not None and declared > self.max_bytes:
            LOGGER.warning(
                "Rejected request to %s declaring %d bytes (limit %d)",
                scope.get("path", ""),
                declared,
                self.max_bytes,
            )
            response = JSONResponse(
                status_code=413,
                content={"detail": f"Request body exceeds {self.max_bytes} bytes"},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Dict[str, Any]:
            nonlocal received
            message = await receive()
            if message.get("type") == "http.request":
                received += len(message.get("body") or b"")
                if received > self.max_bytes:
                    LOGGER.warning(
                        "Streamed request body to %s exceeded %d bytes",
                        scope.get("path", ""),
                        self.max_bytes,
                    )
                    raise RequestTooLargeError(self.max_bytes)
            return message

        await self.app(scope, limited_receive, send)


def _declared_content_length(scope: Scope) -> Optional[int]:
    for name, value in scope.get("headers") or []:
        if name.lower() == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that injects correlation context into records."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple[Any, Dict[str, Any]]:  # type: ignore[override]
        extra: Dict[str, Any] = dict(self.extra or {})
        provided = kwargs.get("extra")
        if isinstance(provided, dict):
            extra.update(provided)
        for key, value in _collect_correlation_context().items():
            extra.setdefault(key, value)
        kwargs["extra"] = extra
        return msg, kwargs


LOGGER = ContextualLoggerAdapter(logging.getLogger(__name__), {})
EVENT_LOGGER = ContextualLoggerAdapter(logging.getLogger("vocab_lessons.events"), {})


def _log_event(message: str, **context: Any) -> None:
    emit_structured_event(
        "APP_EVENT",
        message,
        payload=context,
        correlation=_collect_correlation_context(),
        logger=EVENT_LOGGER,
    )


def _store_event_emitter(event_type: str, message: str, **kwargs: Any) -> None:
    correlation = _collect_correlation_context()
    if event_type == "FILE_OP":
        emit_file_event(message, correlation=correlation, logger=EVENT_LOGGER, **kwargs)
    else:
        emit_structured_event(event_type, message, correlation=correlation, logger=EVENT_LOGGER, **kwargs)


def _summarize_validation_errors(error: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": [str(part) for part in item.get("loc", ())], "msg": str(item.get("msg", ""))}
        for item in error.errors()
    ]


def create_app(
    store: LessonStore,
    *,
    config: AppConfig,
    root_path: str | None = None,
    max_request_bytes: int | None = None,
) -> FastAPI:
    """Return a configured FastAPI application."""

    app = FastAPI(
        title="Vocabulary Lessons",
        description="Author and replay vocabulary lessons",
        root_path=root_path or "",
    )
    app.state.server = None
    app.state.store = store

    configure_emitter = getattr(store, "configure_event_emitter", None)
    if callable(configure_emitter):
        configure_emitter(_store_event_emitter)

    limit = get_max_request_bytes() if max_request_bytes is None else max_request_bytes
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=limit)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(
        "/audio",
        StaticFiles(directory=config.audio_root, check_dir=False),
        name="audio",
    )

    @app.exception_handler(RequestValidationError)
    async def _handle_validation_error(request: Request, error: RequestValidationError) -> JSONResponse:
        if any(item.get("type") == "json_invalid" for item in error.errors()):
            LOGGER.error("Could not parse request body for %s", request.url.path)
            return JSONResponse(
                status_code=500,
                content={"detail": "Failed to parse request body"},
            )
        LOGGER.warning("Rejected malformed request to %s", request.url.path)
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Request payload is invalid",
                "errors": _summarize_validation_errors(error),
            },
        )

    @app.get("/api/lessons")
    async def list_lessons() -> Dict[str, Any]:
        _log_event("Listing lessons")
        try:
            lessons = store.list_lessons()
        except StorageError as error:
            LOGGER.error("Failed to load lessons: %s", error)
            raise HTTPException(status_code=500, detail="Failed to load lessons") from error

        _log_event(
            "Listed lessons",
            lesson_count=len(lessons),
            quiz_count=sum(1 for entry in lessons if entry.has_quiz),
        )
        return {"lessons": [entry.to_wire() for entry in lessons]}

    @app.get("/api/lessons/{lesson_id}/quiz", response_model=None)
    async def get_quiz(lesson_id: str) -> Dict[str, Any] | JSONResponse:
        _log_event("Fetching quiz", lesson_id=lesson_id)
        try:
            questions = store.load_quiz(lesson_id)
        except QuizNotFoundError:
            _log_event("Quiz not found", lesson_id=lesson_id)
            return JSONResponse(status_code=404, content={"quizQuestions": []})
        except StorageError as error:
            LOGGER.error("Failed to load quiz for lesson %s: %s", lesson_id, error)
            raise HTTPException(status_code=500, detail="Failed to load quiz questions") from error

        return {"quizQuestions": [question.to_wire() for question in questions]}

    @app.post("/api/lessons")
    async def create_lesson(payload: LessonCreatePayload) -> Dict[str, Any]:
        lesson = payload.lesson
        if lesson is None or not lesson.id.strip():
            raise HTTPException(status_code=400, detail="Lesson payload is invalid")

        questions = payload.questions
        _log_event(
            "Saving lesson",
            lesson_id=lesson.id,
            flashcard_count=len(lesson.flashcards),
            quiz_count=len(questions),
        )
        try:
            result = store.save_lesson(
                lesson,
                reading_audio=payload.reading_audio,
                review_audio=payload.review_audio,
                quiz_questions=questions,
            )
        except LessonValidationError as error:
            raise HTTPException(status_code=400, detail=str(error)) from error
        except OSError as error:
            LOGGER.exception("Failed to save lesson %s", lesson.id)
            raise HTTPException(status_code=500, detail="Failed to save lesson") from error

        body: Dict[str, Any] = {"lesson": result.lesson.to_wire()}
        if result.audio_errors:
            body["audioErrors"] = [failure.to_wire() for failure in result.audio_errors]
        _log_event(
            "Saved lesson",
            lesson_id=result.lesson.id,
            has_quiz=result.lesson.has_quiz,
            audio_failures=len(result.audio_errors),
        )
        return body

    return app


__all__ = [
    "RequestSizeLimitMiddleware",
    "RequestTooLargeError",
    "create_app",
    "get_max_request_bytes",
]
