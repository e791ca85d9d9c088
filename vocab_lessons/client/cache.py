"""Session-scoped cache of the lesson list."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from ..models import LessonEntry
from .decoding import DecodeResult, Malformed


LOGGER = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"


class ClientLessonCache:
    """Fetch the lesson list once per instance and keep it for the session.

    Every failure degrades to an empty list; the reason is kept in
    :attr:`degraded_reason` instead of being raised to the caller.
    """

    def __init__(self, fetch_lessons: Callable[[], Awaitable[DecodeResult[LessonEntry]]]) -> None:
        self._fetch_lessons = fetch_lessons
        self._status = CacheStatus.LOADING
        self._lessons: List[LessonEntry] = []
        self._degraded_reason: Optional[str] = None
        self._load_task: Optional[asyncio.Task[List[LessonEntry]]] = None

    @property
    def status(self) -> CacheStatus:
        return self._status

    @property
    def is_loading(self) -> bool:
        return self._status is CacheStatus.LOADING

    @property
    def lessons(self) -> List[LessonEntry]:
        return list(self._lessons)

    @property
    def degraded_reason(self) -> Optional[str]:
        return self._degraded_reason

    async def load(self) -> List[LessonEntry]:
        """Return the lesson list, issuing the fetch only on the first call."""

        if self._load_task is None:
            self._load_task = asyncio.get_running_loop().create_task(self._load_once())
        return await asyncio.shield(self._load_task)

    async def _load_once(self) -> List[LessonEntry]:
        try:
            result = await self._fetch_lessons()
        except Exception as error:  # noqa: BLE001 - listing degrades to an empty view
            LOGGER.error("Failed to load lessons, starting with an empty list: %s", error)
            self._ready([], reason=str(error) or error.__class__.__name__)
        else:
            if isinstance(result, Malformed):
                LOGGER.warning("Coerced malformed lesson list to empty: %s", result.reason)
                self._ready([], reason=result.reason)
            else:
                self._ready(result.items)
        return self.lessons

    def _ready(self, lessons: List[LessonEntry], *, reason: Optional[str] = None) -> None:
        self._lessons = list(lessons)
        self._degraded_reason = reason
        self._status = CacheStatus.READY

    def remember(self, entry: LessonEntry) -> None:
        """Record a freshly saved lesson, replacing any entry with the same id."""

        for index, existing in enumerate(self._lessons):
            if existing.id == entry.id:
                self._lessons[index] = entry
                return
        self._lessons.append(entry)

    def find(self, lesson_id: str) -> Optional[LessonEntry]:
        return next((entry for entry in self._lessons if entry.id == lesson_id), None)


__all__ = ["CacheStatus", "ClientLessonCache"]
