"""Utility helpers for consistent lesson and asset naming."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PureWindowsPath
from typing import Optional

__all__ = [
    "build_audio_filename",
    "build_lesson_id",
    "build_lesson_title",
    "is_safe_identifier",
    "safe_basename",
]


_TITLE_LENGTH = 30
_MAX_IDENTIFIER_LENGTH = 200


def safe_basename(filename: str) -> str:
    """Return only the final path component of *filename*.

    Both ``/`` and ``\\`` count as separators so a client cannot smuggle a
    directory into the name on any platform.
    """

    return PureWindowsPath(filename.strip()).name


def is_safe_identifier(value: str) -> bool:
    """Return ``True`` when *value* can be used as a filename stem."""

    if not value or len(value) > _MAX_IDENTIFIER_LENGTH:
        return False
    if value in {".", ".."} or value != value.strip():
        return False
    return not any(separator in value for separator in ("/", "\\", "\x00"))


def build_lesson_id(moment: Optional[datetime] = None) -> str:
    """Return a timestamp-derived lesson id such as ``2024-05-01T10-20-30-123Z``."""

    stamp = (moment or datetime.now(timezone.utc)).astimezone(timezone.utc)
    iso = stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


def build_audio_filename(lesson_id: str, role: str, source_name: str) -> str:
    """Return ``<lesson_id>-<role>.<ext>`` using the extension of *source_name*."""

    base = safe_basename(source_name)
    extension = base.rpartition(".")[2] if "." in base else ""
    suffix = f".{extension.lower()}" if extension else ""
    return f"{lesson_id}-{role}{suffix}"


def build_lesson_title(reading_text: str) -> str:
    return reading_text[:_TITLE_LENGTH] + "..."
