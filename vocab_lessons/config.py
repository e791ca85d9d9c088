"""Configuration loading utilities for the vocabulary lessons application."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple


LOGGER = logging.getLogger(__name__)


CONFIG_ENV_VAR = "VOCAB_LESSONS_CONFIG"
_PERMISSION_SENTINEL = ".vocab_lessons_write_check"


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins and the flag reports whether a fallback
    was used. When nothing can be prepared ``preferred`` is returned so the
    bootstrap step can report the failure.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


def _relocate(path: Path, *, old_root: Path, new_root: Path) -> Path:
    """Move *path* under ``new_root`` when it used to live under ``old_root``."""

    try:
        relative = path.relative_to(old_root)
    except ValueError:
        return path
    return (new_root / relative).resolve()


@dataclass(frozen=True)
class AppConfig:
    """Runtime paths owned by the three lesson stores."""

    data_root: Path
    lessons_file: Path
    audio_root: Path
    quiz_root: Path

    @classmethod
    def from_mapping(cls, mapping: Dict[str, Any], *, base_path: Path) -> "AppConfig":
        preferred_data = (base_path / mapping["data_root"]).resolve()
        data_fallback = Path.home() / ".vocab_lessons" / "data"
        data_root, data_fallback_used = _select_writable_directory(
            preferred_data,
            label="data",
            fallbacks=(data_fallback,),
        )

        lessons_file = (base_path / mapping["lessons_file"]).resolve()
        preferred_audio = (base_path / mapping["audio_root"]).resolve()
        preferred_quiz = (base_path / mapping["quiz_root"]).resolve()

        if data_fallback_used:
            lessons_file = _relocate(lessons_file, old_root=preferred_data, new_root=data_root)
            preferred_audio = _relocate(preferred_audio, old_root=preferred_data, new_root=data_root)
            preferred_quiz = _relocate(preferred_quiz, old_root=preferred_data, new_root=data_root)

        audio_root, _ = _select_writable_directory(
            preferred_audio,
            label="audio",
            fallbacks=(data_root / "audio",),
        )
        quiz_root, _ = _select_writable_directory(
            preferred_quiz,
            label="quiz",
            fallbacks=(data_root / "quizzes",),
        )

        if not _ensure_writable_directory(lessons_file.parent):
            fallback_lessons = (data_root / lessons_file.name).resolve()
            if fallback_lessons != lessons_file:
                LOGGER.warning(
                    "Preferred lessons file location '%s' is not writable; using fallback '%s'.",
                    lessons_file,
                    fallback_lessons,
                )
                lessons_file = fallback_lessons

        return cls(
            data_root=data_root,
            lessons_file=lessons_file,
            audio_root=audio_root,
            quiz_root=quiz_root,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from ``$VOCAB_LESSONS_CONFIG`` or ``config/default.json``."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        override = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
        config_path = Path(override) if override else base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["AppConfig", "CONFIG_ENV_VAR", "load_config"]
