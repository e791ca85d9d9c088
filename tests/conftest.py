from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from vocab_lessons.bootstrap import Bootstrapper
from vocab_lessons.config import AppConfig
from vocab_lessons.services.lessons import LessonStore


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_file = config_dir / "default.json"
    config_file.write_text(
        """
        {
            \"data_root\": \"data\",\n
            \"lessons_file\": \"data/lessons.json\",\n
            \"audio_root\": \"data/audio\",\n
            \"quiz_root\": \"data/quizzes\"\n
        }
        """,
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "data_root": "data",
            "lessons_file": "data/lessons.json",
            "audio_root": "data/audio",
            "quiz_root": "data/quizzes",
        },
        base_path=tmp_path,
    )

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def store(temp_config: AppConfig) -> LessonStore:
    return LessonStore(temp_config)


def encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def lesson_payload(lesson_id: str, **overrides: Any) -> Dict[str, Any]:
    payload = {
        "id": lesson_id,
        "title": f"Lesson {lesson_id}...",
        "readingText": "An apple a day keeps the doctor away.",
        "readingAudio": f"{lesson_id}-reading.mp3",
        "flashcards": [
            {
                "word": "apple",
                "translation": "quả táo",
                "partOfSpeech": "noun",
                "exampleSentence": "I eat an apple every morning.",
            }
        ],
        "reviewText": "Remember the apple.",
        "reviewAudio": f"{lesson_id}-review.mp3",
    }
    payload.update(overrides)
    return payload


def apple_question(**overrides: Any) -> Dict[str, Any]:
    question = {
        "vocabularyWord": "apple",
        "question": "Theo bạn từ apple có nghĩa là gì? Tôi gợi ý nhé:",
        "hints": ["apple là...", "apple có...", "apple thường..."],
        "options": [
            {"label": "A", "text": "quả táo"},
            {"label": "B", "text": "quả cam"},
        ],
        "correctOption": "A",
    }
    question.update(overrides)
    return question


def create_body(lesson_id: str, questions: List[Dict[str, Any]] | None = None, **lesson_overrides: Any) -> Dict[str, Any]:
    return {
        "lesson": lesson_payload(lesson_id, **lesson_overrides),
        "readingAudio": {"filename": f"{lesson_id}-reading.mp3", "data": encode(b"reading-audio")},
        "reviewAudio": {"filename": f"{lesson_id}-review.mp3", "data": encode(b"review-audio")},
        "quizQuestions": questions if questions is not None else [],
    }
