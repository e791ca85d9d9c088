"""Pydantic models shared by the stores, the web layer and the client."""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


QUIZ_FIELDS: FrozenSet[str] = frozenset({"quizQuestions", "quiz_questions", "hasQuiz", "has_quiz"})


class WireModel(BaseModel):
    """Base model using camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Flashcard(WireModel):
    word: str = ""
    translation: str = Field(
        "",
        validation_alias=AliasChoices("translation", "vietnameseMeaning"),
    )
    part_of_speech: str = Field("", alias="partOfSpeech")
    example_sentence: str = Field("", alias="exampleSentence")


class QuizOption(WireModel):
    label: str
    text: str = ""


class QuizQuestion(WireModel):
    vocabulary_word: str = Field("", alias="vocabularyWord")
    question: str = ""
    hints: List[str] = Field(default_factory=list)
    options: List[QuizOption] = Field(default_factory=list)
    correct_option: str = Field("", alias="correctOption")


class Lesson(WireModel):
    """Lesson metadata as persisted; quiz content never lives here."""

    id: str = ""
    title: str = ""
    reading_text: str = Field("", alias="readingText")
    reading_audio: str = Field("", alias="readingAudio")
    flashcards: List[Flashcard] = Field(default_factory=list)
    review_text: str = Field("", alias="reviewText")
    review_audio: str = Field("", alias="reviewAudio")


class LessonEntry(Lesson):
    """A lesson decorated with the read-time ``hasQuiz`` flag."""

    has_quiz: bool = Field(False, alias="hasQuiz")

    @classmethod
    def from_lesson(cls, lesson: Lesson, *, has_quiz: bool) -> "LessonEntry":
        return cls(**lesson.model_dump(), has_quiz=has_quiz)

    def to_lesson(self) -> Lesson:
        return Lesson(**self.model_dump(exclude={"has_quiz"}))


class AudioUpload(WireModel):
    filename: str = ""
    data: str = ""


class LessonCreatePayload(WireModel):
    lesson: Lesson | None = None
    reading_audio: AudioUpload | None = Field(None, alias="readingAudio")
    review_audio: AudioUpload | None = Field(None, alias="reviewAudio")
    quiz_questions: List[QuizQuestion] | None = Field(None, alias="quizQuestions")

    @property
    def questions(self) -> List[QuizQuestion]:
        return list(self.quiz_questions or [])


def strip_quiz_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of *record* without quiz content or the derived flag."""

    return {key: value for key, value in record.items() if key not in QUIZ_FIELDS}


__all__ = [
    "AudioUpload",
    "Flashcard",
    "Lesson",
    "LessonCreatePayload",
    "LessonEntry",
    "QUIZ_FIELDS",
    "QuizOption",
    "QuizQuestion",
    "strip_quiz_fields",
]
