"""Content records produced by the generator."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Mapping, Optional, Sequence

UsageType = Literal["PILOT", "STUDENT"]
SyllabusMode = Literal["SCHOOL", "COMPETITION"]


class ContentType(str, Enum):
    NOTES_SIMPLE = "NOTES_SIMPLE"
    NOTES_PREMIUM = "NOTES_PREMIUM"
    NOTES_HTML_FREE = "NOTES_HTML_FREE"
    NOTES_HTML_PREMIUM = "NOTES_HTML_PREMIUM"
    MCQ_SIMPLE = "MCQ_SIMPLE"
    MCQ_ANALYSIS = "MCQ_ANALYSIS"
    PDF_FREE = "PDF_FREE"
    PDF_PREMIUM = "PDF_PREMIUM"
    PDF_VIEWER = "PDF_VIEWER"

    @property
    def is_mcq(self) -> bool:
        return self in (ContentType.MCQ_SIMPLE, ContentType.MCQ_ANALYSIS)

    @property
    def is_pdf(self) -> bool:
        return self in (ContentType.PDF_FREE, ContentType.PDF_PREMIUM, ContentType.PDF_VIEWER)

    @property
    def is_premium_notes(self) -> bool:
        return self in (ContentType.NOTES_PREMIUM, ContentType.NOTES_HTML_PREMIUM)


def _new_id() -> str:
    return str(time.time_ns() // 1_000_000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True, frozen=True)
class Chapter:
    id: str
    title: str
    description: str = ""


@dataclass(slots=True)
class LessonRequest:
    """Who the content is for; everything a prompt needs to know."""

    board: str
    class_level: str
    subject: str
    chapter: Chapter
    language: str = "English"
    stream: Optional[str] = None
    syllabus_mode: SyllabusMode = "SCHOOL"
    admin_prompt: str = ""
    usage_type: UsageType = "STUDENT"

    @property
    def is_competition(self) -> bool:
        return self.syllabus_mode == "COMPETITION"


@dataclass(slots=True)
class LessonContent:
    title: str
    subtitle: str
    content_type: ContentType
    subject_name: str
    content: str = ""
    syllabus_mode: SyllabusMode = "SCHOOL"
    mcq_data: Optional[list[Any]] = None
    mcq_data_hi: Optional[list[Any]] = None
    content_hi: Optional[str] = None
    summary: Optional[str] = None
    summary_hi: Optional[str] = None
    is_coming_soon: bool = False
    id: str = field(default_factory=_new_id)
    created_at: str = field(default_factory=_now_iso)

    def to_record(self) -> dict[str, Any]:
        """Flatten into the camelCase mapping the content store keeps."""

        prefix = "competition" if self.syllabus_mode == "COMPETITION" else "school"
        record: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "content": self.content,
            "type": self.content_type.value,
            "dateCreated": self.created_at,
            "subjectName": self.subject_name,
            "isComingSoon": self.is_coming_soon,
        }
        if self.mcq_data is not None:
            record["mcqData"] = list(self.mcq_data)
        if self.mcq_data_hi is not None:
            record["manualMcqData_HI"] = list(self.mcq_data_hi)
        if self.summary is not None:
            record[f"{prefix}PremiumNotesHtml"] = self.content
            record[f"{prefix}FreeNotesHtml"] = self.summary
            if self.summary_hi is not None:
                record[f"{prefix}FreeNotesHtml_HI"] = self.summary_hi
        if self.content_hi is not None and self.content_type.is_premium_notes:
            record[f"{prefix}PremiumNotesHtml_HI"] = self.content_hi
        return record


@dataclass(slots=True)
class QuizAttempt:
    """A finished MCQ test, input to the performance analysis prompt."""

    questions: Sequence[Mapping[str, Any]]
    user_answers: Mapping[int, int]
    score: int
    total: int
    subject: str
    chapter: str
    class_level: str

    def attempted_questions(self) -> list[dict[str, Any]]:
        attempted: list[dict[str, Any]] = []
        for idx, question in enumerate(self.questions):
            options = list(question.get("options") or [])
            correct = question.get("correctAnswer")
            selected = self.user_answers.get(idx)
            if selected is not None and selected != -1 and 0 <= selected < len(options):
                user_selected = options[selected]
            else:
                user_selected = "Skipped"
            correct_text = None
            if isinstance(correct, int) and 0 <= correct < len(options):
                correct_text = options[correct]
            attempted.append(
                {
                    "question": question.get("question"),
                    "correctAnswer": correct_text,
                    "userSelected": user_selected,
                    "isCorrect": selected == correct,
                    "concept": question.get("concept")
                    or question.get("explanation")
                    or "General Concept",
                }
            )
        return attempted


__all__ = [
    "Chapter",
    "ContentType",
    "LessonContent",
    "LessonRequest",
    "QuizAttempt",
    "SyllabusMode",
    "UsageType",
]
