"""Flattened, read-only projections handed to callers of the survey services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class QuestionRecord:
    id: int
    text: str
    type: str
    options: Optional[list[str]] = None
    position: int = 0


@dataclass(frozen=True)
class SurveyRecord:
    id: int
    title: str
    company_id: int
    created_by: Optional[int]
    created_at: datetime
    questions: list[QuestionRecord] = field(default_factory=list)
    response_count: int = 0
    company_name: str = "N/A"
    created_by_name: str = "Usuário Desconhecido"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnswerRecord:
    question_id: Optional[int]
    value: Any


@dataclass(frozen=True)
class ResponseRecord:
    id: int
    survey_id: int
    respondent_id: Optional[int]
    created_at: datetime
    answers: list[AnswerRecord] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QuestionDraft:
    text: str
    type: str
    options: Optional[list[str]] = None


@dataclass
class SurveyDraft:
    """Editor payload: title plus the full, ordered list of questions."""

    title: str
    questions: list[QuestionDraft] = field(default_factory=list)


@dataclass(frozen=True)
class TemplateRecord:
    id: int
    title: str
    questions: list[QuestionDraft] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_draft(self) -> SurveyDraft:
        return SurveyDraft(
            title=self.title,
            questions=[QuestionDraft(q.text, q.type, q.options) for q in self.questions],
        )
