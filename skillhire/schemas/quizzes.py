from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SkillRef(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)

    @field_validator("id", "name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        value = (v or "").strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SkillSelection(SkillRef):
    # Range is checked by the assembly service so it can reject before any write.
    proficiency: int = 3


class GeneratedQuestion(BaseModel):
    question: str
    options: list[str]
    correct_answer: str
    explanation: str = ""


class GenerateQuizRequest(BaseModel):
    skills: list[SkillSelection] = Field(default_factory=list)
    questions_per_skill: int | None = Field(default=None, alias="questionsPerSkill")
    application_id: str | None = Field(default=None, alias="applicationId")
    quiz_id: str | None = Field(default=None, alias="quizId")
    # Create the quiz row now and fill in questions after the response is sent.
    background: bool = False

    model_config = ConfigDict(populate_by_name=True)


class SkillQuestionsOut(BaseModel):
    skill_id: str
    skill_name: str
    count: int
    questions: list[GeneratedQuestion]


class GenerateQuizResponse(BaseModel):
    data: list[SkillQuestionsOut]
    quiz_id: str = Field(serialization_alias="quizId")
    pending: bool = False


class QuizRead(BaseModel):
    id: str
    application_id: str | None = None
    employee_id: str
    status: str
    score: int | None = None
    score_label: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    question_count: int = 0
    job_title: str | None = None


class TakerQuestion(BaseModel):
    """Question as shown to the candidate: no answer key."""

    id: str
    quiz_id: str
    skill_id: str | None = None
    skill_name: str | None = None
    question: str
    options: list[str]

    @field_validator("options", mode="before")
    @classmethod
    def _coerce_options(cls, v: Any) -> Any:
        # Options may arrive JSON-encoded from text columns.
        if isinstance(v, str):
            return json.loads(v)
        return v


class QuizQuestionsResponse(BaseModel):
    quiz_id: str
    status: str
    ready: bool
    questions: list[TakerQuestion]


class SubmitQuizRequest(BaseModel):
    answers: dict[str, str] = Field(default_factory=dict)


class SubmitQuizResponse(BaseModel):
    quiz_id: str
    score: int
    correct: int
    total: int
    application_updated: bool = False


class AnsweredQuestion(TakerQuestion):
    correct_answer: str | None = None
    explanation: str | None = None
    answer: str | None = None
    is_correct: bool | None = None


class QuizDetailsResponse(BaseModel):
    quiz_id: str
    status: str
    score: int | None = None
    score_label: str | None = None
    questions: list[AnsweredQuestion]
