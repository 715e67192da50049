from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobSkillIn(BaseModel):
    skill_id: str = Field(min_length=1)
    # Default to medium importance.
    importance: int = Field(default=3, ge=1, le=5)


class JobSkillRead(BaseModel):
    skill_id: str
    name: str
    importance: int


class JobBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    location: str | None = None
    is_remote: bool = False

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        value = (v or "").strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class JobCreate(JobBase):
    skills: list[JobSkillIn] = Field(min_length=1)


class JobUpdate(JobCreate):
    is_active: bool = True


class JobRead(BaseModel):
    id: str
    employer_id: str
    title: str
    description: str
    location: str | None = None
    is_remote: bool
    is_active: bool
    created_at: datetime | None = None
    skills: list[JobSkillRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
