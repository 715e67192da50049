from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SkillRead(BaseModel):
    id: str
    name: str
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SkillCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        value = (v or "").strip()
        if not value:
            raise ValueError("name must not be blank")
        return value


class EmployeeSkillIn(BaseModel):
    skill_id: str = Field(min_length=1)
    proficiency: int = Field(default=3, ge=1, le=5, description="1..5 (inclusive)")


class EmployeeSkillsUpdate(BaseModel):
    skills: list[EmployeeSkillIn] = Field(default_factory=list)


class EmployeeSkillRead(BaseModel):
    skill_id: str
    name: str
    proficiency: int
