"""Exam-related Pydantic models."""
from pydantic import BaseModel, Field


class SubjectConfigModel(BaseModel):
    """One subject of an exam: how many questions, how many minutes."""

    subjectId: int
    subjectName: str = ""
    count: int = Field(..., ge=1)
    time: int = Field(..., ge=1)


class ExamConfigCreate(BaseModel):
    """Model for creating or replacing an exam preset."""

    name: str = Field(..., min_length=1)
    examTerm: str = ""
    level: str = ""
    subjects: list[SubjectConfigModel] = Field(..., min_length=1)


class SessionStartRequest(BaseModel):
    """Start from a preset (configId) or from one subject (subjectId)."""

    configId: int | None = None
    subjectId: int | None = None
    count: int | None = Field(default=None, ge=1)
    minutes: int | None = Field(default=None, ge=1)
    shuffle: bool = True


class AnswerPayload(BaseModel):
    """Model for recording an answer; a list holds per-statement values."""

    questionId: int
    answer: str | list[bool | None]
