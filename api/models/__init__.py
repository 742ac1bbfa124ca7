"""Pydantic models."""
from api.models.bank import ImportResponse, QuestionCreate, QuestionStatusUpdate, SubjectCreate
from api.models.exams import (
    AnswerPayload,
    ExamConfigCreate,
    SessionStartRequest,
    SubjectConfigModel,
)

__all__ = [
    "AnswerPayload",
    "ExamConfigCreate",
    "ImportResponse",
    "QuestionCreate",
    "QuestionStatusUpdate",
    "SessionStartRequest",
    "SubjectConfigModel",
    "SubjectCreate",
]
