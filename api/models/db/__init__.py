"""Database models."""
from api.models.db.exam import ExamConfig, ExamResult
from api.models.db.profile import PropertyOption, Reminder, UserProfile
from api.models.db.question import Question, Subject

__all__ = [
    "ExamConfig",
    "ExamResult",
    "PropertyOption",
    "Question",
    "Reminder",
    "Subject",
    "UserProfile",
]
