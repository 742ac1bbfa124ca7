"""Question bank Pydantic models."""
from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    """Model for creating or renaming a subject."""

    name: str = Field(..., min_length=1)
    level: str = ""
    type: str = ""
    examTerm: str = ""
    parentId: int | None = None


class QuestionStatusUpdate(BaseModel):
    """Model for marking a question new, mastered or wrong."""

    status: int = Field(..., ge=0, le=2)


class ImportResponse(BaseModel):
    """Model for import result."""

    message: str
    insertedCount: int
    subjectCount: int
    skipped: int
    format: str
    logs: list[str]


class QuestionCreate(BaseModel):
    """Model for creating or replacing a single question."""

    subjectId: int
    content: str = Field(..., min_length=1)
    questionType: str = "MULTIPLE_CHOICE"
    options: list[str] = []
    optionImages: list[str | None] = []
    subQuestions: list[str] = []
    subAnswers: list[bool] = []
    correctAnswers: list[str] = []
    explanation: str | None = None
    image: str | None = None
    explanationImage: str | None = None
    status: int = Field(default=0, ge=0, le=2)
