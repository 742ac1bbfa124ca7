"""Question endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import QuestionCreate, QuestionStatusUpdate
from api.models.db import Question, Subject
from api.services import store_service
from errors import NotFoundError, ValidationError
from models import QuestionDraft
from serialization import QUESTION_FIELDS, question_draft_kwargs, record_to_dict

router = APIRouter(prefix="/api/questions", tags=["questions"])


def _checked_kwargs(payload: QuestionCreate, db: DbSession) -> dict[str, object]:
    """Column values for a hand-written question, held to the same rules as imports."""
    if store_service.get_by_id(db, Subject, payload.subjectId) is None:
        raise ValidationError(f"Subject {payload.subjectId} does not exist")
    draft = QuestionDraft(
        content=payload.content,
        question_type=payload.questionType,
        options=list(payload.options),
        option_images=list(payload.optionImages),
        sub_questions=list(payload.subQuestions),
        sub_answers=list(payload.subAnswers),
        correct_answers=list(payload.correctAnswers),
        explanation=payload.explanation,
        image=payload.image,
        explanation_image=payload.explanationImage,
        status=payload.status,
    ).normalize()
    errs = draft.problems()
    if errs:
        raise ValidationError("Invalid question: " + "; ".join(errs))
    return question_draft_kwargs(draft, payload.subjectId)


@router.post("")
def create_question(payload: QuestionCreate, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    question = store_service.add(db, Question(**_checked_kwargs(payload, db)))
    return record_to_dict(question, QUESTION_FIELDS)


@router.get("/{question_id}")
def get_question(question_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return record_to_dict(store_service.require(db, Question, question_id), QUESTION_FIELDS)


@router.put("/{question_id}")
def replace_question(
    question_id: int,
    payload: QuestionCreate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    store_service.require(db, Question, question_id)
    question = store_service.update_by_id(db, Question, question_id, **_checked_kwargs(payload, db))
    return record_to_dict(question, QUESTION_FIELDS)


@router.patch("/{question_id}/status")
def update_status(
    question_id: int,
    update: QuestionStatusUpdate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Mark a question new (0), mastered (1) or wrong (2)."""
    question = store_service.update_by_id(db, Question, question_id, status=update.status)
    return record_to_dict(question, QUESTION_FIELDS)


@router.delete("/{question_id}")
def delete_question(question_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, str]:
    if not store_service.delete_by_id(db, Question, question_id):
        raise NotFoundError(f"Question {question_id} not found")
    return {"status": "deleted"}
