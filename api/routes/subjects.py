"""Subject management endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import SubjectCreate
from api.models.db import Question, Subject
from api.services import import_service, store_service
from serialization import QUESTION_FIELDS, SUBJECT_FIELDS, record_kwargs, record_to_dict

router = APIRouter(prefix="/api/subjects", tags=["subjects"])


@router.get("")
def list_subjects(db: Annotated[DbSession, Depends(get_db)]) -> list[dict[str, object]]:
    """List every subject; the caller builds the tree from parentId."""
    return [record_to_dict(s, SUBJECT_FIELDS) for s in store_service.list_all(db, Subject)]


@router.post("")
def create_subject(
    payload: SubjectCreate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    if payload.parentId is not None:
        store_service.require(db, Subject, payload.parentId)
    subject = store_service.add(db, Subject(**record_kwargs(payload.model_dump(), SUBJECT_FIELDS, keep_id=False)))
    return record_to_dict(subject, SUBJECT_FIELDS)


@router.get("/{subject_id}")
def get_subject(subject_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return record_to_dict(store_service.require(db, Subject, subject_id), SUBJECT_FIELDS)


@router.delete("/{subject_id}")
def delete_subject(subject_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    """Delete the subject with its whole subtree and their questions."""
    subjects, questions = store_service.delete_subject_tree(db, subject_id)
    return {"status": "deleted", "subjects": subjects, "questions": questions}


@router.get("/{subject_id}/questions")
def list_subject_questions(
    subject_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    recursive: bool = True,
) -> list[dict[str, object]]:
    store_service.require(db, Subject, subject_id)
    if recursive:
        questions = store_service.questions_by_subject_recursive(db, subject_id)
    else:
        questions = store_service.query_equals(db, Question, "subject_id", subject_id)
    return [record_to_dict(q, QUESTION_FIELDS) for q in questions]


@router.get("/{subject_id}/export")
def export_subject(subject_id: int, db: Annotated[DbSession, Depends(get_db)]) -> Response:
    """Download the subject subtree as an importable archive."""
    data = import_service.export_subject(db, subject_id)
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="subject_{subject_id}.zip"'},
    )
