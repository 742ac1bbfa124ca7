"""Exam preset endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import ExamConfigCreate
from api.models.db import ExamConfig, Subject
from api.services import store_service
from errors import NotFoundError, ValidationError
from serialization import EXAM_CONFIG_FIELDS, record_kwargs, record_to_dict

router = APIRouter(prefix="/api/exam-configs", tags=["exam-configs"])


@router.get("")
def list_configs(db: Annotated[DbSession, Depends(get_db)]) -> list[dict[str, object]]:
    return [record_to_dict(c, EXAM_CONFIG_FIELDS) for c in store_service.list_all(db, ExamConfig)]


def _config_kwargs(payload: ExamConfigCreate, db: DbSession) -> dict[str, object]:
    """Column values for a preset; every referenced subject must exist."""
    subject_ids = [s.subjectId for s in payload.subjects]
    known = store_service.get_many(db, Subject, subject_ids)
    missing = [sid for sid in subject_ids if sid not in known]
    if missing:
        raise ValidationError(f"Unknown subjects: {missing}")

    data = payload.model_dump()
    for entry in data["subjects"]:
        entry["subjectName"] = entry["subjectName"] or known[entry["subjectId"]].name
    return record_kwargs(data, EXAM_CONFIG_FIELDS, keep_id=False)


@router.post("")
def create_config(
    payload: ExamConfigCreate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    config = store_service.add(db, ExamConfig(**_config_kwargs(payload, db)))
    return record_to_dict(config, EXAM_CONFIG_FIELDS)


@router.get("/{config_id}")
def get_config(config_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return record_to_dict(store_service.require(db, ExamConfig, config_id), EXAM_CONFIG_FIELDS)


@router.put("/{config_id}")
def replace_config(
    config_id: int,
    payload: ExamConfigCreate,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Overwrite a preset in place, keeping its id."""
    store_service.require(db, ExamConfig, config_id)
    config = store_service.update_by_id(db, ExamConfig, config_id, **_config_kwargs(payload, db))
    return record_to_dict(config, EXAM_CONFIG_FIELDS)


@router.delete("/{config_id}")
def delete_config(config_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, str]:
    if not store_service.delete_by_id(db, ExamConfig, config_id):
        raise NotFoundError(f"ExamConfig {config_id} not found")
    return {"status": "deleted"}
