"""Exam history endpoints: list, review, retake."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies import get_session_manager
from api.services import review_service
from api.services.review_service import ReviewFilter
from api.services.session_service import SessionManager
from api.utils import iso_to_ms
from errors import ValidationError

router = APIRouter(prefix="/api/results", tags=["results"])


def _time_bound(value: str | None) -> int | None:
    """Epoch milliseconds or an ISO timestamp."""
    if value is None or not value.strip():
        return None
    if value.strip().lstrip("-").isdigit():
        return int(value)
    parsed = iso_to_ms(value)
    if parsed is None:
        raise ValidationError(f"Invalid timestamp: {value}")
    return parsed


@router.get("")
def list_results(
    db: Annotated[DbSession, Depends(get_db)],
    since: str | None = None,
    until: str | None = None,
) -> list[dict[str, object]]:
    """Results newest first, optionally bounded by ``since``/``until``."""
    return review_service.list_results(db, _time_bound(since), _time_bound(until))


@router.get("/{result_id}")
def get_result(result_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return review_service.get_result(db, result_id)


@router.delete("/{result_id}")
def delete_result(result_id: int, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, str]:
    review_service.delete_result(db, result_id)
    return {"status": "deleted"}


@router.get("/{result_id}/review")
def review(
    result_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    filter: ReviewFilter = ReviewFilter.ALL,
) -> dict[str, object]:
    return review_service.load_for_review(db, result_id, filter)


@router.post("/{result_id}/retake")
def retake(
    result_id: int,
    db: Annotated[DbSession, Depends(get_db)],
    manager: Annotated[SessionManager, Depends(get_session_manager)],
) -> dict[str, object]:
    return review_service.retake(db, manager, result_id).to_dict()
