"""Live exam session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.dependencies import get_session_manager
from api.models import AnswerPayload, SessionStartRequest
from api.services.session_service import SessionManager
from errors import ValidationError

router = APIRouter(prefix="/api/session", tags=["session"])

Manager = Annotated[SessionManager, Depends(get_session_manager)]


@router.get("")
def get_session(manager: Manager) -> dict[str, object]:
    """The live session, or ``{"session": null}`` when none is running."""
    session = manager.current
    return {"session": session.to_dict() if session else None}


@router.post("")
def start_session(
    payload: SessionStartRequest,
    manager: Manager,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Start from a preset or from a single subject; replaces any live session."""
    if payload.configId is not None:
        session = manager.start_from_config(db, payload.configId, shuffle=payload.shuffle)
    elif payload.subjectId is not None:
        session = manager.start_from_subject(
            db,
            payload.subjectId,
            count=payload.count,
            minutes=payload.minutes,
            shuffle=payload.shuffle,
        )
    else:
        raise ValidationError("Either configId or subjectId is required")
    return session.to_dict()


@router.put("/answer")
def answer(payload: AnswerPayload, manager: Manager) -> dict[str, object]:
    return manager.update_answer(payload.questionId, payload.answer).to_dict()


@router.post("/tick")
def tick(manager: Manager, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    """Advance the timer one second; reports an automatic submission."""
    outcome = manager.tick(db)
    if outcome is not None:
        return outcome.to_dict()
    return {"session": manager.require().to_dict()}


@router.post("/submit")
def submit(manager: Manager, db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return manager.submit_subject(db).to_dict()


@router.post("/next")
def next_subject(manager: Manager) -> dict[str, object]:
    return manager.next_subject().to_dict()


@router.post("/pause")
def pause(manager: Manager) -> dict[str, object]:
    return manager.pause().to_dict()


@router.post("/resume")
def resume(manager: Manager) -> dict[str, object]:
    return manager.resume().to_dict()


@router.delete("")
def clear(manager: Manager) -> dict[str, str]:
    manager.clear()
    return {"status": "cleared"}
