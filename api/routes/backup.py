"""Backup and restore endpoints."""
from typing import Annotated

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.services import backup_service

router = APIRouter(prefix="/api/backup", tags=["backup"])


@router.get("")
def export_backup(db: Annotated[DbSession, Depends(get_db)]) -> dict[str, object]:
    return backup_service.export_backup(db)


@router.post("/restore")
def restore_backup(
    db: Annotated[DbSession, Depends(get_db)],
    payload: dict[str, object] = Body(...),
) -> dict[str, object]:
    """Replace all data with the posted backup document."""
    counts = backup_service.restore_backup(db, payload)
    return {"status": "restored", "counts": counts}
