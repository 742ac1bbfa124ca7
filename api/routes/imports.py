"""Question import endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from sqlalchemy.orm import Session as DbSession

from api.database import get_db
from api.models import ImportResponse
from api.services import import_service
from api.services.import_service import ImportFormat
from errors import FormatError
from sheet_extract import build_template

router = APIRouter(prefix="/api/imports", tags=["imports"])


@router.post("", response_model=ImportResponse)
def upload_questions(
    db: Annotated[DbSession, Depends(get_db)],
    file: UploadFile = File(...),
    format: str | None = Form(None),
    subjectId: int | None = Form(None),
) -> ImportResponse:
    """
    Import a question file. ``format`` overrides detection; ``subjectId``
    files every question under that subject, otherwise the source's own
    hierarchy is used where it has one.
    """
    fmt = None
    if format:
        try:
            fmt = ImportFormat(format.lower().lstrip("."))
        except ValueError:
            raise FormatError(f"Unknown import format: {format}") from None

    data = file.file.read()
    report = import_service.import_file(db, file.filename, data, fmt=fmt, target_subject_id=subjectId)
    return ImportResponse(
        message=report.message,
        insertedCount=report.inserted_count,
        subjectCount=report.subject_count,
        skipped=report.skipped,
        format=report.format.value,
        logs=report.logs,
    )


@router.get("/template")
def download_template() -> Response:
    """Spreadsheet template with the expected column layout."""
    return Response(
        content=build_template(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="question_template.xlsx"'},
    )
