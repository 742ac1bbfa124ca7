"""Import orchestrator: format dispatch, subject remapping and batch persistence."""
from __future__ import annotations

import enum
import io
import json
import logging
import zipfile
from dataclasses import dataclass, field, replace
from pathlib import Path

from sqlalchemy.orm import Session as DbSession

from api.config import MAX_IMPORT_BYTES
from api.models.db import Question, Subject
from api.services import store_service
from archive_extract import QUESTIONS_NAME, extract_archive
from errors import FormatError, PersistenceError, ValidationError
from json_extract import extract_json
from models import UNASSIGNED_SUBJECT_ID, ImportBundle, SubjectDraft
from serialization import (
    QUESTION_FIELDS,
    SUBJECT_FIELDS,
    build_question_archive,
    question_draft_kwargs,
    record_to_dict,
)
from sheet_extract import extract_sheet
from word_extract import extract_document

log = logging.getLogger(__name__)

# callers pass this (or None) to ask for the source's own hierarchy
AUTO_SUBJECT = -1


class ImportFormat(str, enum.Enum):
    """Supported source formats."""

    ARCHIVE = "zip"
    JSON = "json"
    SPREADSHEET = "xlsx"
    CSV = "csv"
    DOCUMENT = "docx"
    TEXT = "txt"


EXTENSION_FORMATS = {
    ".zip": ImportFormat.ARCHIVE,
    ".json": ImportFormat.JSON,
    ".xlsx": ImportFormat.SPREADSHEET,
    ".xlsm": ImportFormat.SPREADSHEET,
    ".csv": ImportFormat.CSV,
    ".docx": ImportFormat.DOCUMENT,
    ".txt": ImportFormat.TEXT,
}


@dataclass
class ImportReport:
    inserted_count: int
    subject_count: int = 0
    skipped: int = 0
    format: ImportFormat | None = None
    logs: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = f"Imported {self.inserted_count} questions"
        if self.subject_count:
            text += f" into {self.subject_count} new subjects"
        if self.skipped:
            text += f" ({self.skipped} skipped)"
        return text + "."


def detect_format(filename: str | None, data: bytes) -> ImportFormat:
    """Pick a format by extension, then by sniffing the content."""
    suffix = Path(filename or "").suffix.lower()
    if suffix in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[suffix]

    buffer = io.BytesIO(data)
    if zipfile.is_zipfile(buffer):
        with zipfile.ZipFile(buffer) as archive:
            names = set(archive.namelist())
        if QUESTIONS_NAME in names:
            return ImportFormat.ARCHIVE
        if "word/document.xml" in names:
            return ImportFormat.DOCUMENT
        if "xl/workbook.xml" in names:
            return ImportFormat.SPREADSHEET
        raise FormatError("Unrecognized zip content")

    try:
        json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        pass
    else:
        return ImportFormat.JSON
    raise FormatError(f"Unsupported file type: {filename or 'unnamed upload'}")


def _normalize(data: bytes, fmt: ImportFormat, subject_id: int) -> ImportBundle:
    if fmt is ImportFormat.ARCHIVE:
        return extract_archive(data)
    if fmt is ImportFormat.JSON:
        return extract_json(data, subject_id)
    if fmt is ImportFormat.SPREADSHEET:
        return extract_sheet(data, subject_id)
    if fmt is ImportFormat.CSV:
        return extract_sheet(data, subject_id, is_csv=True)
    return extract_document(data, subject_id)


def order_subjects(subjects: list[SubjectDraft]) -> list[SubjectDraft]:
    """
    Parents before children at any depth. Subjects whose parent is not in
    the file count as roots. A parent cycle is broken by importing its
    first listed member as a root; the others keep their parents.
    """
    known = {s.source_id for s in subjects if s.source_id is not None}
    placed: set[int | None] = set()
    ordered: list[SubjectDraft] = []
    pending = list(subjects)
    while pending:
        ready = [
            s for s in pending
            if s.parent_id is None or s.parent_id not in known or s.parent_id in placed
        ]
        if not ready:
            detached = pending[0]
            log.warning("Subject parent cycle through %r; importing it as a root", detached.name)
            ready = [replace(detached, parent_id=None)]
            pending[0] = ready[0]
        for subject in ready:
            ordered.append(subject)
            placed.add(subject.source_id)
        ready_ids = {id(s) for s in ready}
        pending = [s for s in pending if id(s) not in ready_ids]
    return ordered


def _create_subjects(db: DbSession, subjects: list[SubjectDraft]) -> tuple[dict[int, int], list[int]]:
    """Insert subjects one by one; returns the source->new id map and the new ids."""
    mapping: dict[int, int] = {}
    created: list[int] = []
    for draft in order_subjects(subjects):
        parent_id = mapping.get(draft.parent_id) if draft.parent_id is not None else None
        record = store_service.add(
            db,
            Subject(
                name=draft.name,
                level=draft.level,
                type=draft.type,
                exam_term=draft.exam_term,
                parent_id=parent_id,
            ),
        )
        created.append(record.id)
        if draft.source_id is not None:
            mapping[draft.source_id] = record.id
    log.info("Created %d subjects", len(created))
    return mapping, created


def _rollback_subjects(db: DbSession, subject_ids: list[int]) -> None:
    try:
        removed = store_service.delete_where_in(db, Subject, "id", subject_ids)
        log.warning("Removed %d subjects created by the failed import", removed)
    except PersistenceError:
        log.error("Could not remove subjects %s after failed import", subject_ids)


def import_questions(
    db: DbSession,
    data: bytes,
    fmt: ImportFormat,
    target_subject_id: int | None = None,
) -> ImportReport:
    """
    Normalize ``data`` and persist the result as one batch.

    With an explicit ``target_subject_id`` every question lands on that
    existing subject and any hierarchy in the source is ignored. Otherwise
    archive subjects are created and remapped; other formats fall back to
    the unassigned subject id.
    """
    if len(data) > MAX_IMPORT_BYTES:
        raise FormatError(f"File is larger than {MAX_IMPORT_BYTES // (1024 * 1024)} MB")

    explicit = target_subject_id is not None and target_subject_id != AUTO_SUBJECT
    if explicit and store_service.get_by_id(db, Subject, target_subject_id) is None:
        raise ValidationError(f"Target subject {target_subject_id} does not exist")

    bundle = _normalize(data, fmt, target_subject_id if explicit else UNASSIGNED_SUBJECT_ID)

    mapping: dict[int, int] = {}
    created: list[int] = []
    if explicit:
        final_ids = [target_subject_id] * len(bundle.questions)
    elif fmt is ImportFormat.ARCHIVE:
        mapping, created = _create_subjects(db, bundle.subjects)
        final_ids = [mapping.get(q.subject_id, UNASSIGNED_SUBJECT_ID) for q in bundle.questions]
    else:
        final_ids = [UNASSIGNED_SUBJECT_ID] * len(bundle.questions)

    rows = [
        Question(**question_draft_kwargs(draft, subject_id))
        for draft, subject_id in zip(bundle.questions, final_ids)
    ]
    try:
        store_service.bulk_insert(db, rows)
    except PersistenceError:
        if created:
            _rollback_subjects(db, created)
        raise

    unassigned = sum(1 for sid in final_ids if sid == UNASSIGNED_SUBJECT_ID)
    if unassigned:
        log.warning("%d imported questions have no subject", unassigned)
    log.info("Import %s: %d questions, %d subjects", fmt.value, len(rows), len(created))
    return ImportReport(
        inserted_count=len(rows),
        subject_count=len(created),
        skipped=bundle.skipped,
        format=fmt,
        logs=bundle.logs,
    )


def import_file(
    db: DbSession,
    filename: str | None,
    data: bytes,
    fmt: ImportFormat | None = None,
    target_subject_id: int | None = None,
) -> ImportReport:
    """Detect the format (unless given) and import."""
    fmt = fmt or detect_format(filename, data)
    log.info("Importing %s as %s", filename or "upload", fmt.value)
    return import_questions(db, data, fmt, target_subject_id)


def export_subject(db: DbSession, subject_id: int) -> bytes:
    """Archive a subject subtree with its questions, readable by the archive import."""
    store_service.require(db, Subject, subject_id)
    ids = store_service.descendant_subject_ids(db, subject_id)
    subjects = store_service.get_many(db, Subject, ids)
    subject_dicts = [record_to_dict(subjects[sid], SUBJECT_FIELDS) for sid in ids if sid in subjects]
    # the exported root becomes a root in the package
    subject_dicts[0]["parentId"] = None
    questions = [
        record_to_dict(q, QUESTION_FIELDS)
        for q in store_service.questions_by_subject_recursive(db, subject_id)
    ]
    return build_question_archive(subject_dicts, questions)
