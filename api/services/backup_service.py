"""Whole-database backup and restore."""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from api.models.db import ExamConfig, ExamResult, PropertyOption, Question, Reminder, Subject, UserProfile
from api.services import store_service
from api.utils.time_utils import now_ms
from errors import FormatError, PersistenceError
from serialization import (
    EXAM_CONFIG_FIELDS,
    EXAM_RESULT_FIELDS,
    PROPERTY_OPTION_FIELDS,
    QUESTION_FIELDS,
    REMINDER_FIELDS,
    SUBJECT_FIELDS,
    USER_PROFILE_FIELDS,
    record_kwargs,
    record_to_dict,
)

log = logging.getLogger(__name__)

# backup key, table model, wire fields; restored in this order
BACKUP_TABLES = (
    ("subjects", Subject, SUBJECT_FIELDS),
    ("questions", Question, QUESTION_FIELDS),
    ("examConfigs", ExamConfig, EXAM_CONFIG_FIELDS),
    ("examResults", ExamResult, EXAM_RESULT_FIELDS),
    ("userProfile", UserProfile, USER_PROFILE_FIELDS),
    ("reminders", Reminder, REMINDER_FIELDS),
    ("propertyOptions", PropertyOption, PROPERTY_OPTION_FIELDS),
)


def export_backup(db: DbSession) -> dict[str, Any]:
    """Every table as a list of wire dicts, plus the export time."""
    backup: dict[str, Any] = {}
    for key, model, fields in BACKUP_TABLES:
        backup[key] = [record_to_dict(row, fields) for row in store_service.list_all(db, model)]
    backup["timestamp"] = now_ms()
    log.info(
        "Backup exported: %s",
        ", ".join(f"{key}={len(backup[key])}" for key, _, _ in BACKUP_TABLES),
    )
    return backup


def _records(backup: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = backup.get(key) or []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise FormatError(f"Backup field '{key}' must be a list of objects")
    return items


def restore_backup(db: DbSession, backup: Any) -> dict[str, int]:
    """
    Replace all data with the backup content in one transaction. Ids are
    kept so references between tables stay valid. Nothing changes if any
    part fails.
    """
    if not isinstance(backup, dict):
        raise FormatError("Backup must be a JSON object")
    try:
        rows = {
            key: [model(**record_kwargs(item, fields)) for item in _records(backup, key)]
            for key, model, fields in BACKUP_TABLES
        }
    except TypeError as exc:
        raise FormatError(f"Malformed backup record: {exc}") from exc

    try:
        for _, model, _ in reversed(BACKUP_TABLES):
            db.execute(delete(model))
        db.expunge_all()
        for key, _, _ in BACKUP_TABLES:
            db.add_all(rows[key])
            db.flush()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        log.error("Restore failed, nothing changed: %s", exc)
        raise PersistenceError(f"Could not restore backup: {exc.__class__.__name__}") from exc

    counts = {key: len(rows[key]) for key, _, _ in BACKUP_TABLES}
    log.info("Backup restored: %s", counts)
    return counts
