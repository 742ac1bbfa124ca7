"""Store contract used by the import, exam and review services."""
import logging
from collections.abc import Iterable
from typing import Any, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from api.models.db import Question, Subject
from errors import NotFoundError, PersistenceError

log = logging.getLogger(__name__)

T = TypeVar("T")


def _fail(db: DbSession, action: str, exc: Exception) -> PersistenceError:
    db.rollback()
    log.error("Store %s failed: %s", action, exc)
    return PersistenceError(f"Could not {action}: {exc.__class__.__name__}")


def get_by_id(db: DbSession, model: type[T], record_id: int) -> T | None:
    """Get one record by primary key, or None."""
    return db.get(model, record_id)


def require(db: DbSession, model: type[T], record_id: int) -> T:
    """Get one record by primary key or raise NotFoundError."""
    record = db.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{model.__name__} {record_id} not found")
    return record


def get_many(db: DbSession, model: type[T], record_ids: Iterable[int]) -> dict[int, T]:
    """Bulk get by ids; missing ids are simply absent from the map."""
    ids = list({int(i) for i in record_ids if i is not None})
    if not ids:
        return {}
    rows = db.execute(select(model).where(model.id.in_(ids))).scalars().all()
    return {row.id: row for row in rows}


def add(db: DbSession, record: T) -> T:
    """Insert one record and return it with its assigned id."""
    try:
        db.add(record)
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"insert {type(record).__name__}", exc) from exc
    db.refresh(record)
    return record


def bulk_insert(db: DbSession, records: list[Any]) -> int:
    """Insert many records in one commit."""
    if not records:
        return 0
    try:
        db.add_all(records)
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"insert {len(records)} records", exc) from exc
    return len(records)


def update_by_id(db: DbSession, model: type[T], record_id: int, **values: Any) -> T:
    """Set attributes on one record."""
    record = require(db, model, record_id)
    for key, value in values.items():
        setattr(record, key, value)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"update {model.__name__} {record_id}", exc) from exc
    db.refresh(record)
    return record


def delete_by_id(db: DbSession, model: type[Any], record_id: int) -> bool:
    """Delete one record; False if it did not exist."""
    record = db.get(model, record_id)
    if record is None:
        return False
    try:
        db.delete(record)
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"delete {model.__name__} {record_id}", exc) from exc
    return True


def delete_where_in(db: DbSession, model: type[Any], column: str, values: Iterable[Any]) -> int:
    """Delete every record whose ``column`` is one of ``values``."""
    values = list(values)
    if not values:
        return 0
    try:
        result = db.execute(delete(model).where(getattr(model, column).in_(values)))
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"delete from {model.__tablename__}", exc) from exc
    return result.rowcount or 0


def query_equals(
    db: DbSession, model: type[T], column: str, value: Any, order_by: str = "id"
) -> list[T]:
    """All records whose indexed ``column`` equals ``value``."""
    query = select(model).where(getattr(model, column) == value).order_by(getattr(model, order_by))
    return list(db.execute(query).scalars().all())


def query_range(
    db: DbSession,
    model: type[T],
    column: str,
    lower: Any = None,
    upper: Any = None,
    descending: bool = False,
) -> list[T]:
    """Records with ``lower <= column <= upper``; either bound may be open."""
    attr = getattr(model, column)
    query = select(model)
    if lower is not None:
        query = query.where(attr >= lower)
    if upper is not None:
        query = query.where(attr <= upper)
    query = query.order_by(attr.desc() if descending else attr)
    return list(db.execute(query).scalars().all())


def list_all(db: DbSession, model: type[T]) -> list[T]:
    return list(db.execute(select(model).order_by(model.id)).scalars().all())


def count(db: DbSession, model: type[Any], column: str | None = None, value: Any = None) -> int:
    """Count records, optionally where ``column == value``."""
    query = select(func.count(model.id))
    if column is not None:
        query = query.where(getattr(model, column) == value)
    return db.execute(query).scalar() or 0


def descendant_subject_ids(db: DbSession, subject_id: int) -> list[int]:
    """
    The subject id followed by every descendant id, breadth first.
    A visited set stops on parent cycles from malformed data.
    """
    children: dict[int | None, list[int]] = {}
    for sid, parent_id in db.execute(select(Subject.id, Subject.parent_id)).all():
        children.setdefault(parent_id, []).append(sid)

    ordered: list[int] = []
    seen: set[int] = set()
    queue = [subject_id]
    while queue:
        current = queue.pop(0)
        if current in seen:
            continue
        seen.add(current)
        ordered.append(current)
        queue.extend(sorted(children.get(current, [])))
    return ordered


def questions_by_subject_recursive(db: DbSession, subject_id: int) -> list[Question]:
    """Questions filed under the subject or any of its descendants."""
    ids = descendant_subject_ids(db, subject_id)
    query = select(Question).where(Question.subject_id.in_(ids)).order_by(Question.id)
    return list(db.execute(query).scalars().all())


def delete_subject_tree(db: DbSession, subject_id: int) -> tuple[int, int]:
    """Delete a subject, its descendants and their questions in one commit."""
    require(db, Subject, subject_id)
    ids = descendant_subject_ids(db, subject_id)
    try:
        questions = db.execute(delete(Question).where(Question.subject_id.in_(ids))).rowcount or 0
        subjects = db.execute(delete(Subject).where(Subject.id.in_(ids))).rowcount or 0
        db.commit()
    except SQLAlchemyError as exc:
        raise _fail(db, f"delete subject {subject_id}", exc) from exc
    log.info("Deleted subject %d: %d subjects, %d questions", subject_id, subjects, questions)
    return subjects, questions
