"""Exam history: listing, review and retake of persisted results."""
from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy.orm import Session as DbSession

from api.config import RETAKE_MINUTES
from api.models.db import ExamResult, Question
from api.services import store_service
from api.services.session_service import SessionManager
from errors import NotFoundError
from models import TRUE_FALSE_TABLE
from scoring import decode_sub_answers, score_items
from serialization import EXAM_RESULT_FIELDS, QUESTION_FIELDS, record_to_dict
from session import ExamSession, SubjectConfig

log = logging.getLogger(__name__)


class ReviewFilter(str, enum.Enum):
    ALL = "all"
    CORRECT = "correct"
    WRONG = "wrong"
    UNANSWERED = "unanswered"


def list_results(db: DbSession, since: int | None = None, until: int | None = None) -> list[dict[str, Any]]:
    """Results newest first, optionally within ``[since, until]`` epoch ms."""
    rows = store_service.query_range(db, ExamResult, "timestamp", since, until, descending=True)
    return [record_to_dict(row, EXAM_RESULT_FIELDS) for row in rows]


def get_result(db: DbSession, result_id: int) -> dict[str, Any]:
    return record_to_dict(store_service.require(db, ExamResult, result_id), EXAM_RESULT_FIELDS)


def delete_result(db: DbSession, result_id: int) -> None:
    if not store_service.delete_by_id(db, ExamResult, result_id):
        raise NotFoundError(f"ExamResult {result_id} not found")
    log.info("Deleted result %d", result_id)


def resolve_questions(db: DbSession, result: ExamResult) -> list[dict[str, Any]]:
    """
    The questions of a finished exam in the order they were shown. Questions
    deleted since are left out. Records written before question ids were kept
    fall back to the subject's current questions.
    """
    question_ids = [int(qid) for qid in result.question_ids if qid is not None]
    if question_ids:
        found = store_service.get_many(db, Question, question_ids)
        missing = [qid for qid in question_ids if qid not in found]
        if missing:
            log.info("Result %d: %d questions no longer exist", result.id, len(missing))
        return [record_to_dict(found[qid], QUESTION_FIELDS) for qid in question_ids if qid in found]

    pool = store_service.questions_by_subject_recursive(db, result.subject_id)
    return [record_to_dict(q, QUESTION_FIELDS) for q in pool[: result.total_questions]]


def _int_keys(data: dict[str, Any]) -> dict[int, Any]:
    return {int(k): v for k, v in data.items()}


def _review_item(question: dict[str, Any], answers: dict[int, Any], sub_answers: dict[int, Any]) -> dict[str, Any]:
    qid = question["id"]
    if question.get("questionType") == TRUE_FALSE_TABLE:
        given = decode_sub_answers(sub_answers.get(qid))
        answered = any(v is not None for v in given)
        correct, total = score_items(question, given)
        return {
            "question": question,
            "answer": None,
            "subAnswers": given,
            "answered": answered,
            "isCorrect": answered and correct == total,
        }
    answer = answers.get(qid)
    answered = bool(answer)
    correct, _ = score_items(question, answer)
    return {
        "question": question,
        "answer": answer,
        "subAnswers": None,
        "answered": answered,
        "isCorrect": answered and correct == 1,
    }


def _matches(item: dict[str, Any], review_filter: ReviewFilter) -> bool:
    if review_filter is ReviewFilter.CORRECT:
        return item["isCorrect"]
    if review_filter is ReviewFilter.WRONG:
        return item["answered"] and not item["isCorrect"]
    if review_filter is ReviewFilter.UNANSWERED:
        return not item["answered"]
    return True


def load_for_review(
    db: DbSession,
    result_id: int,
    review_filter: ReviewFilter = ReviewFilter.ALL,
) -> dict[str, Any]:
    """A result with its questions and the answers given, read only."""
    result = store_service.require(db, ExamResult, result_id)
    questions = resolve_questions(db, result)
    answers = _int_keys(result.user_answers)
    sub_answers = _int_keys(result.user_sub_answers)
    items = [_review_item(q, answers, sub_answers) for q in questions]
    return {
        "result": record_to_dict(result, EXAM_RESULT_FIELDS),
        "questions": questions,
        "userAnswers": answers,
        "userSubAnswers": sub_answers,
        "items": [item for item in items if _matches(item, review_filter)],
    }


def retake(db: DbSession, manager: SessionManager, result_id: int) -> ExamSession:
    """Start a fresh session over the questions of a past exam."""
    result = store_service.require(db, ExamResult, result_id)
    questions = resolve_questions(db, result)
    if not questions:
        raise NotFoundError(f"No questions left for result {result_id}")
    name = result.exam_name or result.subject_name
    config = SubjectConfig(result.subject_id, result.subject_name, len(questions), RETAKE_MINUTES)
    log.info("Retaking result %d with %d questions", result_id, len(questions))
    return manager.start(f"Retake: {name}", [config], questions)
