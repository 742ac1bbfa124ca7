"""Scoring of exam subjects and construction of the persisted result record."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Iterable, Optional

from models import TRUE_FALSE_TABLE
from session import Answer, ExamSession, SubjectConfig, SubjectResult

log = logging.getLogger(__name__)

PASS_RATIO = 0.7
SCORE_SCALE = 10


def decode_sub_answers(raw: Answer | None) -> list[Optional[bool]]:
    """Per-statement answers, accepting both a list and its JSON-encoded string form."""
    if raw is None:
        return []
    if isinstance(raw, list):
        values = raw
    else:
        try:
            values = json.loads(raw)
        except (TypeError, ValueError):
            return []
        if not isinstance(values, list):
            return []
    return [v if isinstance(v, bool) else None for v in values]


def _letters(value: str) -> str:
    return "".join(sorted(value.replace(",", "").replace(" ", "").upper()))


def is_answer_correct(question: dict[str, Any], answer: Answer | None) -> bool:
    """Whole-question check for every type except TRUE_FALSE_TABLE."""
    if not isinstance(answer, str) or not answer:
        return False
    correct = [str(a) for a in question.get("correctAnswers") or []]
    if len(correct) > 1:
        return _letters(answer) == "".join(sorted(a.upper() for a in correct))
    return answer in correct


def score_items(question: dict[str, Any], answer: Answer | None) -> tuple[int, int]:
    """(correct, total) scoring items contributed by one question."""
    if question.get("questionType") == TRUE_FALSE_TABLE:
        expected = question.get("subAnswers") or []
        given = decode_sub_answers(answer)
        correct = sum(
            1
            for idx, value in enumerate(expected)
            if idx < len(given) and given[idx] is not None and given[idx] == bool(value)
        )
        return correct, len(expected)
    return (1 if is_answer_correct(question, answer) else 0), 1


def score_subject(
    config: SubjectConfig,
    questions: Iterable[dict[str, Any]],
    answers: dict[int, Answer],
) -> SubjectResult:
    correct_count = 0
    total_items = 0
    for question in questions:
        correct, total = score_items(question, answers.get(question.get("id")))
        correct_count += correct
        total_items += total

    ratio = correct_count / total_items if total_items else 0.0
    result = SubjectResult(
        subject_id=config.subject_id,
        subject_name=config.subject_name,
        score=ratio * SCORE_SCALE,
        correct_count=correct_count,
        total_questions=total_items,
        passed=total_items > 0 and ratio >= PASS_RATIO,
    )
    log.debug(
        "Scored subject %s: %d/%d passed=%s",
        config.subject_name,
        correct_count,
        total_items,
        result.passed,
    )
    return result


def all_passed(results: Iterable[SubjectResult]) -> bool:
    results = list(results)
    return bool(results) and all(r.passed for r in results)


def split_answers(
    session: ExamSession,
) -> tuple[dict[int, str], dict[int, list[Optional[bool]]]]:
    """Separate single-string answers from decoded per-statement answers."""
    types = {q.get("id"): q.get("questionType") for q in session.questions}
    singles: dict[int, str] = {}
    subs: dict[int, list[Optional[bool]]] = {}
    for question_id, answer in session.user_answers.items():
        if types.get(question_id) == TRUE_FALSE_TABLE:
            subs[question_id] = decode_sub_answers(answer)
        elif isinstance(answer, str):
            singles[question_id] = answer
        else:
            log.debug("Non-string answer for question %s ignored", question_id)
    return singles, subs


def build_result(
    session: ExamSession,
    subject_results: list[SubjectResult],
    timestamp: Optional[int] = None,
) -> dict[str, Any]:
    """
    Build the ExamResult record for a finished session.

    The first configured subject stands in for the legacy single-subject
    fields; the exam name doubles as the display name.
    """
    user_answers, user_sub_answers = split_answers(session)
    count = len(subject_results)
    return {
        "subjectId": session.configs[0].subject_id,
        "subjectName": session.name,
        "score": sum(r.score for r in subject_results) / count if count else 0.0,
        "correctCount": sum(r.correct_count for r in subject_results),
        "totalQuestions": sum(r.total_questions for r in subject_results),
        "timestamp": timestamp if timestamp is not None else int(time.time() * 1000),
        "sessionId": session.session_id,
        "examName": session.name,
        "questionIds": [q.get("id") for q in session.questions],
        "userAnswers": user_answers,
        "userSubAnswers": user_sub_answers,
        "isMultiSubject": len(session.configs) > 1,
        "subjectResults": [r.to_dict() for r in subject_results],
        "passed": all_passed(subject_results),
    }
