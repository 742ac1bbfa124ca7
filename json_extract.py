from __future__ import annotations

import json
import logging
from typing import Any

from errors import FormatError
from models import (
    MULTIPLE_CHOICE,
    TRUE_FALSE_TABLE,
    ImportBundle,
    QuestionDraft,
    as_truth,
    keep_valid,
)

log = logging.getLogger(__name__)

NUMBERED_OPTION_KEYS = ("1", "2", "3", "4")
NUMBERED_IMAGE_KEYS = ("img1", "img2", "img3", "img4")


def _first(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def _looks_like_question(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("Q") or value.get("content"))


def _collect_records(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("questions"), list):
            return data["questions"]
        return [value for value in data.values() if _looks_like_question(value)]
    raise FormatError("JSON must be a list of questions, {questions: [...]} or a map of questions")


def _correct_answers(record: dict[str, Any], question_type: str) -> list[str]:
    legacy = record.get("A")
    if isinstance(legacy, str):
        return [part.strip().upper() for part in legacy.split(",") if part.strip()]
    answers = record.get("correctAnswers")
    if isinstance(answers, list):
        return [str(a) for a in answers]
    if isinstance(answers, str):
        return [part.strip() for part in answers.split(",") if part.strip()]
    return ["A"] if question_type == MULTIPLE_CHOICE else []


def _draft_from_record(record: dict[str, Any], subject_id: int) -> QuestionDraft:
    question_type = str(_first(record, "type", "questionType") or MULTIPLE_CHOICE).upper()

    options = record.get("options")
    if not isinstance(options, list):
        options = [record[k] for k in NUMBERED_OPTION_KEYS if record.get(k) not in (None, "")]

    option_images = record.get("optionImages")
    if not isinstance(option_images, list):
        option_images = [record.get(k) or None for k in NUMBERED_IMAGE_KEYS]

    sub_questions = record.get("subQuestions") or []
    sub_answers = record.get("subAnswers") or []

    return QuestionDraft(
        subject_id=subject_id,
        content=str(_first(record, "Q", "content") or ""),
        question_type=question_type,
        options=[str(o) for o in options],
        option_images=list(option_images),
        sub_questions=[str(s) for s in sub_questions] if question_type == TRUE_FALSE_TABLE else [],
        sub_answers=[as_truth(a) for a in sub_answers] if question_type == TRUE_FALSE_TABLE else [],
        correct_answers=_correct_answers(record, question_type),
        explanation=_first(record, "explain", "explanation"),
        image=_first(record, "img", "image"),
        explanation_image=_first(record, "img_explain", "explanationImage"),
    )


def extract_json(data: bytes, subject_id: int) -> ImportBundle:
    """
    Parse a loose JSON question file. Every record lands on ``subject_id``;
    this path never carries a subject hierarchy.
    """
    try:
        parsed = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"Invalid JSON: {exc}") from exc

    records = _collect_records(parsed)
    bundle = ImportBundle()
    drafts: list[QuestionDraft] = []
    for record in records:
        if not isinstance(record, dict):
            bundle.skipped += 1
            continue
        drafts.append(_draft_from_record(record, subject_id))

    keep_valid(drafts, bundle, "json")
    log.info("JSON records: %d, questions kept: %d, skipped: %d", len(records), len(bundle.questions), bundle.skipped)
    bundle.logs.append(f"Records read: {len(records)}")
    bundle.logs.append(f"Questions extracted: {len(bundle.questions)}")
    if bundle.skipped:
        bundle.logs.append(f"Records skipped: {bundle.skipped}")
    return bundle
