from __future__ import annotations

import io
import json
import logging
import zipfile
from typing import Any, Iterable, Mapping, Optional

from archive_extract import ARCHIVE_VERSION, IMAGES_PREFIX, METADATA_NAME, QUESTIONS_NAME
from image_convert import data_url_to_blob
from models import QuestionDraft

log = logging.getLogger(__name__)

# wire key -> model attribute, per stored entity
SUBJECT_FIELDS = {
    "id": "id",
    "name": "name",
    "level": "level",
    "type": "type",
    "examTerm": "exam_term",
    "parentId": "parent_id",
    "createdAt": "created_at",
}

QUESTION_FIELDS = {
    "id": "id",
    "subjectId": "subject_id",
    "content": "content",
    "questionType": "question_type",
    "options": "options",
    "optionImages": "option_images",
    "subQuestions": "sub_questions",
    "subAnswers": "sub_answers",
    "correctAnswers": "correct_answers",
    "explanation": "explanation",
    "image": "image",
    "explanationImage": "explanation_image",
    "status": "status",
    "createdAt": "created_at",
}

EXAM_CONFIG_FIELDS = {
    "id": "id",
    "name": "name",
    "examTerm": "exam_term",
    "level": "level",
    "subjects": "subjects",
}

EXAM_RESULT_FIELDS = {
    "id": "id",
    "subjectId": "subject_id",
    "subjectName": "subject_name",
    "score": "score",
    "correctCount": "correct_count",
    "totalQuestions": "total_questions",
    "timestamp": "timestamp",
    "sessionId": "session_id",
    "examName": "exam_name",
    "questionIds": "question_ids",
    "userAnswers": "user_answers",
    "userSubAnswers": "user_sub_answers",
    "isMultiSubject": "is_multi_subject",
    "subjectResults": "subject_results",
    "passed": "passed",
}

USER_PROFILE_FIELDS = {
    "id": "id",
    "fullName": "full_name",
    "gender": "gender",
    "birthYear": "birth_year",
    "educationLevel": "education_level",
    "avatar": "avatar",
}

REMINDER_FIELDS = {
    "id": "id",
    "title": "title",
    "message": "message",
    "time": "time",
    "days": "days",
    "isActive": "is_active",
}

PROPERTY_OPTION_FIELDS = {
    "id": "id",
    "name": "name",
    "type": "type",
}

# question keys that may carry an image reference
IMAGE_FIELDS = ("image", "explanationImage")


def record_to_dict(record: Any, fields: Mapping[str, str]) -> dict[str, Any]:
    return {key: getattr(record, attr) for key, attr in fields.items()}


def record_kwargs(data: Mapping[str, Any], fields: Mapping[str, str], keep_id: bool = True) -> dict[str, Any]:
    """Model constructor kwargs from a wire dict; absent keys are left to column defaults."""
    kwargs: dict[str, Any] = {}
    for key, attr in fields.items():
        if key == "id" and not keep_id:
            continue
        if key in data and data[key] is not None:
            kwargs[attr] = data[key]
    return kwargs


def question_draft_kwargs(draft: QuestionDraft, subject_id: int) -> dict[str, Any]:
    return {
        "subject_id": subject_id,
        "content": draft.content,
        "question_type": draft.question_type,
        "options": draft.options,
        "option_images": draft.option_images,
        "sub_questions": draft.sub_questions,
        "sub_answers": draft.sub_answers,
        "correct_answers": draft.correct_answers,
        "explanation": draft.explanation,
        "image": draft.image,
        "explanation_image": draft.explanation_image,
        "status": draft.status,
    }


# Archive export


class _AssetWriter:
    """Turns inline data-URL images into archive members, one file per distinct image."""

    def __init__(self, archive: zipfile.ZipFile):
        self.archive = archive
        self.names: dict[str, str] = {}

    def reference(self, value: Optional[str], stem: str) -> Optional[str]:
        if not value:
            return None
        if value in self.names:
            return self.names[value]
        decoded = data_url_to_blob(value)
        if decoded is None:
            return value
        blob, ext = decoded
        name = f"{IMAGES_PREFIX}{stem}{ext}"
        self.archive.writestr(name, blob)
        self.names[value] = name
        return name


def build_question_archive(
    subjects: Iterable[Mapping[str, Any]],
    questions: Iterable[Mapping[str, Any]],
) -> bytes:
    """
    Write subjects and questions in the package format read by
    ``archive_extract``; inline images become ``images/`` members.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        assets = _AssetWriter(archive)
        metadata = {
            "version": ARCHIVE_VERSION,
            "subjects": [
                {
                    "id": s["id"],
                    "parentId": s.get("parentId"),
                    "name": s.get("name", ""),
                    "level": s.get("level", ""),
                    "type": s.get("type", ""),
                    "examTerm": s.get("examTerm", ""),
                }
                for s in subjects
            ],
        }
        payload = []
        for index, question in enumerate(questions, start=1):
            item = {
                "subjectId": question.get("subjectId"),
                "content": question.get("content", ""),
                "questionType": question.get("questionType"),
                "options": list(question.get("options") or []),
                "optionImages": [
                    assets.reference(img, f"q{index}_option{pos + 1}")
                    for pos, img in enumerate(question.get("optionImages") or [])
                ],
                "correctAnswers": list(question.get("correctAnswers") or []),
                "subQuestions": list(question.get("subQuestions") or []),
                "subAnswers": list(question.get("subAnswers") or []),
                "explanation": question.get("explanation"),
            }
            for key in IMAGE_FIELDS:
                item[key] = assets.reference(question.get(key), f"q{index}_{key}")
            payload.append(item)

        archive.writestr(METADATA_NAME, json.dumps(metadata, ensure_ascii=False, indent=2))
        archive.writestr(QUESTIONS_NAME, json.dumps(payload, ensure_ascii=False, indent=2))
    log.info("Archive built: %d subjects, %d questions, %d images", len(metadata["subjects"]), len(payload), len(assets.names))
    return buffer.getvalue()
