from __future__ import annotations

import io
import json
import logging
import zipfile
from typing import Any, Optional

from errors import FormatError
from image_convert import blob_to_data_url
from models import (
    MULTIPLE_CHOICE,
    ImportBundle,
    QuestionDraft,
    SubjectDraft,
    as_truth,
    keep_valid,
)

log = logging.getLogger(__name__)

METADATA_NAME = "metadata.json"
QUESTIONS_NAME = "questions.json"
IMAGES_PREFIX = "images/"
ARCHIVE_VERSION = "1.0"


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _read_json_member(archive: zipfile.ZipFile, name: str) -> Any:
    try:
        raw = archive.read(name)
    except KeyError:
        return None
    try:
        return json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"{name} is not valid JSON: {exc}") from exc


class ArchiveExtractor:
    """
    Reads a question package:

        metadata.json   {version, subjects: [{id, parentId, name, level, type, examTerm}]}
        questions.json  [{subjectId, content, questionType, options, ...}]
        images/*        binary assets referenced as "images/<name>.<ext>"

    Subjects keep their source ids; the orchestrator remaps them when it
    creates the new subject rows.
    """

    def __init__(self, data: bytes):
        self.data = data
        self.logs: list[str] = []

    def _open(self) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(io.BytesIO(self.data))
        except zipfile.BadZipFile as exc:
            raise FormatError(f"Not a zip archive: {exc}") from exc

    def _extract_assets(self, archive: zipfile.ZipFile) -> dict[str, str]:
        assets: dict[str, str] = {}
        for info in archive.infolist():
            if info.is_dir() or not info.filename.startswith(IMAGES_PREFIX):
                continue
            assets[info.filename] = blob_to_data_url(info.filename, archive.read(info))
        log.info("Archive assets materialized: %d", len(assets))
        self.logs.append(f"Images extracted: {len(assets)}")
        return assets

    def _subjects(self, metadata: Any) -> list[SubjectDraft]:
        if not isinstance(metadata, dict):
            return []
        subjects: list[SubjectDraft] = []
        for raw in metadata.get("subjects") or []:
            if not isinstance(raw, dict) or not raw.get("name"):
                continue
            subjects.append(
                SubjectDraft(
                    source_id=_as_int(raw.get("id")),
                    parent_id=_as_int(raw.get("parentId")),
                    name=str(raw["name"]),
                    level=str(raw.get("level") or ""),
                    type=str(raw.get("type") or ""),
                    exam_term=str(raw.get("examTerm") or ""),
                )
            )
        return subjects

    @staticmethod
    def _resolve(value: Any, assets: dict[str, str]) -> Optional[str]:
        if not value:
            return None
        # unmatched references stay as they are (external URL, existing data URL)
        return assets.get(value, value)

    def _question(self, raw: dict[str, Any], assets: dict[str, str]) -> QuestionDraft:
        return QuestionDraft(
            subject_id=_as_int(raw.get("subjectId")),
            content=str(raw.get("content") or ""),
            question_type=str(raw.get("questionType") or MULTIPLE_CHOICE),
            options=list(raw.get("options") or []),
            option_images=[self._resolve(img, assets) for img in raw.get("optionImages") or []],
            sub_questions=[str(s) for s in raw.get("subQuestions") or []],
            sub_answers=[as_truth(a) for a in raw.get("subAnswers") or []],
            correct_answers=[str(a) for a in raw.get("correctAnswers") or []],
            explanation=raw.get("explanation") or None,
            image=self._resolve(raw.get("image"), assets),
            explanation_image=self._resolve(raw.get("explanationImage"), assets),
        )

    def extract(self) -> ImportBundle:
        self.logs.clear()
        with self._open() as archive:
            questions = _read_json_member(archive, QUESTIONS_NAME)
            if questions is None:
                raise FormatError(f"{QUESTIONS_NAME} not found in archive")
            if not isinstance(questions, list):
                raise FormatError(f"{QUESTIONS_NAME} must contain a list")
            metadata = _read_json_member(archive, METADATA_NAME)
            assets = self._extract_assets(archive)

        bundle = ImportBundle(subjects=self._subjects(metadata), assets=assets)
        drafts = []
        for raw in questions:
            if not isinstance(raw, dict):
                bundle.skipped += 1
                continue
            drafts.append(self._question(raw, assets))
        keep_valid(drafts, bundle, "archive")

        log.info(
            "Archive: subjects=%d questions=%d skipped=%d",
            len(bundle.subjects),
            len(bundle.questions),
            bundle.skipped,
        )
        self.logs.append(f"Subjects in metadata: {len(bundle.subjects)}")
        self.logs.append(f"Questions extracted: {len(bundle.questions)}")
        if bundle.skipped:
            self.logs.append(f"Questions skipped: {bundle.skipped}")
        bundle.logs = list(self.logs)
        return bundle


def extract_archive(data: bytes) -> ImportBundle:
    return ArchiveExtractor(data).extract()
