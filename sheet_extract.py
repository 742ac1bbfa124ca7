from __future__ import annotations

import io
import logging
from typing import Any, Optional

import pandas as pd

from errors import FormatError
from models import (
    MULTIPLE_CHOICE,
    QUESTION_TYPES,
    TRUE_FALSE_TABLE,
    ImportBundle,
    QuestionDraft,
    as_truth,
    keep_valid,
)

log = logging.getLogger(__name__)

# Column positions of the documented template. Do not reorder.
CONTENT_COL = 0
OPTION_COLS = range(2, 10)
CORRECT_COL = 10
EXPLANATION_COL = 11
IMAGE_COL = 12
OPTION_IMAGE_COLS = range(13, 17)
EXPLANATION_IMAGE_COL = 17
SUB_QUESTIONS_COL = 18
SUB_ANSWERS_COL = 19

TYPE_HEADER_MARKERS = ("type", "loại")
TEMPLATE_HEADERS = [
    "content", "type",
    "option A", "option B", "option C", "option D",
    "option E", "option F", "option G", "option H",
    "correct answers", "explanation", "image",
    "option A image", "option B image", "option C image", "option D image",
    "explanation image", "sub statements", "sub answers",
]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float):
        if value != value:  # NaN
            return None
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    return text or None


def _cell(row: list[Any], index: int) -> Optional[str]:
    if index >= len(row):
        return None
    return _text(row[index])


def _read_rows(data: bytes, is_csv: bool) -> list[list[Any]]:
    buffer = io.BytesIO(data)
    try:
        if is_csv:
            frame = pd.read_csv(buffer, header=None, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        else:
            frame = pd.read_excel(buffer, header=None, dtype=object, sheet_name=0, engine="openpyxl")
    except Exception as exc:
        # pandas/openpyxl surface many unrelated exception types for bad bytes
        raise FormatError(f"Unreadable spreadsheet: {exc}") from exc
    frame = frame.astype(object).where(pd.notna(frame), None)
    return frame.values.tolist()


class SheetExtractor:
    """Row 1 is a header; every following row is one question in the fixed column layout."""

    def __init__(self, data: bytes, subject_id: int, is_csv: bool = False):
        self.data = data
        self.subject_id = subject_id
        self.is_csv = is_csv
        self.logs: list[str] = []

    def _type_column(self, header: list[Any]) -> Optional[int]:
        for index, value in enumerate(header):
            label = (_text(value) or "").lower()
            if any(marker in label for marker in TYPE_HEADER_MARKERS):
                return index
        return None

    def _table_row(self, row: list[Any], content: str) -> QuestionDraft:
        statements = [s.strip() for s in (_cell(row, SUB_QUESTIONS_COL) or "").split("|") if s.strip()]
        markers = [s.strip().upper() for s in (_cell(row, SUB_ANSWERS_COL) or "").split(",")]
        return QuestionDraft(
            subject_id=self.subject_id,
            content=content,
            question_type=TRUE_FALSE_TABLE,
            sub_questions=statements,
            sub_answers=[as_truth(m) for m in markers if m],
            explanation=_cell(row, EXPLANATION_COL),
            image=_cell(row, IMAGE_COL),
            explanation_image=_cell(row, EXPLANATION_IMAGE_COL),
        )

    def _choice_row(self, row: list[Any], content: str, question_type: str) -> QuestionDraft:
        options = [text for text in (_cell(row, i) for i in OPTION_COLS) if text]
        correct = _cell(row, CORRECT_COL) or "A"
        return QuestionDraft(
            subject_id=self.subject_id,
            content=content,
            question_type=question_type,
            options=options,
            option_images=[_cell(row, i) for i in OPTION_IMAGE_COLS],
            correct_answers=[part.strip().upper() for part in correct.split(",")],
            explanation=_cell(row, EXPLANATION_COL),
            image=_cell(row, IMAGE_COL),
            explanation_image=_cell(row, EXPLANATION_IMAGE_COL),
        )

    def extract(self) -> ImportBundle:
        self.logs.clear()
        rows = _read_rows(self.data, self.is_csv)
        if len(rows) < 2:
            raise FormatError("Spreadsheet is empty or missing the header row")

        type_col = self._type_column(rows[0])
        log.debug("Sheet rows=%d type column=%s", len(rows), type_col)

        bundle = ImportBundle()
        drafts: list[QuestionDraft] = []
        for row in rows[1:]:
            content = _cell(row, CONTENT_COL)
            if not content:
                bundle.skipped += 1
                continue
            question_type = MULTIPLE_CHOICE
            if type_col is not None:
                question_type = (_cell(row, type_col) or MULTIPLE_CHOICE).upper()
            if question_type not in QUESTION_TYPES:
                log.debug("Unknown question type %r, row skipped", question_type)
                bundle.skipped += 1
                continue
            if question_type == TRUE_FALSE_TABLE:
                drafts.append(self._table_row(row, content))
            else:
                drafts.append(self._choice_row(row, content, question_type))

        keep_valid(drafts, bundle, "sheet")
        log.info("Sheet questions kept: %d, skipped: %d", len(bundle.questions), bundle.skipped)
        self.logs.append(f"Rows read: {len(rows) - 1}")
        self.logs.append(f"Questions extracted: {len(bundle.questions)}")
        if bundle.skipped:
            self.logs.append(f"Rows skipped: {bundle.skipped}")
        bundle.logs = list(self.logs)
        return bundle


def extract_sheet(data: bytes, subject_id: int, is_csv: bool = False) -> ImportBundle:
    return SheetExtractor(data, subject_id, is_csv=is_csv).extract()


def build_template() -> bytes:
    """An .xlsx with the header row and one sample question per type."""
    blank = [""] * len(TEMPLATE_HEADERS)
    choice = list(blank)
    choice[CONTENT_COL], choice[1] = "2 + 2 = ?", MULTIPLE_CHOICE
    choice[2:6] = ["3", "4", "5", "6"]
    choice[CORRECT_COL] = "B"
    choice[EXPLANATION_COL] = "Basic addition."
    table = list(blank)
    table[CONTENT_COL], table[1] = "Mark each statement", TRUE_FALSE_TABLE
    table[SUB_QUESTIONS_COL] = "Water boils at 100 C | The sun is cold"
    table[SUB_ANSWERS_COL] = "T,F"

    buffer = io.BytesIO()
    pd.DataFrame([choice, table], columns=TEMPLATE_HEADERS).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()
