from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import Iterator, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn

from errors import FormatError
from models import MULTIPLE_CHOICE, ImportBundle, QuestionDraft, keep_valid

log = logging.getLogger(__name__)

QUESTION_RE = re.compile(r"^(?:(?:câu|question)\s*\d+\s*[:.)]?|\d+\s*[:.)])\s*(.+)", re.IGNORECASE)
OPTION_RE = re.compile(r"^([A-H])\s*[.):,]\s*(.+)", re.IGNORECASE)
ANSWER_RE = re.compile(r"^(?:đáp án|đa|answer)\s*[:\s]\s*(.+)", re.IGNORECASE)

MIN_OPTIONS = 2


def _paragraph_text(element) -> str:
    return "".join(node.text or "" for node in element.iter(qn("w:t")))


class WordTestExtractor:
    """
    Line-oriented parser over the plain text of a .docx (or an already
    extracted .txt). A numbered line opens a question, "A." style lines add
    options, an "Answer:" line sets the correct letters. Blocks with fewer
    than two options are dropped.
    """

    def __init__(self, data: bytes, subject_id: int):
        self.data = data
        self.subject_id = subject_id
        self.logs: list[str] = []

    def _load_text(self) -> str:
        if not zipfile.is_zipfile(io.BytesIO(self.data)):
            try:
                return self.data.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise FormatError("Document is neither .docx nor UTF-8 text") from exc

        try:
            doc = Document(io.BytesIO(self.data))
        except (PackageNotFoundError, KeyError, ValueError, zipfile.BadZipFile) as exc:
            raise FormatError(f"Unreadable .docx: {exc}") from exc

        lines: list[str] = []
        # body order, table cells included, like a raw-text extraction
        for element in doc.element.body.iter():
            if element.tag == qn("w:p"):
                lines.append(_paragraph_text(element))
        log.info("Document loaded. Paragraphs: %d, tables: %d", len(lines), len(doc.tables))
        return "\n".join(lines)

    @staticmethod
    def _lines(text: str) -> Iterator[str]:
        for raw in text.splitlines():
            line = raw.strip()
            if line:
                yield line

    def _flush(self, current: Optional[QuestionDraft], drafts: list[QuestionDraft]) -> int:
        if current is None:
            return 0
        if len(current.options) < MIN_OPTIONS:
            log.debug("Dropped block with %d options: %.40s", len(current.options), current.content)
            return 1
        drafts.append(current)
        return 0

    def extract(self) -> ImportBundle:
        self.logs.clear()
        text = self._load_text()

        bundle = ImportBundle()
        drafts: list[QuestionDraft] = []
        current: Optional[QuestionDraft] = None
        dropped = 0

        for line in self._lines(text):
            match = QUESTION_RE.match(line)
            if match:
                dropped += self._flush(current, drafts)
                current = QuestionDraft(
                    subject_id=self.subject_id,
                    content=match.group(1).strip(),
                    question_type=MULTIPLE_CHOICE,
                    correct_answers=["A"],
                )
                continue
            if current is None:
                continue
            match = OPTION_RE.match(line)
            if match:
                current.options.append(match.group(2).strip())
                continue
            match = ANSWER_RE.match(line)
            if match:
                letters = [s.strip().upper() for s in re.split(r"[,\s]+", match.group(1)) if s.strip()]
                current.correct_answers = letters
                continue
        dropped += self._flush(current, drafts)

        bundle.skipped = dropped
        keep_valid(drafts, bundle, "document")
        log.info("Document questions kept: %d, dropped: %d", len(bundle.questions), bundle.skipped)
        self.logs.append(f"Questions extracted: {len(bundle.questions)}")
        if bundle.skipped:
            self.logs.append(f"Blocks skipped: {bundle.skipped}")
        bundle.logs = list(self.logs)
        return bundle


def extract_document(data: bytes, subject_id: int) -> ImportBundle:
    return WordTestExtractor(data, subject_id).extract()
