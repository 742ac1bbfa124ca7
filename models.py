from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

log = logging.getLogger(__name__)

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
TRUE_FALSE = "TRUE_FALSE"
TRUE_FALSE_TABLE = "TRUE_FALSE_TABLE"
QUESTION_TYPES = (MULTIPLE_CHOICE, TRUE_FALSE, TRUE_FALSE_TABLE)

STATUS_NEW = 0
STATUS_MASTERED = 1
STATUS_WRONG = 2

# marker for "unassigned" when auto-resolution finds no subject
UNASSIGNED_SUBJECT_ID = 0

_TRUE_MARKERS = {"A", "T", "TRUE", "Đ", "ĐÚNG", "DUNG", "YES"}
_FALSE_MARKERS = {"B", "F", "FALSE", "S", "SAI", "NO"}


def option_letter(index: int) -> str:
    return chr(ord("A") + index)


def as_truth(value: object) -> bool:
    """A true/false marker as a bool. Strings go through the marker table, so "false" and "F" are False."""
    if isinstance(value, str):
        return value.strip().upper() in _TRUE_MARKERS
    return bool(value)


@dataclass
class SubjectDraft:
    source_id: Optional[int]
    name: str
    parent_id: Optional[int] = None
    level: str = ""
    type: str = ""
    exam_term: str = ""


@dataclass
class QuestionDraft:
    content: str
    question_type: str = MULTIPLE_CHOICE
    subject_id: Optional[int] = None  # source id until the orchestrator remaps it
    options: List[str] = field(default_factory=list)
    option_images: List[Optional[str]] = field(default_factory=list)
    sub_questions: List[str] = field(default_factory=list)
    sub_answers: List[bool] = field(default_factory=list)
    correct_answers: List[str] = field(default_factory=list)
    explanation: Optional[str] = None
    image: Optional[str] = None
    explanation_image: Optional[str] = None
    status: int = STATUS_NEW

    def normalize(self) -> "QuestionDraft":
        """
        Bring the draft into the canonical per-type shape in place:
        option images padded/truncated to the option count, answer letters
        upper-cased, TRUE_FALSE answers mapped onto TRUE/FALSE, table
        questions stripped of options.
        """
        self.question_type = (self.question_type or MULTIPLE_CHOICE).strip().upper()
        self.content = (self.content or "").strip()
        self.options = [str(o) for o in self.options]

        if self.question_type == TRUE_FALSE_TABLE:
            self.options = []
            self.option_images = []
            self.correct_answers = []
            return self

        images = list(self.option_images[: len(self.options)])
        images += [None] * (len(self.options) - len(images))
        self.option_images = [img or None for img in images]

        answers = [str(a).strip().upper() for a in self.correct_answers if str(a).strip()]
        if self.question_type == TRUE_FALSE:
            mapped = "TRUE"
            if answers and answers[0] in _FALSE_MARKERS:
                mapped = "FALSE"
            elif answers and answers[0] not in _TRUE_MARKERS:
                log.debug("Unknown TRUE_FALSE marker %r, defaulting to TRUE", answers[0])
            answers = [mapped]
        self.correct_answers = answers
        return self

    def problems(self) -> list[str]:
        errs: list[str] = []
        if not self.content:
            errs.append("empty content")
        if self.question_type not in QUESTION_TYPES:
            errs.append(f"unknown question type {self.question_type!r}")
            return errs

        if self.question_type == MULTIPLE_CHOICE:
            if len(self.options) != len(self.option_images):
                errs.append("options/optionImages length mismatch")
            if not self.correct_answers:
                errs.append("no correct answer")
            valid = {option_letter(i) for i in range(len(self.options))}
            bad = [a for a in self.correct_answers if a not in valid]
            if bad:
                errs.append(f"answer letters out of range: {','.join(bad)}")
        elif self.question_type == TRUE_FALSE:
            if len(self.correct_answers) != 1 or self.correct_answers[0] not in ("TRUE", "FALSE"):
                errs.append("TRUE_FALSE needs exactly one TRUE/FALSE answer")
        else:
            if not self.sub_questions:
                errs.append("no sub-statements")
            if len(self.sub_questions) != len(self.sub_answers):
                errs.append("subQuestions/subAnswers length mismatch")
            if self.options or self.correct_answers:
                errs.append("table question carries options")
        return errs

    def is_valid(self) -> bool:
        return not self.problems()


@dataclass
class ImportBundle:
    """Everything a normalizer hands to the import orchestrator."""

    questions: List[QuestionDraft] = field(default_factory=list)
    subjects: List[SubjectDraft] = field(default_factory=list)
    skipped: int = 0
    logs: List[str] = field(default_factory=list)
    assets: Dict[str, str] = field(default_factory=dict)

    @property
    def has_hierarchy(self) -> bool:
        return bool(self.subjects)


def keep_valid(drafts: List[QuestionDraft], bundle: ImportBundle, source: str) -> None:
    """Normalize drafts and append the valid ones to the bundle, counting the rest."""
    for index, draft in enumerate(drafts, start=1):
        draft.normalize()
        errs = draft.problems()
        if errs:
            bundle.skipped += 1
            log.debug("%s record %d skipped: %s", source, index, "; ".join(errs))
            continue
        bundle.questions.append(draft)
