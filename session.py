from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Union

from errors import ValidationError

# A single letter string ("A", "AC", "TRUE") or per-statement values for table questions.
Answer = Union[str, List[Optional[bool]]]


@dataclass(frozen=True)
class SubjectConfig:
    subject_id: int
    subject_name: str
    count: int
    time: int  # minutes

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "subjectName": self.subject_name,
            "count": self.count,
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubjectConfig":
        return cls(
            subject_id=int(data["subjectId"]),
            subject_name=str(data.get("subjectName") or ""),
            count=int(data.get("count") or 0),
            time=int(data.get("time") or 0),
        )


@dataclass(frozen=True)
class SubjectResult:
    subject_id: int
    subject_name: str
    score: float
    correct_count: int
    total_questions: int
    passed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "subjectName": self.subject_name,
            "score": self.score,
            "correctCount": self.correct_count,
            "totalQuestions": self.total_questions,
            "passed": self.passed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubjectResult":
        return cls(
            subject_id=int(data["subjectId"]),
            subject_name=str(data.get("subjectName") or ""),
            score=float(data.get("score") or 0),
            correct_count=int(data.get("correctCount") or 0),
            total_questions=int(data.get("totalQuestions") or 0),
            passed=bool(data.get("passed")),
        )


@dataclass(frozen=True)
class ExamSession:
    """
    Live state of one exam attempt. Every transition returns a new value so
    the owner can swap it in as one atomic replace.

    The active subject is never stored: it is the number of subjects that
    already have a result.
    """

    session_id: str
    name: str
    configs: List[SubjectConfig]
    questions: List[Dict[str, Any]]  # flat, in config order
    user_answers: Dict[int, Answer] = field(default_factory=dict)
    time_left: int = 0
    is_finished: bool = False
    is_paused: bool = False
    # a subject was handed in and the next one has not been opened yet
    awaiting_next: bool = False
    accumulated_results: List[SubjectResult] = field(default_factory=list)

    @classmethod
    def start(
        cls,
        name: str,
        configs: List[SubjectConfig],
        questions: List[Dict[str, Any]],
        session_id: Optional[str] = None,
    ) -> "ExamSession":
        if not configs:
            raise ValidationError("An exam needs at least one subject")
        expected = sum(c.count for c in configs)
        if expected != len(questions):
            raise ValidationError(
                f"Subject counts add up to {expected} but {len(questions)} questions were given"
            )
        return cls(
            session_id=session_id or str(int(time.time() * 1000)),
            name=name,
            configs=list(configs),
            questions=list(questions),
            time_left=configs[0].time * 60,
        )

    @property
    def active_subject_index(self) -> int:
        return len(self.accumulated_results)

    @property
    def all_subjects_done(self) -> bool:
        return self.active_subject_index >= len(self.configs)

    @property
    def active_config(self) -> Optional[SubjectConfig]:
        if self.all_subjects_done:
            return None
        return self.configs[self.active_subject_index]

    def subject_questions(self, index: int) -> List[Dict[str, Any]]:
        if index < 0 or index >= len(self.configs):
            return []
        start = sum(c.count for c in self.configs[:index])
        return self.questions[start : start + self.configs[index].count]

    @property
    def active_questions(self) -> List[Dict[str, Any]]:
        return self.subject_questions(self.active_subject_index)

    @property
    def should_auto_submit(self) -> bool:
        return (
            self.time_left == 0
            and not self.is_finished
            and not self.is_paused
            and not self.awaiting_next
            and not self.all_subjects_done
        )

    # --- transitions ---

    def update_answer(self, question_id: int, answer: Answer) -> "ExamSession":
        answers = dict(self.user_answers)
        answers[int(question_id)] = answer
        return replace(self, user_answers=answers)

    def decrement_time(self) -> "ExamSession":
        if self.is_finished or self.is_paused or self.awaiting_next:
            return self
        return replace(self, time_left=max(self.time_left - 1, 0))

    def complete_subject(self, result: SubjectResult) -> "ExamSession":
        results = [*self.accumulated_results, result]
        return replace(self, accumulated_results=results, awaiting_next=len(results) < len(self.configs))

    def next_subject(self) -> "ExamSession":
        config = self.active_config
        if config is None or not self.awaiting_next:
            return self
        return replace(self, time_left=config.time * 60, is_paused=False, awaiting_next=False)

    def pause(self) -> "ExamSession":
        return replace(self, is_paused=True)

    def resume(self) -> "ExamSession":
        """Unpause. At a subject boundary this opens the next subject with its own time."""
        if self.is_finished:
            return self
        if self.awaiting_next:
            return self.next_subject()
        return replace(self, is_paused=False)

    def finish(self) -> "ExamSession":
        return replace(self, is_finished=True, is_paused=True)

    # --- persistence ---

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "name": self.name,
            "configs": [c.to_dict() for c in self.configs],
            "questions": list(self.questions),
            "userAnswers": {str(k): v for k, v in self.user_answers.items()},
            "timeLeft": self.time_left,
            "isFinished": self.is_finished,
            "isPaused": self.is_paused,
            "awaitingNext": self.awaiting_next,
            "accumulatedResults": [r.to_dict() for r in self.accumulated_results],
            "activeSubjectIndex": self.active_subject_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExamSession":
        return cls(
            session_id=str(data["sessionId"]),
            name=str(data.get("name") or ""),
            configs=[SubjectConfig.from_dict(c) for c in data.get("configs") or []],
            questions=list(data.get("questions") or []),
            user_answers={int(k): v for k, v in (data.get("userAnswers") or {}).items()},
            time_left=int(data.get("timeLeft") or 0),
            is_finished=bool(data.get("isFinished")),
            is_paused=bool(data.get("isPaused")),
            awaiting_next=bool(data.get("awaitingNext")),
            accumulated_results=[SubjectResult.from_dict(r) for r in data.get("accumulatedResults") or []],
        )
