"""Single owner of the live exam session: transitions, persistence, submission."""
from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from sqlalchemy.orm import Session as DbSession

from api.config import DEFAULT_EXAM_MINUTES, DEFAULT_EXAM_QUESTIONS
from api.models.db import ExamConfig, ExamResult, Subject
from api.services import store_service
from api.utils import read_json_file, remove_json_file, write_json_file
from errors import NotFoundError, ValidationError
from scoring import build_result, score_subject
from serialization import EXAM_RESULT_FIELDS, QUESTION_FIELDS, record_kwargs, record_to_dict
from session import Answer, ExamSession, SubjectConfig, SubjectResult

log = logging.getLogger(__name__)


@dataclass
class SubmitOutcome:
    """What happened when the active subject was handed in."""

    subject_result: SubjectResult | None
    finished: bool
    auto: bool = False
    result_id: int | None = None
    session: ExamSession | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectResult": self.subject_result.to_dict() if self.subject_result else None,
            "finished": self.finished,
            "auto": self.auto,
            "resultId": self.result_id,
            "session": self.session.to_dict() if self.session else None,
        }


def pick_questions(questions: list[dict[str, Any]], count: int, shuffle: bool) -> list[dict[str, Any]]:
    """Optionally shuffle, then keep the first ``count``."""
    picked = list(questions)
    if shuffle:
        random.shuffle(picked)
    return picked[: max(count, 0)]


class SessionManager:
    """
    Holds the one live ``ExamSession``. Every transition runs under a lock
    and replaces the whole value, then writes it to ``state_path`` so an
    interrupted exam can be resumed.
    """

    def __init__(self, state_path: Path | None = None):
        self.state_path = Path(state_path) if state_path else None
        self._lock = threading.RLock()
        self._session: ExamSession | None = self._load()

    def _load(self) -> ExamSession | None:
        if self.state_path is None:
            return None
        try:
            data = read_json_file(self.state_path, None)
            if not data:
                return None
            session = ExamSession.from_dict(data)
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("Discarding unreadable session state %s: %s", self.state_path, exc)
            remove_json_file(self.state_path)
            return None
        log.info("Resumed session %s (%s)", session.session_id, session.name)
        return session

    def _store(self, session: ExamSession | None) -> None:
        self._session = session
        if self.state_path is None:
            return
        if session is None:
            remove_json_file(self.state_path)
        else:
            write_json_file(self.state_path, session.to_dict())

    def _apply(self, transition: Callable[[ExamSession], ExamSession]) -> ExamSession:
        with self._lock:
            updated = transition(self.require())
            self._store(updated)
            return updated

    @property
    def current(self) -> ExamSession | None:
        return self._session

    def require(self) -> ExamSession:
        session = self._session
        if session is None:
            raise NotFoundError("No exam in progress")
        return session

    # --- starting ---

    def start(
        self,
        name: str,
        configs: list[SubjectConfig],
        questions: list[dict[str, Any]],
    ) -> ExamSession:
        """Replace any live session with a new one."""
        session = ExamSession.start(name, configs, questions)
        with self._lock:
            if self._session is not None:
                log.info("Session %s superseded", self._session.session_id)
            self._store(session)
        log.info(
            "Session %s started: %s, %d subjects, %d questions",
            session.session_id,
            name,
            len(configs),
            len(questions),
        )
        return session

    def start_from_config(self, db: DbSession, config_id: int, shuffle: bool = True) -> ExamSession:
        """Seed a session from an ExamConfig preset."""
        preset = store_service.require(db, ExamConfig, config_id)
        configs: list[SubjectConfig] = []
        questions: list[dict[str, Any]] = []
        for raw in preset.subjects:
            config = SubjectConfig.from_dict(raw)
            pool = [
                record_to_dict(q, QUESTION_FIELDS)
                for q in store_service.questions_by_subject_recursive(db, config.subject_id)
            ]
            selected = pick_questions(pool, config.count, shuffle)
            if not selected:
                log.warning("Subject %s has no questions; left out of %s", config.subject_name, preset.name)
                continue
            configs.append(SubjectConfig(config.subject_id, config.subject_name, len(selected), config.time))
            questions.extend(selected)
        if not questions:
            raise ValidationError(f"Exam '{preset.name}' has no questions")
        return self.start(preset.name, configs, questions)

    def start_from_subject(
        self,
        db: DbSession,
        subject_id: int,
        count: int | None = None,
        minutes: int | None = None,
        shuffle: bool = True,
    ) -> ExamSession:
        """Seed a single-subject practice exam."""
        subject = store_service.require(db, Subject, subject_id)
        pool = [
            record_to_dict(q, QUESTION_FIELDS)
            for q in store_service.questions_by_subject_recursive(db, subject_id)
        ]
        selected = pick_questions(pool, count or DEFAULT_EXAM_QUESTIONS, shuffle)
        if not selected:
            raise ValidationError(f"Subject '{subject.name}' has no questions")
        config = SubjectConfig(subject.id, subject.name, len(selected), minutes or DEFAULT_EXAM_MINUTES)
        return self.start(f"Practice exam: {subject.name}", [config], selected)

    # --- in progress ---

    def update_answer(self, question_id: int, answer: Answer) -> ExamSession:
        return self._apply(lambda s: s.update_answer(question_id, answer))

    def pause(self) -> ExamSession:
        return self._apply(lambda s: s.pause())

    def resume(self) -> ExamSession:
        return self._apply(lambda s: s.resume())

    def next_subject(self) -> ExamSession:
        return self._apply(lambda s: s.next_subject())

    def tick(self, db: DbSession) -> SubmitOutcome | None:
        """One timer second. Hands the subject in when its time runs out."""
        with self._lock:
            session = self._apply(lambda s: s.decrement_time())
            if session.should_auto_submit:
                log.info("Time is up for %s, submitting", session.active_config.subject_name)
                return self.submit_subject(db, auto=True)
        return None

    def submit_subject(self, db: DbSession, auto: bool = False) -> SubmitOutcome:
        """
        Score the active subject and record it. After the last subject the
        session is finished, its ExamResult written, and the session cleared.
        Otherwise the session pauses until ``next_subject`` (or ``resume``)
        opens the next subject.
        """
        with self._lock:
            session = self.require()
            if session.awaiting_next:
                raise ValidationError(
                    f"{session.accumulated_results[-1].subject_name} was already handed in; open the next subject first"
                )
            subject_result = None
            if not session.all_subjects_done:
                config = session.active_config
                subject_result = score_subject(config, session.active_questions, session.user_answers)
                session = session.complete_subject(subject_result)
                if not session.all_subjects_done:
                    session = session.pause()
                    self._store(session)
                    return SubmitOutcome(subject_result, finished=False, auto=auto, session=session)

            session = session.finish()
            self._store(session)
            result_id = self._persist_result(db, session)
            self._store(None)
            return SubmitOutcome(subject_result, finished=True, auto=auto, result_id=result_id)

    def _persist_result(self, db: DbSession, session: ExamSession) -> int:
        payload = build_result(session, session.accumulated_results)
        record = store_service.add(db, ExamResult(**record_kwargs(payload, EXAM_RESULT_FIELDS, keep_id=False)))
        log.info(
            "Session %s finished: score %.2f passed=%s (result %d)",
            session.session_id,
            payload["score"],
            payload["passed"],
            record.id,
        )
        return record.id

    def clear(self) -> None:
        """Drop the live session, whatever state it is in."""
        with self._lock:
            if self._session is not None:
                log.info("Session %s cleared", self._session.session_id)
            self._store(None)
