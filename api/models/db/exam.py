"""
ExamConfig presets and persisted ExamResult records.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base
from api.models.db.json_fields import json_property


class ExamConfig(Base):
    """Named preset: which subjects, how many questions each, how many minutes each."""

    __tablename__ = "exam_configs"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    exam_term: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    level: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    subjects_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    subjects = json_property("subjects_json", list)


class ExamResult(Base):
    """
    Completed exam attempt. Written once when a session finishes; only
    deleted afterwards.
    """

    __tablename__ = "exam_results"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    subject_id: Mapped[int] = mapped_column(index=True, nullable=False)
    subject_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    score: Mapped[float] = mapped_column(default=0.0, nullable=False)
    correct_count: Mapped[int] = mapped_column(default=0, nullable=False)
    total_questions: Mapped[int] = mapped_column(default=0, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    session_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    exam_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_multi_subject: Mapped[bool | None] = mapped_column(nullable=True)
    passed: Mapped[bool | None] = mapped_column(nullable=True)

    question_ids_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_sub_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject_results_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    question_ids = json_property("question_ids_json", list)
    user_answers = json_property("user_answers_json", dict)
    user_sub_answers = json_property("user_sub_answers_json", dict)
    subject_results = json_property("subject_results_json", list)
