"""
Subject and Question tables: the question bank.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base
from api.models.db.json_fields import json_property
from api.utils.time_utils import now_ms
from models import MULTIPLE_CHOICE, STATUS_NEW


class Subject(Base):
    """
    Node of the subject forest. ``parent_id`` is advisory (no foreign key):
    backups and imports may reference ids that are restored later.
    """

    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    level: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    type: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    exam_term: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    parent_id: Mapped[int | None] = mapped_column(index=True, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)


class Question(Base):
    """
    One question. List-valued fields are stored as JSON text.
    """

    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    subject_id: Mapped[int] = mapped_column(index=True, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(
        String(32), index=True, default=MULTIPLE_CHOICE, nullable=False
    )
    status: Mapped[int] = mapped_column(index=True, default=STATUS_NEW, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    # image fields hold a URL, a relative path or an inline data URL
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    explanation_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, default=now_ms, nullable=False)

    options_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_images_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_questions_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sub_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answers_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    options = json_property("options_json", list)
    option_images = json_property("option_images_json", list)
    sub_questions = json_property("sub_questions_json", list)
    sub_answers = json_property("sub_answers_json", list)
    correct_answers = json_property("correct_answers_json", list)
