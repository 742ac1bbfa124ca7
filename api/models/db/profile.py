"""
Tables that only travel through backup/restore: profile, reminders and the
property options used to label subjects.
"""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from api.database import Base
from api.models.db.json_fields import json_property


class UserProfile(Base):
    __tablename__ = "user_profile"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    gender: Mapped[str] = mapped_column(String(32), default="", nullable=False)
    birth_year: Mapped[int | None] = mapped_column(nullable=True)
    education_level: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)


class Reminder(Base):
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    message: Mapped[str] = mapped_column(Text, default="", nullable=False)
    time: Mapped[str] = mapped_column(String(5), default="", nullable=False)  # HH:mm
    is_active: Mapped[bool] = mapped_column(index=True, default=True, nullable=False)
    days_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    days = json_property("days_json", list)  # 1=Sun, 2=Mon...


class PropertyOption(Base):
    __tablename__ = "property_options"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(32), index=True, nullable=False)  # level | type | examTerm
