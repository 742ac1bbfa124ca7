import os
import tempfile
from pathlib import Path

# keep the default data dir out of the working tree
os.environ.setdefault("STUDY_DATA_DIR", tempfile.mkdtemp(prefix="study-bank-"))

import pytest
from sqlalchemy.orm import sessionmaker

from api.database import create_db_engine, init_db
from api.models.db import Question, Subject
from api.services.session_service import SessionManager


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def manager(tmp_path: Path) -> SessionManager:
    return SessionManager(tmp_path / "session.json")


@pytest.fixture()
def make_subject(db):
    def _make(name: str = "Math", parent_id: int | None = None) -> Subject:
        subject = Subject(name=name, parent_id=parent_id)
        db.add(subject)
        db.commit()
        db.refresh(subject)
        return subject

    return _make


@pytest.fixture()
def make_question(db):
    def _make(subject_id: int, content: str = "2 + 2 = ?", correct: str = "A", **extra) -> Question:
        question = Question(subject_id=subject_id, content=content, **extra)
        if "options" not in extra:
            question.options = ["4", "5", "6", "7"]
            question.option_images = [None] * 4
        if "correct_answers" not in extra:
            question.correct_answers = [correct]
        db.add(question)
        db.commit()
        db.refresh(question)
        return question

    return _make
