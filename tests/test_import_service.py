import base64
import io
import json
import zipfile

import pytest
from docx import Document

from api.models.db import Question, Subject
from api.services import import_service, store_service
from api.services.import_service import AUTO_SUBJECT, ImportFormat, detect_format, order_subjects
from errors import FormatError, PersistenceError, ValidationError
from models import SubjectDraft, UNASSIGNED_SUBJECT_ID

PIXEL = base64.b64decode("R0lGODlhAQABAAAAACw=")


def _archive() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(
            "metadata.json",
            json.dumps(
                {
                    "version": "1.0",
                    "subjects": [
                        {"id": 3, "parentId": 2, "name": "Fractions"},
                        {"id": 2, "parentId": 1, "name": "Arithmetic"},
                        {"id": 1, "parentId": None, "name": "Math"},
                    ],
                }
            ),
        )
        archive.writestr(
            "questions.json",
            json.dumps(
                [
                    {
                        "subjectId": 3,
                        "content": "1/2 + 1/2 = ?",
                        "questionType": "MULTIPLE_CHOICE",
                        "options": ["1", "2"],
                        "correctAnswers": ["A"],
                        "image": "images/half.gif",
                    },
                    {
                        "subjectId": 1,
                        "content": "Zero is even",
                        "questionType": "TRUE_FALSE",
                        "correctAnswers": ["TRUE"],
                    },
                    {
                        "subjectId": 99,
                        "content": "Orphan",
                        "options": ["a", "b"],
                        "correctAnswers": ["B"],
                    },
                ]
            ),
        )
        archive.writestr("images/half.gif", PIXEL)
    return buffer.getvalue()


def _scenario_json() -> bytes:
    return json.dumps(
        [
            {"Q": "1+1?", "1": "1", "2": "2", "3": "3", "4": "4", "A": "B"},
            {"Q": "capital?", "options": ["Paris", "Rome"], "correctAnswers": ["A"]},
        ]
    ).encode("utf-8")


def test_json_import_into_explicit_subject(db) -> None:
    db.add(Subject(id=5, name="General"))
    db.commit()

    report = import_service.import_questions(db, _scenario_json(), ImportFormat.JSON, target_subject_id=5)

    questions = store_service.list_all(db, Question)
    assert report.inserted_count == 2
    assert [q.subject_id for q in questions] == [5, 5]
    assert questions[0].correct_answers == ["B"]
    assert questions[1].correct_answers == ["A"]
    assert report.message == "Imported 2 questions."


def test_unknown_target_subject_is_rejected(db) -> None:
    with pytest.raises(ValidationError):
        import_service.import_questions(db, _scenario_json(), ImportFormat.JSON, target_subject_id=42)
    assert store_service.count(db, Question) == 0


def test_auto_mode_without_hierarchy_is_unassigned(db) -> None:
    report = import_service.import_questions(db, _scenario_json(), ImportFormat.JSON, target_subject_id=AUTO_SUBJECT)

    assert report.subject_count == 0
    assert {q.subject_id for q in store_service.list_all(db, Question)} == {UNASSIGNED_SUBJECT_ID}


def test_archive_import_creates_and_remaps_subjects(db) -> None:
    report = import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE)

    subjects = {s.name: s for s in store_service.list_all(db, Subject)}
    assert report.subject_count == 3
    assert subjects["Math"].parent_id is None
    assert subjects["Arithmetic"].parent_id == subjects["Math"].id
    assert subjects["Fractions"].parent_id == subjects["Arithmetic"].id

    questions = {q.content: q for q in store_service.list_all(db, Question)}
    assert questions["1/2 + 1/2 = ?"].subject_id == subjects["Fractions"].id
    assert questions["1/2 + 1/2 = ?"].image.startswith("data:image/gif;base64,")
    assert questions["Zero is even"].subject_id == subjects["Math"].id
    assert questions["Orphan"].subject_id == UNASSIGNED_SUBJECT_ID


def test_archive_import_twice_gives_independent_trees(db) -> None:
    import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE)
    import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE)

    subjects = store_service.list_all(db, Subject)
    assert len(subjects) == 6
    roots = [s for s in subjects if s.name == "Math"]
    assert len(roots) == 2
    first, second = (set(store_service.descendant_subject_ids(db, r.id)) for r in roots)
    assert len(first) == len(second) == 3
    assert not first & second


def test_archive_with_explicit_target_ignores_hierarchy(db, make_subject) -> None:
    target = make_subject("Inbox")

    report = import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE, target_subject_id=target.id)

    assert report.subject_count == 0
    assert store_service.count(db, Subject) == 1
    assert {q.subject_id for q in store_service.list_all(db, Question)} == {target.id}


def test_export_then_import_round_trip(db) -> None:
    import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE)
    math = store_service.query_equals(db, Subject, "name", "Math")[0]
    original = {
        q.content: q.correct_answers for q in store_service.questions_by_subject_recursive(db, math.id)
    }

    exported = import_service.export_subject(db, math.id)
    with zipfile.ZipFile(io.BytesIO(exported)) as archive:
        assert any(name.startswith("images/") for name in archive.namelist())

    for table in (Question, Subject):
        store_service.delete_where_in(db, table, "id", [row.id for row in store_service.list_all(db, table)])

    report = import_service.import_questions(db, exported, ImportFormat.ARCHIVE)

    assert report.subject_count == 3
    restored = {q.content: q.correct_answers for q in store_service.list_all(db, Question)}
    assert restored == original
    image = next(q.image for q in store_service.list_all(db, Question) if q.image)
    assert base64.b64decode(image.split(",", 1)[1]) == PIXEL


def test_failed_bulk_insert_removes_new_subjects(db, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_insert(db, records):
        raise PersistenceError("disk full")

    monkeypatch.setattr(store_service, "bulk_insert", broken_insert)

    with pytest.raises(PersistenceError):
        import_service.import_questions(db, _archive(), ImportFormat.ARCHIVE)
    assert store_service.count(db, Subject) == 0


def test_oversized_upload_is_rejected(db, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(import_service, "MAX_IMPORT_BYTES", 10)

    with pytest.raises(FormatError):
        import_service.import_questions(db, _scenario_json(), ImportFormat.JSON)


def test_import_file_detects_docx(db) -> None:
    doc = Document()
    for line in ["1. Pick B", "A. no", "B. yes", "Answer: B"]:
        doc.add_paragraph(line)
    buffer = io.BytesIO()
    doc.save(buffer)

    report = import_service.import_file(db, "upload.bin", buffer.getvalue())

    assert report.format is ImportFormat.DOCUMENT
    assert report.inserted_count == 1


@pytest.mark.parametrize(
    ("filename", "data", "expected"),
    [
        ("bank.JSON", b"[]", ImportFormat.JSON),
        ("bank.csv", b"", ImportFormat.CSV),
        ("notes.txt", b"", ImportFormat.TEXT),
        (None, b'{"questions": []}', ImportFormat.JSON),
    ],
)
def test_detect_format(filename, data, expected) -> None:
    assert detect_format(filename, data) is expected


def test_detect_format_sniffs_archives() -> None:
    assert detect_format("upload", _archive()) is ImportFormat.ARCHIVE
    with pytest.raises(FormatError):
        detect_format("upload", b"\x00\x01binary")


def test_order_subjects_handles_depth_and_cycles() -> None:
    drafts = [
        SubjectDraft(source_id=4, name="d", parent_id=3),
        SubjectDraft(source_id=3, name="c", parent_id=2),
        SubjectDraft(source_id=2, name="b", parent_id=1),
        SubjectDraft(source_id=1, name="a"),
        SubjectDraft(source_id=7, name="x", parent_id=8),
        SubjectDraft(source_id=8, name="y", parent_id=7),
    ]
    ordered = [s.name for s in order_subjects(drafts)]

    assert ordered[:4] == ["a", "b", "c", "d"]
    assert ordered[4:] == ["x", "y"]


def test_subject_cycle_keeps_one_parent_link() -> None:
    drafts = [
        SubjectDraft(source_id=7, name="x", parent_id=8),
        SubjectDraft(source_id=8, name="y", parent_id=7),
        SubjectDraft(source_id=9, name="z", parent_id=8),
    ]

    ordered = order_subjects(drafts)

    assert [(s.name, s.parent_id) for s in ordered] == [("x", None), ("y", 7), ("z", 8)]
    # the caller's drafts are left alone
    assert drafts[0].parent_id == 8
