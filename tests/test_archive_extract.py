import io
import json
import zipfile

import pytest

from archive_extract import extract_archive
from errors import FormatError


def _archive(questions=None, metadata=None, images=None) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        if metadata is not None:
            archive.writestr("metadata.json", json.dumps(metadata))
        if questions is not None:
            archive.writestr("questions.json", json.dumps(questions))
        for name, blob in (images or {}).items():
            archive.writestr(name, blob)
    return buffer.getvalue()


def test_subjects_questions_and_images() -> None:
    data = _archive(
        metadata={
            "version": "1.0",
            "subjects": [
                {"id": 11, "parentId": 10, "name": "Algebra", "level": "10"},
                {"id": 10, "parentId": None, "name": "Math", "examTerm": "Final"},
                {"id": 12, "name": ""},
            ],
        },
        questions=[
            {
                "subjectId": 11,
                "content": "x + 1 = 2",
                "questionType": "MULTIPLE_CHOICE",
                "options": ["0", "1"],
                "optionImages": ["images/opt.gif", None],
                "correctAnswers": ["B"],
                "image": "images/q.gif",
                "explanationImage": "https://example.com/e.png",
            },
            {"subjectId": 10, "content": "", "options": ["a", "b"], "correctAnswers": ["A"]},
        ],
        images={"images/q.gif": b"GIF89a-q", "images/opt.gif": b"GIF89a-opt"},
    )
    bundle = extract_archive(data)

    assert [(s.source_id, s.parent_id, s.name) for s in bundle.subjects] == [(11, 10, "Algebra"), (10, None, "Math")]
    assert bundle.subjects[1].exam_term == "Final"
    assert len(bundle.questions) == 1
    assert bundle.skipped == 1

    question = bundle.questions[0]
    assert question.subject_id == 11
    assert question.image.startswith("data:image/gif;base64,")
    assert question.option_images[0].startswith("data:image/gif;base64,")
    assert question.option_images[1] is None
    # unmatched references are left as they are
    assert question.explanation_image == "https://example.com/e.png"
    assert len(bundle.assets) == 2


def test_metadata_is_optional() -> None:
    bundle = extract_archive(_archive(questions=[{"content": "Q", "options": ["a", "b"], "correctAnswers": ["A"]}]))

    assert bundle.subjects == []
    assert bundle.questions[0].subject_id is None


@pytest.mark.parametrize(
    "data",
    [
        b"not a zip",
        _archive(metadata={"subjects": []}),
        _archive(questions={"not": "a list"}),
    ],
)
def test_structural_errors_raise(data: bytes) -> None:
    with pytest.raises(FormatError):
        extract_archive(data)


def test_invalid_questions_json_raises() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("questions.json", "{broken")
    with pytest.raises(FormatError):
        extract_archive(buffer.getvalue())


def test_table_answers_written_as_strings() -> None:
    data = _archive(
        questions=[
            {
                "subjectId": 1,
                "content": "Mark each",
                "questionType": "TRUE_FALSE_TABLE",
                "subQuestions": ["a", "b", "c", "d"],
                "subAnswers": ["false", "TRUE", "F", True],
            }
        ]
    )

    (question,) = extract_archive(data).questions

    assert question.sub_answers == [False, True, False, True]
