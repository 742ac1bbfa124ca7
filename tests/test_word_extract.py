import io

import pytest
from docx import Document

from errors import FormatError
from word_extract import extract_document


def _docx(lines: list[str], table_rows: list[str] | None = None) -> bytes:
    doc = Document()
    for line in lines:
        doc.add_paragraph(line)
    if table_rows:
        table = doc.add_table(rows=len(table_rows), cols=1)
        for index, text in enumerate(table_rows):
            table.cell(index, 0).text = text
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def test_extract_docx_questions() -> None:
    data = _docx(
        [
            "Câu 1: Thủ đô của Việt Nam?",
            "A. Hà Nội",
            "B. Huế",
            "C. Đà Nẵng",
            "Đáp án: A",
            "Question 2) Pick the even numbers",
            "A) 2",
            "B) 3",
            "C) 4",
            "Answer: A, C",
        ]
    )
    bundle = extract_document(data, subject_id=7)

    assert len(bundle.questions) == 2
    first, second = bundle.questions
    assert first.content == "Thủ đô của Việt Nam?"
    assert first.options == ["Hà Nội", "Huế", "Đà Nẵng"]
    assert first.correct_answers == ["A"]
    assert second.correct_answers == ["A", "C"]
    assert {q.subject_id for q in bundle.questions} == {7}


def test_table_cells_are_read_in_body_order() -> None:
    data = _docx(["1. Intro question", "A. yes", "B. no"], table_rows=["2. In a table", "A. left", "B. right"])
    bundle = extract_document(data, subject_id=0)

    assert [q.content for q in bundle.questions] == ["Intro question", "In a table"]


def test_blocks_with_too_few_options_are_dropped() -> None:
    text = "\n".join(
        [
            "Some preamble that is not a question",
            "1. Only one option",
            "A. lonely",
            "2. Two options",
            "A. first",
            "B. second",
            "Answer: B",
            "3. No options at all",
        ]
    )
    bundle = extract_document(text.encode("utf-8"), subject_id=0)

    assert [q.content for q in bundle.questions] == ["Two options"]
    assert bundle.questions[0].correct_answers == ["B"]
    assert bundle.skipped == 2


def test_missing_answer_defaults_to_first_option() -> None:
    bundle = extract_document("Question 1 Which?\nA. this\nB. that".encode("utf-8"), subject_id=0)

    assert bundle.questions[0].content == "Which?"
    assert bundle.questions[0].correct_answers == ["A"]


def test_bare_number_needs_delimiter() -> None:
    bundle = extract_document("2024 was a leap year\nA. yes\nB. no".encode("utf-8"), subject_id=0)

    assert bundle.questions == []


def test_non_document_bytes_raise() -> None:
    with pytest.raises(FormatError):
        extract_document(b"\xff\xfe\x00garbage", subject_id=0)
