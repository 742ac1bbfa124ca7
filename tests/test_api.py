import io
import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api.app import app
from api.database import get_db
from api.dependencies import get_session_manager


@pytest.fixture()
def client(engine, manager):
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_session_manager] = lambda: manager
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, payload, filename="bank.json", **form):
    files = {"file": (filename, io.BytesIO(json.dumps(payload).encode("utf-8")), "application/json")}
    return client.post("/api/imports", files=files, data=form)


def test_import_and_browse_subject(client) -> None:
    subject = client.post("/api/subjects", json={"name": "Math"}).json()

    response = _upload(
        client,
        [
            {"Q": "1+1?", "1": "1", "2": "2", "3": "3", "4": "4", "A": "B"},
            {"Q": "capital?", "options": ["Paris", "Rome"], "correctAnswers": ["A"]},
            {"Q": ""},
        ],
        subjectId=str(subject["id"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["insertedCount"] == 2
    assert body["skipped"] == 1
    assert body["format"] == "json"

    questions = client.get(f"/api/subjects/{subject['id']}/questions").json()
    assert [q["correctAnswers"] for q in questions] == [["B"], ["A"]]

    status = client.patch(f"/api/questions/{questions[0]['id']}/status", json={"status": 1})
    assert status.json()["status"] == 1


def test_errors_render_single_detail(client) -> None:
    response = _upload(client, [{"Q": "x", "options": ["a", "b"]}], subjectId="777")
    assert response.status_code == 422
    assert response.json() == {"detail": "Target subject 777 does not exist"}

    broken = client.post(
        "/api/imports",
        files={"file": ("bank.json", io.BytesIO(b"{oops"), "application/json")},
    )
    assert broken.status_code == 400
    assert broken.json()["detail"].startswith("Invalid JSON")

    assert client.get("/api/results/5").status_code == 404
    assert client.get("/api/session/answer").status_code == 405


def test_exam_round_trip_over_http(client) -> None:
    subject = client.post("/api/subjects", json={"name": "Math"}).json()
    _upload(
        client,
        [{"Q": f"Q{i}", "options": ["a", "b"], "A": "A"} for i in range(3)],
        subjectId=str(subject["id"]),
    )

    started = client.post("/api/session", json={"subjectId": subject["id"], "count": 3, "minutes": 5})
    assert started.status_code == 200
    session = started.json()
    assert session["timeLeft"] == 300

    for question in session["questions"]:
        client.put("/api/session/answer", json={"questionId": question["id"], "answer": "A"})
    outcome = client.post("/api/session/submit").json()

    assert outcome["finished"] is True
    assert outcome["subjectResult"]["score"] == 10.0
    assert client.get("/api/session").json() == {"session": None}

    results = client.get("/api/results").json()
    assert [r["id"] for r in results] == [outcome["resultId"]]
    assert results[0]["passed"] is True

    review = client.get(f"/api/results/{outcome['resultId']}/review", params={"filter": "correct"}).json()
    assert len(review["items"]) == 3

    retake = client.post(f"/api/results/{outcome['resultId']}/retake").json()
    assert retake["name"].startswith("Retake: ")
    assert retake["timeLeft"] == 45 * 60


def test_exam_config_and_export(client) -> None:
    subject = client.post("/api/subjects", json={"name": "Physics", "level": "12"}).json()
    _upload(client, [{"Q": "g?", "options": ["9.8", "10"], "A": "A"}], subjectId=str(subject["id"]))

    config = client.post(
        "/api/exam-configs",
        json={"name": "Mock", "subjects": [{"subjectId": subject["id"], "count": 5, "time": 10}]},
    ).json()
    assert config["subjects"][0]["subjectName"] == "Physics"

    session = client.post("/api/session", json={"configId": config["id"]}).json()
    assert session["configs"][0]["count"] == 1

    exported = client.get(f"/api/subjects/{subject['id']}/export")
    assert exported.headers["content-type"] == "application/zip"
    reimported = client.post(
        "/api/imports",
        files={"file": ("physics.zip", io.BytesIO(exported.content), "application/zip")},
    ).json()
    assert reimported["insertedCount"] == 1
    assert reimported["subjectCount"] == 1


def test_backup_and_restore_over_http(client) -> None:
    client.post("/api/subjects", json={"name": "Math"})
    backup = client.get("/api/backup").json()

    client.post("/api/subjects", json={"name": "Extra"})
    restored = client.post("/api/backup/restore", json=backup).json()

    assert restored["counts"]["subjects"] == 1
    assert [s["name"] for s in client.get("/api/subjects").json()] == ["Math"]


def test_subject_delete_removes_subtree(client) -> None:
    root = client.post("/api/subjects", json={"name": "Math"}).json()
    child = client.post("/api/subjects", json={"name": "Algebra", "parentId": root["id"]}).json()
    _upload(client, [{"Q": "x?", "options": ["a", "b"], "A": "A"}], subjectId=str(child["id"]))

    deleted = client.delete(f"/api/subjects/{root['id']}").json()

    assert deleted == {"status": "deleted", "subjects": 2, "questions": 1}
    assert client.get("/api/subjects").json() == []


def test_template_download(client) -> None:
    response = client.get("/api/imports/template")

    assert response.status_code == 200
    assert response.content[:2] == b"PK"


def test_create_and_edit_single_question(client) -> None:
    subject = client.post("/api/subjects", json={"name": "Math"}).json()

    created = client.post(
        "/api/questions",
        json={"subjectId": subject["id"], "content": "2 + 3 = ?", "options": ["4", "5"], "correctAnswers": ["b"]},
    )
    assert created.status_code == 200
    question = created.json()
    assert question["correctAnswers"] == ["B"]
    assert question["optionImages"] == [None, None]

    edited = client.put(
        f"/api/questions/{question['id']}",
        json={
            "subjectId": subject["id"],
            "content": "Rate each statement",
            "questionType": "TRUE_FALSE_TABLE",
            "subQuestions": ["1 is odd", "2 is odd"],
            "subAnswers": [True, False],
        },
    ).json()
    assert edited["id"] == question["id"]
    assert edited["questionType"] == "TRUE_FALSE_TABLE"
    assert edited["options"] == []
    assert [q["id"] for q in client.get(f"/api/subjects/{subject['id']}/questions").json()] == [question["id"]]


@pytest.mark.parametrize(
    "payload",
    [
        {"content": "x?", "options": ["a", "b"], "correctAnswers": ["C"]},
        {"content": "x?", "questionType": "TRUE_FALSE_TABLE", "subQuestions": ["s"], "subAnswers": []},
        {"content": "x?", "questionType": "ESSAY"},
    ],
)
def test_create_question_enforces_type_rules(client, payload) -> None:
    subject = client.post("/api/subjects", json={"name": "Math"}).json()

    response = client.post("/api/questions", json={"subjectId": subject["id"], **payload})

    assert response.status_code == 422
    assert response.json()["detail"].startswith("Invalid question")
    assert client.get(f"/api/subjects/{subject['id']}/questions").json() == []


def test_create_question_needs_existing_subject(client) -> None:
    response = client.post("/api/questions", json={"subjectId": 404, "content": "x?", "options": ["a", "b"]})

    assert response.status_code == 422
    assert client.put("/api/questions/9", json={"subjectId": 404, "content": "x?"}).status_code == 404


def test_replace_exam_config(client) -> None:
    math = client.post("/api/subjects", json={"name": "Math"}).json()
    physics = client.post("/api/subjects", json={"name": "Physics"}).json()
    config = client.post(
        "/api/exam-configs",
        json={"name": "Mock", "subjects": [{"subjectId": math["id"], "count": 5, "time": 10}]},
    ).json()

    replaced = client.put(
        f"/api/exam-configs/{config['id']}",
        json={
            "name": "Final",
            "level": "12",
            "subjects": [
                {"subjectId": physics["id"], "count": 3, "time": 15},
                {"subjectId": math["id"], "subjectName": "Algebra", "count": 2, "time": 5},
            ],
        },
    ).json()

    assert replaced["id"] == config["id"]
    assert replaced["name"] == "Final"
    assert [(s["subjectName"], s["count"]) for s in replaced["subjects"]] == [("Physics", 3), ("Algebra", 2)]
    assert len(client.get("/api/exam-configs").json()) == 1

    unknown = client.put(
        f"/api/exam-configs/{config['id']}",
        json={"name": "Bad", "subjects": [{"subjectId": 999, "count": 1, "time": 1}]},
    )
    assert unknown.status_code == 422
    assert client.get(f"/api/exam-configs/{config['id']}").json()["name"] == "Final"
    assert client.put("/api/exam-configs/77", json=replaced).status_code == 404
