from datetime import date
from unittest.mock import MagicMock, patch

from pymongo.errors import ServerSelectionTimeoutError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import get_archive_store
from app.db.archive import MongoArchiveStore, NullArchiveStore
from app.main import app
from app.models.class_statistics import ClassStatistics
from app.models.student_progress import StudentProgress
from tests.conftest import ADA_ID, CLASSROOM_ID, EMPTY_CLASSROOM_ID, SCHOOL_ID, TestingSessionLocal

BODY = {"classroom_id": CLASSROOM_ID, "school_id": SCHOOL_ID}


def summary_rows(classroom_id: str = CLASSROOM_ID) -> list[ClassStatistics]:
    db = TestingSessionLocal()
    try:
        return db.query(ClassStatistics).filter(ClassStatistics.classroom_id == classroom_id).all()
    finally:
        db.close()


def failing_mongo_store() -> MongoArchiveStore:
    mongo = MagicMock()
    mongo.__getitem__.return_value.__getitem__.return_value.insert_one.side_effect = ServerSelectionTimeoutError(
        "localhost:27017: connection refused"
    )
    return MongoArchiveStore("mongodb://localhost:27017", "rls_guard_dog", "class_statistics", client=mongo)


def test_preflight_is_answered_with_cors_headers(client):
    r = client.options("/calculate-class-stats")
    assert r.status_code == 200
    assert r.text == "ok"
    assert r.headers["access-control-allow-origin"] == "*"


def test_browser_preflight_is_allowed(client):
    r = client.options(
        "/calculate-class-stats",
        headers={"Origin": "https://teacher.example.com", "Access-Control-Request-Method": "POST"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] in ("*", "https://teacher.example.com")


def test_missing_classroom_id_is_rejected_without_data_access(client, archive_store):
    with patch.object(Session, "query") as query:
        r = client.post("/calculate-class-stats", json={"school_id": SCHOOL_ID})

    assert r.status_code == 400
    assert r.json() == {"error": "classroom_id and school_id are required"}
    query.assert_not_called()
    assert archive_store.documents == []


def test_empty_identifiers_are_rejected(client):
    r = client.post("/calculate-class-stats", json={"classroom_id": "", "school_id": SCHOOL_ID})
    assert r.status_code == 400
    assert r.json()["error"] == "classroom_id and school_id are required"


def test_missing_body_is_rejected(client):
    r = client.post("/calculate-class-stats")
    assert r.status_code == 400
    assert r.json()["error"] == "classroom_id and school_id are required"


def test_malformed_body_is_rejected(client):
    r = client.post(
        "/calculate-class-stats",
        content="not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request body"


def test_empty_classroom_returns_no_data_without_writes(client, archive_store):
    r = client.post("/calculate-class-stats", json={"classroom_id": EMPTY_CLASSROOM_ID, "school_id": SCHOOL_ID})

    assert r.status_code == 200
    assert r.json() == {"message": "No progress data found for this classroom", "statistics": None}
    assert summary_rows(EMPTY_CLASSROOM_ID) == []
    assert archive_store.documents == []


def test_calculates_persists_and_archives(client, archive_store):
    r = client.post("/calculate-class-stats", json=BODY)
    assert r.status_code == 200, r.text

    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Class statistics calculated successfully"
    assert body["archive_status"] == "stored"

    stats = body["statistics"]
    assert stats["classroom_id"] == CLASSROOM_ID
    assert stats["school_id"] == SCHOOL_ID
    assert stats["average_score"] == 83.33
    assert stats["total_assignments"] == 3
    assert stats["total_students"] == 2
    assert stats["metadata"]["total_data_points"] == 3
    assert [a["assignment_name"] for a in stats["assignment_statistics"]] == ["HW1", "Quiz 1"]
    assert {s["student_name"] for s in stats["student_statistics"]} == {"Ada Lovelace", "Alan Turing"}

    rows = summary_rows()
    assert len(rows) == 1
    assert rows[0].average_score == 83.33
    assert rows[0].total_assignments == 3
    assert rows[0].total_students == 2
    assert rows[0].school_id == SCHOOL_ID

    assert len(archive_store.documents) == 1
    doc = archive_store.documents[0]
    assert doc["average_score"] == 83.33
    assert len(doc["student_statistics"]) == 2
    assert "created_at" in doc and "updated_at" in doc


def test_archive_failure_does_not_fail_the_run(client, archive_store):
    app.dependency_overrides[get_archive_store] = failing_mongo_store

    r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 200, r.text
    assert r.json()["success"] is True
    assert r.json()["archive_status"] == "failed"
    assert r.json()["statistics"]["average_score"] == 83.33
    assert len(summary_rows()) == 1


def test_archive_skipped_when_not_configured(client):
    app.dependency_overrides[get_archive_store] = NullArchiveStore

    r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 200
    assert r.json()["archive_status"] == "skipped"
    assert len(summary_rows()) == 1


def test_summary_write_failure_is_fatal_and_skips_archive(client, archive_store):
    with patch.object(Session, "commit", side_effect=SQLAlchemyError("insert rejected")):
        r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 500
    assert r.json()["error"] == "Internal server error"
    assert "insert rejected" in r.json()["details"]
    assert archive_store.documents == []
    assert summary_rows() == []


def test_read_failure_is_fatal(client, archive_store):
    with patch.object(Session, "query", side_effect=SQLAlchemyError("store unreachable")):
        r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 500
    assert r.json()["details"].startswith("Failed to fetch progress data")
    assert archive_store.documents == []


def test_repeated_runs_append_summary_rows(client):
    first = client.post("/calculate-class-stats", json=BODY).json()["statistics"]
    second = client.post("/calculate-class-stats", json=BODY).json()["statistics"]

    # same figures, only the timestamps move
    for key in ("calculation_date", "metadata"):
        first.pop(key)
        second.pop(key)
    assert first == second

    assert len(summary_rows()) == 2

    r = client.get(f"/classrooms/{CLASSROOM_ID}/statistics")
    assert r.status_code == 200
    listed = r.json()
    assert len(listed) == 2
    assert listed[0]["calculation_date"] >= listed[1]["calculation_date"]


def test_zero_max_score_record_is_excluded(client):
    db = TestingSessionLocal()
    try:
        db.add(
            StudentProgress(
                student_id=ADA_ID,
                classroom_id=CLASSROOM_ID,
                school_id=SCHOOL_ID,
                assignment_name="Imported",
                score=4,
                max_score=0,
                assignment_date=date(2026, 9, 10),
            )
        )
        db.commit()
    finally:
        db.close()

    r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 200
    stats = r.json()["statistics"]
    assert stats["average_score"] == 83.33
    assert stats["total_assignments"] == 3
    assert stats["metadata"]["total_data_points"] == 4
    assert stats["metadata"]["excluded_records"] == 1
    assert "Imported" not in [a["assignment_name"] for a in stats["assignment_statistics"]]


def test_summary_id_does_not_depend_on_refresh(client, archive_store):
    with patch.object(Session, "refresh", side_effect=SQLAlchemyError("connection dropped")):
        r = client.post("/calculate-class-stats", json=BODY)

    assert r.status_code == 200, r.text
    assert r.json()["archive_status"] == "stored"
    assert len(summary_rows()) == 1
    assert len(archive_store.documents) == 1
