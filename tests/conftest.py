import os
from datetime import date

TEST_DB_FILE = "test_classroom_stats.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

# point the app's own engine at the test DB before anything imports it
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["MONGODB_URI"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.deps import get_archive_store, get_db  # noqa: E402
from app.db.archive import InMemoryArchiveStore  # noqa: E402
from app.db.base_class import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.class_statistics import ClassStatistics  # noqa: E402
from app.models.classroom import Classroom  # noqa: E402
from app.models.profile import Profile  # noqa: E402
from app.models.school import School  # noqa: E402
from app.models.student_enrollment import StudentEnrollment  # noqa: E402
from app.models.student_progress import StudentProgress  # noqa: E402

SCHOOL_ID = "school-1"
CLASSROOM_ID = "classroom-1"
EMPTY_CLASSROOM_ID = "classroom-2"
ADA_ID = "student-ada"
ALAN_ID = "student-alan"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data():
    """Seed one school, two classrooms and three graded records in classroom-1.

    Ada: HW1 80/100 (80%), Quiz 1 8/10 (80%). Alan: HW1 45/50 (90%).
    Ada and Alan are enrolled in classroom-1, only Alan in classroom-2.
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        db.query(ClassStatistics).delete()
        db.query(StudentProgress).delete()
        db.query(StudentEnrollment).delete()
        db.query(Classroom).delete()
        db.query(Profile).delete()
        db.query(School).delete()
        db.commit()

        db.add(School(id=SCHOOL_ID, name="Northside High"))
        db.commit()

        teacher = Profile(id="teacher-1", email="teacher1@example.com", full_name="Grace Hopper", role="teacher", school_id=SCHOOL_ID)
        ada = Profile(id=ADA_ID, email="ada@example.com", full_name="Ada Lovelace", role="student", school_id=SCHOOL_ID)
        alan = Profile(id=ALAN_ID, email="alan@example.com", full_name="Alan Turing", role="student", school_id=SCHOOL_ID)
        db.add_all([teacher, ada, alan])
        db.commit()

        db.add_all(
            [
                Classroom(id=CLASSROOM_ID, name="Algebra I", school_id=SCHOOL_ID, teacher_id="teacher-1", grade_level=9),
                Classroom(id=EMPTY_CLASSROOM_ID, name="Geometry", school_id=SCHOOL_ID, teacher_id="teacher-1"),
            ]
        )
        db.commit()

        db.add_all(
            [
                StudentEnrollment(student_id=ADA_ID, classroom_id=CLASSROOM_ID, school_id=SCHOOL_ID),
                StudentEnrollment(student_id=ALAN_ID, classroom_id=CLASSROOM_ID, school_id=SCHOOL_ID),
                StudentEnrollment(student_id=ALAN_ID, classroom_id=EMPTY_CLASSROOM_ID, school_id=SCHOOL_ID),
            ]
        )
        db.commit()

        db.add_all(
            [
                StudentProgress(
                    student_id=ADA_ID,
                    classroom_id=CLASSROOM_ID,
                    school_id=SCHOOL_ID,
                    assignment_name="HW1",
                    score=80,
                    max_score=100,
                    assignment_date=date(2026, 9, 1),
                ),
                StudentProgress(
                    student_id=ALAN_ID,
                    classroom_id=CLASSROOM_ID,
                    school_id=SCHOOL_ID,
                    assignment_name="HW1",
                    score=45,
                    max_score=50,
                    assignment_date=date(2026, 9, 1),
                ),
                StudentProgress(
                    student_id=ADA_ID,
                    classroom_id=CLASSROOM_ID,
                    school_id=SCHOOL_ID,
                    assignment_name="Quiz 1",
                    score=8,
                    max_score=10,
                    assignment_date=date(2026, 9, 8),
                    notes="open book",
                ),
            ]
        )
        db.commit()

        yield
    finally:
        db.close()


@pytest.fixture()
def archive_store():
    return InMemoryArchiveStore()


@pytest.fixture()
def client(archive_store):
    """Test client that uses the test DB session and an in-memory archive."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_archive_store] = lambda: archive_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
