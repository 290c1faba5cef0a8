import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from assignment_engine.core.clock import get_clock
from assignment_engine.core.deps import get_db
from assignment_engine.core.security import hash_password
from assignment_engine.db.base import Base
from assignment_engine.main import app
from assignment_engine.models.assignment import Assignment
from assignment_engine.models.course import Course
from assignment_engine.models.enrollment import ENROLLMENT_DROPPED, Enrollment
from assignment_engine.models.extension import Extension
from assignment_engine.models.submission import Submission
from assignment_engine.models.user import User

TEST_DB_FILE = "test_assignment_engine.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PASSWORD = "password123"

# bcrypt is slow on purpose; hash once for every seeded user
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FrozenClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


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
def seed():
    """Seed a clean minimal dataset for each test and hand back the ids."""
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        db.query(Submission).delete()
        db.query(Extension).delete()
        db.query(Assignment).delete()
        db.query(Enrollment).delete()
        db.query(Course).delete()
        db.query(User).delete()
        db.commit()

        # Users
        def user(email, role):
            return User(email=email, full_name=email.split("@")[0], role=role, hashed_password=PASSWORD_HASH)

        student = user("student1@example.com", "student")
        student2 = user("student2@example.com", "student")
        dropped = user("dropped@example.com", "student")
        instructor = user("instructor1@example.com", "instructor")
        other_instructor = user("instructor2@example.com", "instructor")
        admin = user("admin@example.com", "admin")
        db.add_all([student, student2, dropped, instructor, other_instructor, admin])
        db.commit()

        # Courses
        course = Course(
            title="CS5004",
            instructor_id=instructor.id,
            is_published=True,
            duration_weeks=60,
            created_at=NOW - timedelta(weeks=1),
        )
        other_course = Course(
            title="CS5800",
            instructor_id=other_instructor.id,
            is_published=True,
            created_at=NOW - timedelta(weeks=1),
        )
        db.add_all([course, other_course])
        db.commit()

        # Enrollments
        db.add_all(
            [
                Enrollment(course_id=course.id, student_id=student.id),
                Enrollment(course_id=course.id, student_id=student2.id),
                Enrollment(course_id=course.id, student_id=dropped.id, status=ENROLLMENT_DROPPED),
            ]
        )
        db.commit()

        yield SimpleNamespace(
            student_id=student.id,
            student2_id=student2.id,
            dropped_id=dropped.id,
            instructor_id=instructor.id,
            other_instructor_id=other_instructor.id,
            admin_id=admin.id,
            course_id=course.id,
            other_course_id=other_course.id,
        )
    finally:
        db.close()


@pytest.fixture()
def clock():
    return FrozenClock(NOW)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def assignment_fields(course_id: int, **overrides) -> dict:
    """A field set that passes every rule at NOW."""
    fields = {
        "course_id": course_id,
        "title": "Essay 1",
        "description": "Write 500 words on recursion.",
        "due_date": NOW + timedelta(days=10),
        "allowed_formats": ["pdf", "docx"],
        "max_files": 2,
    }
    fields.update(overrides)
    return fields


def add_submission(db, assignment_id: int, student_id: int, submitted_at: datetime = NOW) -> Submission:
    """Stand-in for the intake collaborator: write a submission row directly."""
    s = Submission(assignment_id=assignment_id, student_id=student_id, content="done", submitted_at=submitted_at)
    db.add(s)
    db.commit()
    return s


@pytest.fixture()
def client(clock):
    """Test client that uses the test DB session and frozen clock via dependency overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def login(client, email: str, password: str = PASSWORD) -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
