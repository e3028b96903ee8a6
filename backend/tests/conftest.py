import os

# Settings are read at import time; keep the app off any real database.
os.environ["DATABASE_URL"] = "sqlite+pysqlite://"
os.environ["BOOTSTRAP_SCHEMA_ON_STARTUP"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_db  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.main import app  # noqa: E402
from app.models.academic import Semester, Student, Subject, Teacher  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def catalog(db_session):
    """Two semesters in two batches, three teachers and one student.

    sem-1 / batch-1 subjects:
      sub-a  taught by t-1, 2 sessions per week
      sub-b  taught by t-1 and t-2 (t-2 preferred), 3 credits
      sub-c  no teacher assigned
    sem-2 / batch-2 subjects:
      sub-x  taught by t-1, 1 session per week
    """
    t1 = Teacher(id="t-1", name="Ada Lovelace", email="ada@example.com")
    t2 = Teacher(id="t-2", name="Alan Turing", email="alan@example.com")
    t3 = Teacher(id="t-3", name="Grace Hopper", email="grace@example.com")
    db_session.add_all(
        [
            Semester(id="sem-1", name="Semester 1", number=1, batch_id="batch-1"),
            Semester(id="sem-2", name="Semester 3", number=3, batch_id="batch-2"),
            Semester(id="sem-empty", name="Semester 5", number=5, batch_id="batch-3"),
            t1,
            t2,
            t3,
            Subject(
                id="sub-a",
                code="MA101",
                name="Calculus",
                semester_id="sem-1",
                batch_id="batch-1",
                sessions_per_week=2,
                teachers=[t1],
            ),
            Subject(
                id="sub-b",
                code="CS101",
                name="Programming",
                semester_id="sem-1",
                batch_id="batch-1",
                credits=3,
                preferred_teacher_id="t-2",
                teachers=[t1, t2],
            ),
            Subject(id="sub-c", code="HS101", name="Ethics", semester_id="sem-1", batch_id="batch-1"),
            Subject(
                id="sub-x",
                code="CS301",
                name="Compilers",
                semester_id="sem-2",
                batch_id="batch-2",
                sessions_per_week=1,
                teachers=[t1],
            ),
            Student(id="stu-1", name="Lin", batch_id="batch-1", active_semester_id="sem-1", section="A"),
            Student(id="stu-2", name="Sam", batch_id="batch-9", active_semester_id="sem-9", section=None),
        ]
    )
    db_session.commit()
    return {"teachers": ["t-1", "t-2", "t-3"], "semester_id": "sem-1", "batch_id": "batch-1"}
