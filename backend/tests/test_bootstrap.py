import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from app.db import bootstrap


def _raise_error(message: str):
    raise RuntimeError(message)


@pytest.fixture()
def empty_engine(monkeypatch):
    engine = create_engine("sqlite+pysqlite://", poolclass=StaticPool)
    monkeypatch.setattr(bootstrap, "engine", engine)
    yield engine
    engine.dispose()


def test_bootstrap_creates_tables_and_cell_index(empty_engine):
    bootstrap.ensure_runtime_schema()

    inspector = inspect(empty_engine)
    assert {"timetables", "timetable_slots", "subjects"} <= set(inspector.get_table_names())
    unique = {item["name"] for item in inspector.get_unique_constraints("timetable_slots")}
    assert bootstrap.SLOT_CELL_INDEX in unique


def test_bootstrap_adds_a_missing_cell_index(empty_engine):
    with empty_engine.begin() as connection:
        connection.execute(
            text(
                "CREATE TABLE timetable_slots (id VARCHAR(36) PRIMARY KEY, timetable_id INTEGER, "
                "day_of_week INTEGER, slot_index INTEGER, start_time VARCHAR(5), end_time VARCHAR(5), "
                "subject_id VARCHAR(36), teacher_id VARCHAR(36), color VARCHAR(20), info JSON)"
            )
        )

    bootstrap.ensure_runtime_schema()

    indexes = {item["name"]: item for item in inspect(empty_engine).get_indexes("timetable_slots")}
    assert indexes[bootstrap.SLOT_CELL_INDEX]["unique"]


def test_runtime_schema_bootstrap_raises_on_validation_failure(monkeypatch):
    monkeypatch.setattr(bootstrap.Base.metadata, "create_all", lambda bind: None)
    monkeypatch.setattr(bootstrap, "_ensure_slot_cell_index", lambda: None)
    monkeypatch.setattr(
        bootstrap,
        "_assert_required_columns",
        lambda: _raise_error("missing required schema"),
    )

    with pytest.raises(RuntimeError, match="Runtime schema bootstrap failed"):
        bootstrap.ensure_runtime_schema()
