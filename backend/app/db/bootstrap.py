from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "timetables": {"id", "semester_id", "batch_id", "status", "version", "metadata", "metrics"},
    "timetable_slots": {
        "id",
        "timetable_id",
        "day_of_week",
        "slot_index",
        "start_time",
        "end_time",
        "subject_id",
        "teacher_id",
        "color",
        "info",
    },
}

SLOT_CELL_INDEX = "uq_timetable_slots_cell"


def _ensure_slot_cell_index() -> None:
    """Tables created before the cell constraint existed get it as a unique index."""
    with engine.begin() as connection:
        inspector = inspect(connection)
        if "timetable_slots" not in set(inspector.get_table_names()):
            return
        known = {item["name"] for item in inspector.get_unique_constraints("timetable_slots")}
        known |= {item["name"] for item in inspector.get_indexes("timetable_slots")}
        if SLOT_CELL_INDEX in known:
            return
        connection.execute(
            text(
                f"CREATE UNIQUE INDEX {SLOT_CELL_INDEX} "
                "ON timetable_slots (timetable_id, day_of_week, slot_index)"
            )
        )
        logger.info("Created missing unique index %s", SLOT_CELL_INDEX)


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _ensure_slot_cell_index()
        _assert_required_columns()
    except (SQLAlchemyError, RuntimeError) as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema bootstrap failed")
        raise RuntimeError("Runtime schema bootstrap failed") from exc
