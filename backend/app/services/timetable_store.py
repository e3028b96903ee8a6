from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import InvalidStatusError, ResourceNotFoundError, StorageError
from app.models.timetable import Timetable, TimetableSlot, TimetableStatus

logger = logging.getLogger(__name__)

VALID_STATUSES = [item.value for item in TimetableStatus]


def coerce_status(value: str | TimetableStatus) -> TimetableStatus:
    if isinstance(value, TimetableStatus):
        return value
    try:
        return TimetableStatus(value)
    except ValueError as exc:
        raise InvalidStatusError(str(value), VALID_STATUSES) from exc


def commit_or_rollback(db: Session, *, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Storage failure while trying to %s", action)
        raise StorageError(f"Could not {action}; no changes were saved") from exc


def next_version(db: Session, *, semester_id: str | None, batch_id: str | None) -> int:
    current = db.execute(
        select(func.max(Timetable.version)).where(
            Timetable.semester_id.is_not_distinct_from(semester_id),
            Timetable.batch_id.is_not_distinct_from(batch_id),
        )
    ).scalar()
    return (current or 0) + 1


def create_timetable(db: Session, timetable: Timetable, slots: list[TimetableSlot]) -> Timetable:
    """Insert a timetable and all of its slots, or nothing at all."""
    timetable.slots = list(slots)
    db.add(timetable)
    commit_or_rollback(db, action="create timetable")
    db.refresh(timetable)
    logger.info(
        "Stored timetable %s (version %s) with %s slot(s)",
        timetable.id,
        timetable.version,
        len(timetable.slots),
    )
    return timetable


def list_timetables(
    db: Session,
    *,
    semester_id: str | None = None,
    batch_id: str | None = None,
    status: str | TimetableStatus | None = None,
    include_slots: bool = False,
) -> list[Timetable]:
    query = select(Timetable).order_by(Timetable.updated_at.desc(), Timetable.id.desc())
    if semester_id:
        query = query.where(Timetable.semester_id == semester_id)
    if batch_id:
        query = query.where(Timetable.batch_id == batch_id)
    if status:
        query = query.where(Timetable.status == coerce_status(status))
    if include_slots:
        query = query.options(selectinload(Timetable.slots))
    return list(db.execute(query).scalars().all())


def get_timetable(db: Session, timetable_id: int, *, lock: bool = False) -> Timetable:
    query = select(Timetable).where(Timetable.id == timetable_id)
    if lock:
        # Serializes manual edits of one timetable; a no-op on SQLite.
        query = query.with_for_update()
    timetable = db.execute(query).scalars().first()
    if timetable is None:
        raise ResourceNotFoundError("Timetable", timetable_id)
    return timetable


def list_timetable_slots(db: Session, timetable_id: int) -> list[TimetableSlot]:
    get_timetable(db, timetable_id)
    return list(
        db.execute(
            select(TimetableSlot)
            .where(TimetableSlot.timetable_id == timetable_id)
            .order_by(TimetableSlot.day_of_week.asc(), TimetableSlot.slot_index.asc())
        )
        .scalars()
        .all()
    )


def update_timetable_status(db: Session, timetable_id: int, status: str | TimetableStatus) -> Timetable:
    # Any status may follow any other.
    new_status = coerce_status(status)
    timetable = get_timetable(db, timetable_id)
    previous = timetable.status
    timetable.status = new_status
    commit_or_rollback(db, action="update timetable status")
    db.refresh(timetable)
    logger.info("Timetable %s status %s -> %s", timetable_id, previous.value, new_status.value)
    return timetable


def delete_timetable(db: Session, timetable_id: int) -> None:
    timetable = get_timetable(db, timetable_id)
    db.delete(timetable)
    commit_or_rollback(db, action="delete timetable")
    logger.info("Deleted timetable %s", timetable_id)
