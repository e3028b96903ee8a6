from __future__ import annotations

import logging

from sqlalchemy import case, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import AppError, ResourceNotFoundError, UpstreamUnavailableError
from app.models.timetable import Timetable, TimetableSlot, TimetableStatus
from app.services.roster import StudentDirectory, StudentPlacement

logger = logging.getLogger(__name__)

_CATALOG_NAMES = (selectinload(TimetableSlot.subject), selectinload(TimetableSlot.teacher))


def get_teacher_timetable(db: Session, teacher_id: str) -> list[TimetableSlot]:
    """Every slot taught by ``teacher_id`` outside archived timetables."""
    return list(
        db.execute(
            select(TimetableSlot)
            .options(*_CATALOG_NAMES)
            .join(Timetable, Timetable.id == TimetableSlot.timetable_id)
            .where(
                TimetableSlot.teacher_id == teacher_id,
                Timetable.status != TimetableStatus.archived,
            )
            .order_by(
                TimetableSlot.day_of_week.asc(),
                TimetableSlot.slot_index.asc(),
                TimetableSlot.timetable_id.asc(),
            )
        )
        .scalars()
        .all()
    )


def _lookup_student(directory: StudentDirectory, student_id: str) -> StudentPlacement:
    try:
        placement = directory.lookup_student(student_id)
    except AppError:
        raise
    except Exception as exc:
        logger.warning("Student directory lookup for %s failed", student_id, exc_info=True)
        raise UpstreamUnavailableError("Student directory unavailable", details={"student_id": student_id}) from exc
    if placement is None:
        raise ResourceNotFoundError("Student", student_id)
    return placement


def get_student_timetable(db: Session, student_id: str, directory: StudentDirectory) -> list[TimetableSlot]:
    """Slots of the student's current timetable visible to their section.

    A published timetable wins over an active one; within a status the most
    recently updated timetable is used.
    """
    placement = _lookup_student(directory, student_id)
    if not placement.active_semester_id and not placement.batch_id:
        return []

    query = select(Timetable.id).where(
        Timetable.status.in_((TimetableStatus.published, TimetableStatus.active))
    )
    if placement.active_semester_id:
        query = query.where(Timetable.semester_id == placement.active_semester_id)
    if placement.batch_id:
        query = query.where(Timetable.batch_id == placement.batch_id)
    query = query.order_by(
        case((Timetable.status == TimetableStatus.published, 0), else_=1),
        Timetable.updated_at.desc(),
        Timetable.id.desc(),
    )

    timetable_id = db.execute(query.limit(1)).scalar()
    if timetable_id is None:
        return []

    section_filter = TimetableSlot.section.is_(None)
    if placement.section:
        section_filter = or_(TimetableSlot.section == placement.section, section_filter)

    return list(
        db.execute(
            select(TimetableSlot)
            .options(*_CATALOG_NAMES)
            .where(TimetableSlot.timetable_id == timetable_id, section_filter)
            .order_by(TimetableSlot.day_of_week.asc(), TimetableSlot.slot_index.asc())
        )
        .scalars()
        .all()
    )
