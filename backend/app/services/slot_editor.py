"""Conflict-checked manual edits of persisted timetable slots."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidGridReferenceError,
    InvalidInputError,
    ResourceNotFoundError,
    SlotConflictError,
)
from app.models.academic import Subject, Teacher
from app.models.timetable import Timetable, TimetableSlot
from app.schemas.timetable import TimetableSlotCreate, TimetableSlotUpdate
from app.services.conflict_index import CELL_OCCUPIED, ClaimResult, ConflictIndex
from app.services.grid import DayDefinition, SlotDefinition, resolve_day, resolve_slot
from app.services.subject_colors import color_for
from app.services.timetable_store import commit_or_rollback, get_timetable

logger = logging.getLogger(__name__)

# None on these fields means "leave unchanged" in a patch.
REQUIRED_PATCH_FIELDS = ("day_of_week", "slot_index", "subject_id", "teacher_id")


@dataclass(frozen=True)
class CatalogCheck:
    subject: Subject
    teacher: Teacher
    teacher_matches_subject: bool


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _resolve_cell(timetable: Timetable, day_of_week: int, slot_index: int) -> tuple[DayDefinition, SlotDefinition]:
    day = resolve_day(timetable, day_of_week)
    if day is None:
        raise InvalidGridReferenceError("day_of_week", day_of_week)
    slot = resolve_slot(timetable, slot_index)
    if slot is None:
        raise InvalidGridReferenceError("slot_index", slot_index)
    return day, slot


def _check_catalog(db: Session, timetable: Timetable, subject_id: str, teacher_id: str) -> CatalogCheck:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise ResourceNotFoundError("Subject", subject_id)
    if timetable.semester_id and subject.semester_id and subject.semester_id != timetable.semester_id:
        raise InvalidInputError(
            "Subject belongs to a different semester",
            details={"subject_id": subject_id, "semester_id": timetable.semester_id},
        )
    if timetable.batch_id and subject.batch_id and subject.batch_id != timetable.batch_id:
        raise InvalidInputError(
            "Subject belongs to a different batch",
            details={"subject_id": subject_id, "batch_id": timetable.batch_id},
        )

    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise ResourceNotFoundError("Teacher", teacher_id)
    matches = any(item.id == teacher_id for item in subject.teachers)
    return CatalogCheck(subject=subject, teacher=teacher, teacher_matches_subject=matches)


def _raise_conflict(timetable_id: int, result: ClaimResult) -> None:
    occupant = result.occupant
    logger.warning(
        "Rejected slot edit on timetable %s: %s (slot %s)",
        timetable_id,
        result.rule,
        occupant.slot_id if occupant else None,
    )
    raise SlotConflictError(
        result.rule,
        occupant.slot_id if occupant else None,
        occupant.timetable_id if occupant else None,
    )


def _flush_or_conflict(db: Session, timetable_id: int, day_of_week: int, slot_index: int) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        occupant_id = db.execute(
            select(TimetableSlot.id).where(
                TimetableSlot.timetable_id == timetable_id,
                TimetableSlot.day_of_week == day_of_week,
                TimetableSlot.slot_index == slot_index,
            )
        ).scalar()
        logger.warning("Cell (%s, %s) of timetable %s was taken concurrently", day_of_week, slot_index, timetable_id)
        raise SlotConflictError(CELL_OCCUPIED, occupant_id, timetable_id) from exc


def _get_owned_slot(db: Session, timetable_id: int, slot_id: str) -> TimetableSlot:
    slot = db.execute(
        select(TimetableSlot).where(TimetableSlot.id == slot_id, TimetableSlot.timetable_id == timetable_id)
    ).scalars().first()
    if slot is None:
        raise ResourceNotFoundError("Timetable slot", slot_id)
    return slot


def create_slot(db: Session, timetable_id: int, payload: TimetableSlotCreate) -> TimetableSlot:
    timetable = get_timetable(db, timetable_id, lock=True)
    day, grid_slot = _resolve_cell(timetable, payload.day_of_week, payload.slot_index)
    catalog = _check_catalog(db, timetable, payload.subject_id, payload.teacher_id)

    index = ConflictIndex.build(db, timetable_id)
    result = index.claim(day.index, grid_slot.slot_index, payload.teacher_id)
    if not result.ok:
        _raise_conflict(timetable_id, result)

    slot = TimetableSlot(
        timetable_id=timetable_id,
        semester_id=timetable.semester_id or catalog.subject.semester_id,
        day_of_week=day.index,
        day_name=day.name,
        slot_index=grid_slot.slot_index,
        start_time=grid_slot.start_time,
        end_time=grid_slot.end_time,
        subject_id=payload.subject_id,
        teacher_id=payload.teacher_id,
        section=payload.section if payload.section is not None else catalog.subject.section,
        room=payload.room,
        session_label=payload.session_label or grid_slot.label,
        color=payload.color or color_for(db, timetable_id, payload.subject_id),
        info={
            **payload.info,
            "manual": True,
            "teacher_matches_subject": catalog.teacher_matches_subject,
            "added_at": _now_iso(),
        },
    )
    db.add(slot)
    _flush_or_conflict(db, timetable_id, slot.day_of_week, slot.slot_index)
    commit_or_rollback(db, action="create timetable slot")
    db.refresh(slot)
    logger.info(
        "Added slot %s to timetable %s at day %s slot %s",
        slot.id,
        timetable_id,
        slot.day_of_week,
        slot.slot_index,
    )
    return slot


def update_slot(db: Session, timetable_id: int, slot_id: str, patch: TimetableSlotUpdate) -> TimetableSlot:
    timetable = get_timetable(db, timetable_id, lock=True)
    slot = _get_owned_slot(db, timetable_id, slot_id)

    changes = patch.model_dump(exclude_unset=True)
    for key in REQUIRED_PATCH_FIELDS:
        if key in changes and changes[key] is None:
            changes.pop(key)

    next_day = changes.get("day_of_week", slot.day_of_week)
    next_slot_index = changes.get("slot_index", slot.slot_index)
    next_subject = changes.get("subject_id", slot.subject_id)
    next_teacher = changes.get("teacher_id", slot.teacher_id)
    moved = next_day != slot.day_of_week or next_slot_index != slot.slot_index
    reassigned = next_subject != slot.subject_id or next_teacher != slot.teacher_id

    day = grid_slot = None
    if moved:
        day, grid_slot = _resolve_cell(timetable, next_day, next_slot_index)

    catalog = None
    if reassigned:
        catalog = _check_catalog(db, timetable, next_subject, next_teacher)

    if moved or next_teacher != slot.teacher_id:
        index = ConflictIndex.build(db, timetable_id, exclude_slot_id=slot.id)
        result = index.claim(next_day, next_slot_index, next_teacher)
        if not result.ok:
            _raise_conflict(timetable_id, result)

    # Looked up before the slot is mutated.
    recolor = None
    if next_subject != slot.subject_id and not changes.get("color"):
        recolor = color_for(db, timetable_id, next_subject)

    if moved:
        previous_slot = resolve_slot(timetable, slot.slot_index)
        slot.day_of_week = day.index
        slot.day_name = day.name
        slot.slot_index = grid_slot.slot_index
        slot.start_time = grid_slot.start_time
        slot.end_time = grid_slot.end_time
        # A label inherited from the old grid slot follows the move; a custom one stays.
        inherited = previous_slot is not None and slot.session_label == previous_slot.label
        if "session_label" not in changes and (not slot.session_label or inherited):
            slot.session_label = grid_slot.label

    if reassigned:
        slot.subject_id = next_subject
        slot.teacher_id = next_teacher
        slot.semester_id = timetable.semester_id or catalog.subject.semester_id
        if "section" not in changes and slot.section is None:
            slot.section = catalog.subject.section

    for key in ("section", "room", "session_label"):
        if key in changes:
            setattr(slot, key, changes[key])
    if "color" in changes:
        slot.color = changes["color"]
    if recolor is not None:
        slot.color = recolor

    current_info = dict(slot.info or {})
    slot.info = {
        **current_info,
        **(changes.get("info") or {}),
        "manual": True,
        "updated_at": _now_iso(),
        "teacher_matches_subject": (
            catalog.teacher_matches_subject if catalog else current_info.get("teacher_matches_subject")
        ),
    }

    _flush_or_conflict(db, timetable_id, slot.day_of_week, slot.slot_index)
    commit_or_rollback(db, action="update timetable slot")
    db.refresh(slot)
    logger.info("Updated slot %s of timetable %s", slot_id, timetable_id)
    return slot


def remove_slot(db: Session, timetable_id: int, slot_id: str) -> None:
    get_timetable(db, timetable_id, lock=True)
    slot = _get_owned_slot(db, timetable_id, slot_id)
    db.delete(slot)
    commit_or_rollback(db, action="delete timetable slot")
    logger.info("Removed slot %s from timetable %s", slot_id, timetable_id)
