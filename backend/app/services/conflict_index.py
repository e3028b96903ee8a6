"""Cell and teacher occupancy for one timetable.

Bulk generation and manual slot edits both decide collisions through
``ConflictIndex.claim``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from sqlalchemy import and_, not_, select
from sqlalchemy.orm import Session

from app.models.timetable import LIVE_STATUSES, Timetable, TimetableSlot

CELL_OCCUPIED = "cell-occupied"
TEACHER_BUSY = "teacher-busy"

ConflictRule = Literal["cell-occupied", "teacher-busy"]


@dataclass(frozen=True)
class Occupant:
    slot_id: str | None = None
    timetable_id: int | None = None


@dataclass(frozen=True)
class ClaimResult:
    ok: bool
    rule: ConflictRule | None = None
    occupant: Occupant | None = None


class ConflictIndex:
    def __init__(self) -> None:
        self._cells: dict[tuple[int, int], Occupant] = {}
        self._teacher_cells: dict[tuple[str, int, int], Occupant] = {}
        # Bookings of the same teachers in other live timetables.
        self._reservations: dict[tuple[str, int, int], Occupant] = {}

    def check(self, day_of_week: int, slot_index: int, teacher_id: str) -> ClaimResult:
        occupant = self._cells.get((day_of_week, slot_index))
        if occupant is not None:
            return ClaimResult(ok=False, rule=CELL_OCCUPIED, occupant=occupant)
        teacher_key = (teacher_id, day_of_week, slot_index)
        occupant = self._teacher_cells.get(teacher_key) or self._reservations.get(teacher_key)
        if occupant is not None:
            return ClaimResult(ok=False, rule=TEACHER_BUSY, occupant=occupant)
        return ClaimResult(ok=True)

    def claim(
        self,
        day_of_week: int,
        slot_index: int,
        teacher_id: str,
        occupant: Occupant | None = None,
    ) -> ClaimResult:
        result = self.check(day_of_week, slot_index, teacher_id)
        if not result.ok:
            return result
        occupant = occupant or Occupant()
        self._cells[(day_of_week, slot_index)] = occupant
        self._teacher_cells[(teacher_id, day_of_week, slot_index)] = occupant
        return result

    def release(self, day_of_week: int, slot_index: int, teacher_id: str) -> None:
        self._cells.pop((day_of_week, slot_index), None)
        self._teacher_cells.pop((teacher_id, day_of_week, slot_index), None)

    def reserve_teacher(self, teacher_id: str, day_of_week: int, slot_index: int, occupant: Occupant) -> None:
        self._reservations.setdefault((teacher_id, day_of_week, slot_index), occupant)

    def load_live_reservations(
        self,
        db: Session,
        *,
        semester_id: str | None,
        batch_id: str | None,
        exclude_timetable_id: int | None = None,
    ) -> int:
        """Reserve teacher cells booked by live timetables of other batch/semester scopes.

        Timetables of the same scope are earlier versions of the one being built
        and never block it.
        """
        same_scope = and_(
            Timetable.semester_id.is_not_distinct_from(semester_id),
            Timetable.batch_id.is_not_distinct_from(batch_id),
        )
        query = (
            select(
                TimetableSlot.id,
                TimetableSlot.timetable_id,
                TimetableSlot.teacher_id,
                TimetableSlot.day_of_week,
                TimetableSlot.slot_index,
            )
            .join(Timetable, Timetable.id == TimetableSlot.timetable_id)
            .where(Timetable.status.in_(LIVE_STATUSES), not_(same_scope))
            .order_by(TimetableSlot.timetable_id.asc(), TimetableSlot.created_at.asc(), TimetableSlot.id.asc())
        )
        if exclude_timetable_id is not None:
            query = query.where(Timetable.id != exclude_timetable_id)

        count = 0
        for slot_id, timetable_id, teacher_id, day_of_week, slot_index in db.execute(query):
            self.reserve_teacher(teacher_id, day_of_week, slot_index, Occupant(slot_id, timetable_id))
            count += 1
        return count

    @classmethod
    def build(
        cls,
        db: Session,
        timetable_id: int,
        *,
        exclude_slot_id: str | None = None,
        include_live_reservations: bool = True,
    ) -> "ConflictIndex":
        index = cls()
        query = select(TimetableSlot).where(TimetableSlot.timetable_id == timetable_id)
        if exclude_slot_id is not None:
            query = query.where(TimetableSlot.id != exclude_slot_id)
        for slot in db.execute(query).scalars():
            occupant = Occupant(slot.id, slot.timetable_id)
            index._cells[(slot.day_of_week, slot.slot_index)] = occupant
            index._teacher_cells[(slot.teacher_id, slot.day_of_week, slot.slot_index)] = occupant

        if include_live_reservations:
            timetable = db.get(Timetable, timetable_id)
            if timetable is not None:
                index.load_live_reservations(
                    db,
                    semester_id=timetable.semester_id,
                    batch_id=timetable.batch_id,
                    exclude_timetable_id=timetable_id,
                )
        return index
