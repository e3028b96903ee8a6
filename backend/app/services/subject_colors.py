from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import DEFAULT_SUBJECT_COLOR_PALETTE, get_settings
from app.models.timetable import TimetableSlot


class SubjectColorAssigner:
    """Stable per-subject colors within one timetable.

    ``existing`` is an iterable of ``(subject_id, color)`` pairs ordered oldest
    first; the first color seen for a subject wins.
    """

    def __init__(
        self,
        palette: Sequence[str] | None = None,
        existing: Iterable[tuple[str, str | None]] = (),
    ) -> None:
        self.palette = list(palette or DEFAULT_SUBJECT_COLOR_PALETTE)
        self._by_subject: dict[str, str] = {}
        self._used: set[str] = set()
        for subject_id, color in existing:
            if not color:
                continue
            self._used.add(color)
            self._by_subject.setdefault(subject_id, color)

    def color_for(self, subject_id: str) -> str:
        color = self._by_subject.get(subject_id)
        if color is not None:
            return color
        color = next((item for item in self.palette if item not in self._used), None)
        if color is None:
            color = self.palette[len(self._by_subject) % len(self.palette)]
        self._by_subject[subject_id] = color
        self._used.add(color)
        return color


def load_color_assigner(db: Session, timetable_id: int, palette: Sequence[str] | None = None) -> SubjectColorAssigner:
    rows = db.execute(
        select(TimetableSlot.subject_id, TimetableSlot.color)
        .where(TimetableSlot.timetable_id == timetable_id, TimetableSlot.color.is_not(None))
        .order_by(TimetableSlot.created_at.asc(), TimetableSlot.id.asc())
    ).all()
    return SubjectColorAssigner(palette or get_settings().subject_color_palette, existing=rows)


def color_for(db: Session, timetable_id: int, subject_id: str) -> str:
    return load_color_assigner(db, timetable_id).color_for(subject_id)
