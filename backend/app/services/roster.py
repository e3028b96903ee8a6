from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models.academic import Semester, Student, Subject


@dataclass(frozen=True)
class RosterEntry:
    subject_id: str
    subject_name: str | None
    teacher_ids: tuple[str, ...]
    sessions_per_week: int | None = None
    credits: int | None = None
    section: str | None = None
    preferred_teacher_id: str | None = None
    duration_slots: int = 1

    def primary_teacher_id(self) -> str | None:
        if self.preferred_teacher_id and self.preferred_teacher_id in self.teacher_ids:
            return self.preferred_teacher_id
        return min(self.teacher_ids) if self.teacher_ids else None

    def required_sessions(self, default: int) -> int:
        for value in (self.sessions_per_week, self.credits):
            if value is not None and value > 0:
                return value
        return default


@dataclass(frozen=True)
class Roster:
    semester_id: str
    semester_name: str | None
    batch_id: str | None
    entries: tuple[RosterEntry, ...]


@dataclass(frozen=True)
class StudentPlacement:
    student_id: str
    batch_id: str | None
    active_semester_id: str | None
    section: str | None = None


class RosterProvider(Protocol):
    def fetch_roster(self, *, semester_id: str, batch_id: str | None) -> Roster | None:
        """Return the roster, or None when the semester does not exist."""


class StudentDirectory(Protocol):
    def lookup_student(self, student_id: str) -> StudentPlacement | None:
        ...


class SqlRosterProvider:
    """Roster read from the catalog tables.

    Each lookup opens and closes its own session; the request session is never
    handed to the lookup thread.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def fetch_roster(self, *, semester_id: str, batch_id: str | None) -> Roster | None:
        with self.session_factory() as db:
            return self._load(db, semester_id=semester_id, batch_id=batch_id)

    @staticmethod
    def _load(db: Session, *, semester_id: str, batch_id: str | None) -> Roster | None:
        semester = db.get(Semester, semester_id)
        if semester is None:
            return None

        query = (
            select(Subject)
            .where(Subject.semester_id == semester_id)
            .options(selectinload(Subject.teachers))
            .order_by(Subject.id.asc())
        )
        if batch_id:
            query = query.where(Subject.batch_id == batch_id)

        entries = tuple(
            RosterEntry(
                subject_id=subject.id,
                subject_name=subject.name,
                teacher_ids=tuple(sorted(teacher.id for teacher in subject.teachers)),
                sessions_per_week=subject.sessions_per_week,
                credits=subject.credits,
                section=subject.section,
                preferred_teacher_id=subject.preferred_teacher_id,
                duration_slots=subject.duration_slots or 1,
            )
            for subject in db.execute(query).scalars()
        )
        return Roster(
            semester_id=semester.id,
            semester_name=semester.name,
            batch_id=semester.batch_id,
            entries=entries,
        )


class SqlStudentDirectory:
    def __init__(self, db: Session) -> None:
        self.db = db

    def lookup_student(self, student_id: str) -> StudentPlacement | None:
        student = self.db.get(Student, student_id)
        if student is None:
            return None
        return StudentPlacement(
            student_id=student.id,
            batch_id=student.batch_id,
            active_semester_id=student.active_semester_id,
            section=student.section,
        )
