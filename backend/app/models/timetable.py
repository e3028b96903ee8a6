from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.academic import Subject, Teacher


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimetableStatus(str, Enum):
    draft = "draft"
    active = "active"
    published = "published"
    completed = "completed"
    archived = "archived"


LIVE_STATUSES = (TimetableStatus.active, TimetableStatus.published)


class Timetable(Base):
    __tablename__ = "timetables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    semester_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    generated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    status: Mapped[TimetableStatus] = mapped_column(
        SAEnum(TimetableStatus, name="timetable_status"),
        nullable=False,
        default=TimetableStatus.draft,
        index=True,
    )
    generation_method: Mapped[str] = mapped_column(String(40), nullable=False, default="greedy")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    # "metadata" is reserved on declarative classes.
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    metrics: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    slots: Mapped[list["TimetableSlot"]] = relationship(
        back_populates="timetable",
        cascade="all, delete-orphan",
        order_by=lambda: [TimetableSlot.day_of_week, TimetableSlot.slot_index],
    )


class TimetableSlot(Base):
    __tablename__ = "timetable_slots"
    __table_args__ = (
        UniqueConstraint(
            "timetable_id",
            "day_of_week",
            "slot_index",
            name="uq_timetable_slots_cell",
        ),
        Index("ix_timetable_slots_lookup", "subject_id", "teacher_id", "day_of_week", "slot_index"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timetable_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    semester_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    day_name: Mapped[str] = mapped_column(String(50), nullable=False)
    slot_index: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    room: Mapped[str | None] = mapped_column(String(100), nullable=True)
    session_label: Mapped[str | None] = mapped_column(String(100), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)
    info: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=_utcnow)

    timetable: Mapped[Timetable] = relationship(back_populates="slots")
    # Catalog rows are referenced by id only; no foreign key is declared.
    subject: Mapped[Subject | None] = relationship(
        primaryjoin="foreign(TimetableSlot.subject_id) == Subject.id", viewonly=True
    )
    teacher: Mapped[Teacher | None] = relationship(
        primaryjoin="foreign(TimetableSlot.teacher_id) == Teacher.id", viewonly=True
    )

    @property
    def subject_name(self) -> str | None:
        return self.subject.name if self.subject is not None else None

    @property
    def subject_code(self) -> str | None:
        return self.subject.code if self.subject is not None else None

    @property
    def teacher_name(self) -> str | None:
        return self.teacher.name if self.teacher is not None else None
