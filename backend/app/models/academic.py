"""Academic catalog tables owned by the surrounding system.

The timetable engine only reads these; they back the SQL roster provider and
student directory.
"""
import uuid

from sqlalchemy import Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


subject_teachers = Table(
    "subject_teachers",
    Base.metadata,
    Column("subject_id", String(36), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    Column("teacher_id", String(36), ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True),
)


class Semester(Base):
    __tablename__ = "semesters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)


class Teacher(Base):
    __tablename__ = "teachers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    semester_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
    credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sessions_per_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    preferred_teacher_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # Contiguous slots one session occupies on a single day.
    duration_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    teachers: Mapped[list[Teacher]] = relationship(secondary=subject_teachers, order_by=Teacher.id)


class Student(Base):
    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    batch_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    active_semester_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    section: Mapped[str | None] = mapped_column(String(50), nullable=True)
