from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.timetable import TimetableSlotOut, TimetableSummaryOut


class GenerationOptions(BaseModel):
    """Grid overrides and algorithm knobs for one generation run.

    Unknown keys are kept and stored with the timetable metadata.
    """

    model_config = ConfigDict(extra="allow")

    days: list[Any] | None = None
    slots: list[Any] | None = None
    max_sessions_per_day_per_subject: int | None = Field(default=None, ge=1, le=20)
    default_sessions_per_week: int | None = Field(default=None, ge=1, le=40)
    avoid_live_teacher_clashes: bool = True
    roster_timeout_seconds: float | None = Field(default=None, gt=0, le=300)


class GenerateTimetableRequest(BaseModel):
    semester_id: str | None = Field(default=None, max_length=36)
    batch_id: str | None = Field(default=None, max_length=36)
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    dry_run: bool = False
    name: str | None = Field(default=None, max_length=200)
    generated_by: str = Field(default="system", min_length=1, max_length=36)

    @field_validator("semester_id", "batch_id", "name")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class UnplacedSession(BaseModel):
    subject_id: str
    teacher_id: str
    session_number: int
    reason: str


class UnresolvedSubject(BaseModel):
    subject_id: str
    subject_name: str | None = None
    reason: str


class GenerateTimetableResponse(BaseModel):
    dry_run: bool
    timetable: TimetableSummaryOut
    slots: list[TimetableSlotOut]
    metrics: dict
    unplaced: list[UnplacedSession] = Field(default_factory=list)
    unresolved: list[UnresolvedSubject] = Field(default_factory=list)
