from __future__ import annotations

import re
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.models.timetable import TimetableStatus

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


class TimetableSlotOut(BaseModel):
    id: str | None = None
    timetable_id: int | None = None
    semester_id: str | None = None
    day_of_week: int
    day_name: str
    slot_index: int
    start_time: str
    end_time: str
    subject_id: str
    teacher_id: str
    section: str | None = None
    room: str | None = None
    session_label: str | None = None
    color: str | None = None
    info: dict = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TimetableSlotView(TimetableSlotOut):
    subject_name: str | None = None
    subject_code: str | None = None
    teacher_name: str | None = None

class TimetableSummaryOut(BaseModel):
    id: int | None = None
    name: str | None = None
    semester_id: str | None = None
    batch_id: str | None = None
    generated_by: str | None = None
    status: TimetableStatus
    generation_method: str
    version: int
    # ORM rows expose the JSON column as `metadata_`.
    metadata: dict = Field(default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata"))
    metrics: dict = Field(default_factory=dict)
    generated_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TimetableOut(TimetableSummaryOut):
    slots: list[TimetableSlotOut] | None = None


class TimetableStatusUpdate(BaseModel):
    # Checked by the store so unknown values surface as InvalidStatusError.
    status: str = Field(min_length=1, max_length=20)


class TimetableSlotCreate(BaseModel):
    day_of_week: int = Field(ge=0)
    slot_index: int = Field(ge=0)
    subject_id: str = Field(min_length=1, max_length=36)
    teacher_id: str = Field(min_length=1, max_length=36)
    section: str | None = Field(default=None, max_length=50)
    room: str | None = Field(default=None, max_length=100)
    session_label: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    info: dict = Field(default_factory=dict)

    @field_validator("section", "room", "session_label", "color")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class TimetableSlotUpdate(BaseModel):
    day_of_week: int | None = Field(default=None, ge=0)
    slot_index: int | None = Field(default=None, ge=0)
    subject_id: str | None = Field(default=None, min_length=1, max_length=36)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    section: str | None = Field(default=None, max_length=50)
    room: str | None = Field(default=None, max_length=100)
    session_label: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=20)
    info: dict | None = None

    @field_validator("section", "room", "session_label", "color")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None
