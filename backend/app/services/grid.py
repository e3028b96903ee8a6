"""Day/slot universe for a timetable.

A grid is resolved once when a timetable is created and stored in its metadata.
The defaults below only seed that resolution; reads always go through the
stored grid.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from app.core.exceptions import InvalidInputError
from app.schemas.timetable import TIME_PATTERN, parse_time_to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayDefinition:
    index: int
    name: str

    def to_dict(self) -> dict:
        return {"index": self.index, "name": self.name}


@dataclass(frozen=True)
class SlotDefinition:
    slot_index: int
    start_time: str | None
    end_time: str | None
    label: str

    def to_dict(self) -> dict:
        return {
            "slot_index": self.slot_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "label": self.label,
        }


DEFAULT_DAYS: tuple[DayDefinition, ...] = (
    DayDefinition(0, "Monday"),
    DayDefinition(1, "Tuesday"),
    DayDefinition(2, "Wednesday"),
    DayDefinition(3, "Thursday"),
    DayDefinition(4, "Friday"),
)

DEFAULT_SLOTS: tuple[SlotDefinition, ...] = (
    SlotDefinition(0, "09:00", "09:50", "Morning 1"),
    SlotDefinition(1, "10:00", "10:50", "Morning 2"),
    SlotDefinition(2, "11:00", "11:50", "Pre-Lunch"),
    SlotDefinition(3, "12:30", "13:20", "Post-Lunch"),
    SlotDefinition(4, "13:30", "14:20", "Afternoon 1"),
    SlotDefinition(5, "14:30", "15:20", "Afternoon 2"),
    SlotDefinition(6, "15:30", "16:20", "Evening 1"),
)


@dataclass(frozen=True)
class GridDefinition:
    days: tuple[DayDefinition, ...]
    slots: tuple[SlotDefinition, ...]

    def day(self, index: int) -> DayDefinition | None:
        for day in self.days:
            if day.index == index:
                return day
        return None

    def slot(self, index: int) -> SlotDefinition | None:
        for slot in self.slots:
            if slot.slot_index == index:
                return slot
        return None

    def cells(self) -> Iterator[tuple[DayDefinition, SlotDefinition]]:
        """Cells in scan order: day ascending, then slot ascending."""
        for day in sorted(self.days, key=lambda item: item.index):
            for slot in sorted(self.slots, key=lambda item: item.slot_index):
                yield day, slot

    def to_metadata(self) -> dict:
        return {
            "days": [day.to_dict() for day in self.days],
            "slots": [slot.to_dict() for slot in self.slots],
        }

    @classmethod
    def from_metadata(cls, metadata: dict | None) -> "GridDefinition":
        metadata = metadata or {}
        return cls(
            days=tuple(normalize_days(metadata.get("days"))),
            slots=tuple(normalize_slots(metadata.get("slots"))),
        )


DEFAULT_GRID = GridDefinition(days=DEFAULT_DAYS, slots=DEFAULT_SLOTS)


def _as_index(value: Any) -> int | None:
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _pick(item: dict, *keys: str) -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def normalize_days(value: Any) -> list[DayDefinition]:
    if not isinstance(value, list):
        if value is not None:
            logger.warning("Ignoring malformed day list %r; using default weekdays", value)
        return list(DEFAULT_DAYS)

    days: list[DayDefinition] = []
    for position, item in enumerate(value):
        fallback_name = DEFAULT_DAYS[position].name if position < len(DEFAULT_DAYS) else f"Day {position + 1}"
        if isinstance(item, str) and item.strip():
            days.append(DayDefinition(position, item.strip()))
        elif isinstance(item, dict):
            index = _as_index(item.get("index"))
            name = item.get("name")
            days.append(
                DayDefinition(
                    position if index is None else index,
                    name.strip() if isinstance(name, str) and name.strip() else fallback_name,
                )
            )
        else:
            days.append(DayDefinition(position, fallback_name))
    return days


def normalize_slots(value: Any) -> list[SlotDefinition]:
    if not isinstance(value, list):
        if value is not None:
            logger.warning("Ignoring malformed slot list %r; using default slots", value)
        return list(DEFAULT_SLOTS)

    slots: list[SlotDefinition] = []
    for position, item in enumerate(value):
        fallback = DEFAULT_SLOTS[position] if position < len(DEFAULT_SLOTS) else None
        if isinstance(item, dict):
            index = _as_index(_pick(item, "slot_index", "slotIndex"))
            label = _pick(item, "label")
            slots.append(
                SlotDefinition(
                    slot_index=position if index is None else index,
                    start_time=_pick(item, "start_time", "startTime") or (fallback.start_time if fallback else None),
                    end_time=_pick(item, "end_time", "endTime") or (fallback.end_time if fallback else None),
                    label=label if isinstance(label, str) and label else (
                        fallback.label if fallback else f"Slot {position + 1}"
                    ),
                )
            )
        elif fallback is not None:
            slots.append(fallback)
        else:
            slots.append(SlotDefinition(position, "09:00", "09:50", f"Slot {position + 1}"))
    return slots


def validate_grid(grid: GridDefinition) -> GridDefinition:
    if not grid.days:
        raise InvalidInputError("Grid needs at least one day")
    if not grid.slots:
        raise InvalidInputError("Grid needs at least one slot")

    day_indices = sorted(day.index for day in grid.days)
    if day_indices != list(range(len(grid.days))):
        raise InvalidInputError(
            "Day indices must be unique and contiguous from 0",
            details={"day_indices": [day.index for day in grid.days]},
        )

    slot_indices = sorted(slot.slot_index for slot in grid.slots)
    if slot_indices != list(range(len(grid.slots))):
        raise InvalidInputError(
            "Slot indices must be unique and contiguous from 0",
            details={"slot_indices": [slot.slot_index for slot in grid.slots]},
        )

    for slot in grid.slots:
        for field_name, value in (("start_time", slot.start_time), ("end_time", slot.end_time)):
            if not isinstance(value, str) or not TIME_PATTERN.match(value):
                raise InvalidInputError(
                    f"Slot {slot.slot_index} {field_name} must be in HH:MM 24-hour format",
                    details={"slot_index": slot.slot_index, field_name: value},
                )
        if parse_time_to_minutes(slot.end_time) <= parse_time_to_minutes(slot.start_time):
            raise InvalidInputError(
                f"Slot {slot.slot_index} must end after it starts",
                details={"slot_index": slot.slot_index},
            )
    return grid


def build_grid(days: Any = None, slots: Any = None) -> GridDefinition:
    """Normalize and validate grid overrides; absent parts fall back to the defaults."""
    grid = GridDefinition(days=tuple(normalize_days(days)), slots=tuple(normalize_slots(slots)))
    return validate_grid(grid)


def resolve_grid(timetable) -> GridDefinition:
    metadata = getattr(timetable, "metadata_", None) or {}
    if "days" not in metadata and "slots" not in metadata:
        return DEFAULT_GRID
    return GridDefinition.from_metadata(metadata)


def resolve_day(timetable, day_of_week: int) -> DayDefinition | None:
    return resolve_grid(timetable).day(day_of_week)


def resolve_slot(timetable, slot_index: int) -> SlotDefinition | None:
    return resolve_grid(timetable).slot(slot_index)
