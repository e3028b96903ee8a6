from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
import logging
from time import perf_counter

from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.exceptions import AppError, InvalidInputError, UpstreamUnavailableError
from app.models.timetable import Timetable, TimetableSlot, TimetableStatus
from app.schemas.generator import GenerateTimetableRequest, GenerationOptions
from app.services.conflict_index import ConflictIndex
from app.services.grid import GridDefinition, build_grid
from app.services.roster import Roster, RosterEntry, RosterProvider
from app.services.subject_colors import SubjectColorAssigner
from app.services.timetable_store import create_timetable, next_version

logger = logging.getLogger(__name__)

STRATEGY = "greedy-scan-v1"
GENERATION_METHOD = "greedy"


@dataclass(frozen=True)
class Placement:
    subject_id: str
    teacher_id: str
    section: str | None
    day_of_week: int
    day_name: str
    slot_index: int
    start_time: str
    end_time: str
    label: str
    session_number: int
    part: int = 1
    duration_slots: int = 1


@dataclass
class PlacementPlan:
    placements: list[Placement] = field(default_factory=list)
    unplaced: list[dict] = field(default_factory=list)
    unresolved: list[dict] = field(default_factory=list)
    requested: int = 0


@dataclass
class GenerationResult:
    dry_run: bool
    timetable: Timetable
    slots: list[TimetableSlot]
    metrics: dict
    unplaced: list[dict]
    unresolved: list[dict]


class GreedyScheduler:
    """Deterministic first-fit placement of roster sessions onto a day x slot grid.

    Roster entries are taken in subject id order and every session scans the
    grid day by day, slot by slot; the first cell the conflict index accepts
    wins. Identical input therefore always yields identical placements.
    """

    def __init__(
        self,
        *,
        db: Session,
        roster_provider: RosterProvider,
        settings: Settings | None = None,
    ) -> None:
        self.db = db
        self.roster_provider = roster_provider
        self.settings = settings or get_settings()

    def run(self, request: GenerateTimetableRequest) -> GenerationResult:
        started = perf_counter()
        if not request.semester_id:
            raise InvalidInputError("semester_id is required to generate a timetable")

        options = request.options
        grid = build_grid(options.days, options.slots)
        per_day_cap = options.max_sessions_per_day_per_subject or self.settings.max_sessions_per_day_per_subject
        default_sessions = options.default_sessions_per_week or self.settings.default_sessions_per_week
        timeout = options.roster_timeout_seconds or self.settings.roster_timeout_seconds

        roster = self._fetch_roster(semester_id=request.semester_id, batch_id=request.batch_id, timeout=timeout)
        if roster is None:
            raise InvalidInputError("Semester not found", details={"semester_id": request.semester_id})
        if request.batch_id and roster.batch_id and request.batch_id != roster.batch_id:
            raise InvalidInputError(
                "Semester belongs to a different batch",
                details={"semester_id": request.semester_id, "batch_id": request.batch_id},
            )
        if not roster.entries:
            raise InvalidInputError(
                "No subjects found for the selected semester",
                details={"semester_id": request.semester_id, "batch_id": request.batch_id},
            )

        batch_id = request.batch_id or roster.batch_id
        logger.info(
            "Generating timetable semester=%s batch=%s subjects=%s dry_run=%s",
            roster.semester_id,
            batch_id,
            len(roster.entries),
            request.dry_run,
        )

        index = ConflictIndex()
        reserved = 0
        if options.avoid_live_teacher_clashes:
            reserved = index.load_live_reservations(self.db, semester_id=roster.semester_id, batch_id=batch_id)

        plan = self.place(roster.entries, grid, index, per_day_cap=per_day_cap, default_sessions=default_sessions)
        colors = SubjectColorAssigner(self.settings.subject_color_palette)
        slots = [
            TimetableSlot(
                semester_id=roster.semester_id,
                day_of_week=item.day_of_week,
                day_name=item.day_name,
                slot_index=item.slot_index,
                start_time=item.start_time,
                end_time=item.end_time,
                subject_id=item.subject_id,
                teacher_id=item.teacher_id,
                section=item.section,
                session_label=item.label,
                color=colors.color_for(item.subject_id),
                info=self._slot_info(item),
            )
            for item in plan.placements
        ]

        metrics = self._metrics(plan, reserved=reserved)
        metrics["runtime_ms"] = int((perf_counter() - started) * 1000)

        version = next_version(self.db, semester_id=roster.semester_id, batch_id=batch_id)
        timetable = Timetable(
            name=request.name or f"{roster.semester_name or roster.semester_id} - Timetable v{version}",
            semester_id=roster.semester_id,
            batch_id=batch_id,
            generated_by=request.generated_by,
            status=TimetableStatus.draft,
            generation_method=GENERATION_METHOD,
            version=version,
            metadata_={
                **grid.to_metadata(),
                "options": self._options_metadata(options, per_day_cap, default_sessions),
                "unplaced": plan.unplaced,
                "unresolved": plan.unresolved,
            },
            metrics=metrics,
        )

        logger.info(
            "Placed %s of %s session(s); unplaced=%s unresolved=%s",
            metrics["placed"],
            metrics["requested"],
            metrics["unplaced"],
            metrics["unresolved"],
        )

        if not request.dry_run:
            timetable = create_timetable(self.db, timetable, slots)
            slots = list(timetable.slots)

        return GenerationResult(
            dry_run=request.dry_run,
            timetable=timetable,
            slots=slots,
            metrics=metrics,
            unplaced=plan.unplaced,
            unresolved=plan.unresolved,
        )

    def place(
        self,
        entries: tuple[RosterEntry, ...] | list[RosterEntry],
        grid: GridDefinition,
        index: ConflictIndex,
        *,
        per_day_cap: int,
        default_sessions: int,
    ) -> PlacementPlan:
        plan = PlacementPlan()
        cells = list(grid.cells())
        ordered_slots = sorted(grid.slots, key=lambda item: item.slot_index)
        day_counts: Counter[tuple[str, int]] = Counter()

        for entry in sorted(entries, key=lambda item: item.subject_id):
            teacher_id = entry.primary_teacher_id()
            if teacher_id is None:
                plan.unresolved.append(
                    {"subject_id": entry.subject_id, "subject_name": entry.subject_name, "reason": "No teacher assigned"}
                )
                continue

            required = entry.required_sessions(default_sessions)
            duration = max(entry.duration_slots, 1)
            plan.requested += required
            for session_number in range(1, required + 1):
                placements = self._first_fit(
                    entry,
                    teacher_id,
                    session_number,
                    duration,
                    cells,
                    ordered_slots,
                    index,
                    day_counts,
                    per_day_cap,
                )
                if not placements:
                    plan.unplaced.append(
                        {
                            "subject_id": entry.subject_id,
                            "teacher_id": teacher_id,
                            "session_number": session_number,
                            "duration_slots": duration,
                            "reason": "Insufficient contiguous slots"
                            if duration > 1
                            else "No conflict-free cell available",
                        }
                    )
                    continue
                day_counts[(entry.subject_id, placements[0].day_of_week)] += 1
                plan.placements.extend(placements)
        return plan

    @staticmethod
    def _first_fit(
        entry: RosterEntry,
        teacher_id: str,
        session_number: int,
        duration: int,
        cells: list,
        ordered_slots: list,
        index: ConflictIndex,
        day_counts: Counter,
        per_day_cap: int,
    ) -> list[Placement]:
        """Claim the first run of ``duration`` adjacent slots on one day.

        A run that collides part-way has its earlier cells released before the
        scan moves on. Returns one placement per claimed cell, or an empty list.
        """
        for day, slot in cells:
            if day_counts[(entry.subject_id, day.index)] >= per_day_cap:
                continue
            start = ordered_slots.index(slot)
            run = ordered_slots[start : start + duration]
            if len(run) < duration:
                continue

            claimed = []
            for cell_slot in run:
                if not index.claim(day.index, cell_slot.slot_index, teacher_id).ok:
                    break
                claimed.append(cell_slot)
            if len(claimed) < duration:
                for cell_slot in claimed:
                    index.release(day.index, cell_slot.slot_index, teacher_id)
                continue

            return [
                Placement(
                    subject_id=entry.subject_id,
                    teacher_id=teacher_id,
                    section=entry.section,
                    day_of_week=day.index,
                    day_name=day.name,
                    slot_index=cell_slot.slot_index,
                    start_time=cell_slot.start_time,
                    end_time=cell_slot.end_time,
                    label=cell_slot.label,
                    session_number=session_number,
                    part=part,
                    duration_slots=duration,
                )
                for part, cell_slot in enumerate(run, start=1)
            ]
        return []

    def _fetch_roster(self, *, semester_id: str, batch_id: str | None, timeout: float | None) -> Roster | None:
        def fetch() -> Roster | None:
            return self.roster_provider.fetch_roster(semester_id=semester_id, batch_id=batch_id)

        try:
            if timeout is None:
                return fetch()
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="roster-fetch")
            try:
                return executor.submit(fetch).result(timeout=timeout)
            finally:
                executor.shutdown(wait=False)
        except AppError:
            raise
        except FuturesTimeoutError as exc:
            logger.warning("Roster lookup for semester %s timed out after %ss", semester_id, timeout)
            raise UpstreamUnavailableError(
                "Roster lookup timed out",
                details={"semester_id": semester_id, "timeout_seconds": timeout},
            ) from exc
        except Exception as exc:
            logger.warning("Roster lookup for semester %s failed", semester_id, exc_info=True)
            raise UpstreamUnavailableError("Roster lookup failed", details={"semester_id": semester_id}) from exc

    @staticmethod
    def _metrics(plan: PlacementPlan, *, reserved: int) -> dict:
        teacher_load = Counter(item.teacher_id for item in plan.placements)
        subject_load = Counter(item.subject_id for item in plan.placements)
        return {
            "strategy": STRATEGY,
            "requested": plan.requested,
            "placed": len({(item.subject_id, item.session_number) for item in plan.placements}),
            "placed_slots": len(plan.placements),
            "unplaced": len(plan.unplaced),
            "unresolved": len(plan.unresolved),
            "teacher_load": dict(sorted(teacher_load.items())),
            "subject_load": dict(sorted(subject_load.items())),
            "reserved_teacher_cells": reserved,
        }

    @staticmethod
    def _slot_info(item: Placement) -> dict:
        info = {"session_number": item.session_number, "algorithm": STRATEGY}
        if item.duration_slots > 1:
            info.update(part=item.part, duration_slots=item.duration_slots)
        return info

    @staticmethod
    def _options_metadata(options: GenerationOptions, per_day_cap: int, default_sessions: int) -> dict:
        stored = options.model_dump(exclude={"days", "slots"}, exclude_none=True)
        stored["max_sessions_per_day_per_subject"] = per_day_cap
        stored["default_sessions_per_week"] = default_sessions
        return stored
