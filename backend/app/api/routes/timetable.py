from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_roster_provider, get_student_directory
from app.schemas.generator import GenerateTimetableRequest, GenerateTimetableResponse
from app.schemas.timetable import (
    TimetableOut,
    TimetableSlotCreate,
    TimetableSlotOut,
    TimetableSlotUpdate,
    TimetableSlotView,
    TimetableStatusUpdate,
    TimetableSummaryOut,
)
from app.services.roster import RosterProvider, StudentDirectory
from app.services.scheduler import GreedyScheduler
from app.services.slot_editor import create_slot, remove_slot, update_slot
from app.services.timetable_store import (
    delete_timetable,
    get_timetable,
    list_timetable_slots,
    list_timetables,
    update_timetable_status,
)
from app.services.timetable_views import get_student_timetable, get_teacher_timetable

router = APIRouter()


def _timetable_out(timetable, *, include_slots: bool) -> TimetableOut:
    summary = TimetableSummaryOut.model_validate(timetable)
    slots = [TimetableSlotOut.model_validate(slot) for slot in timetable.slots] if include_slots else None
    return TimetableOut(**summary.model_dump(), slots=slots)


@router.post("/generate", response_model=GenerateTimetableResponse, status_code=status.HTTP_201_CREATED)
def generate_timetable(
    payload: GenerateTimetableRequest,
    response: Response,
    db: Session = Depends(get_db),
    roster_provider: RosterProvider = Depends(get_roster_provider),
) -> GenerateTimetableResponse:
    result = GreedyScheduler(db=db, roster_provider=roster_provider).run(payload)
    if result.dry_run:
        response.status_code = status.HTTP_200_OK
    return GenerateTimetableResponse(
        dry_run=result.dry_run,
        timetable=TimetableSummaryOut.model_validate(result.timetable),
        slots=[TimetableSlotOut.model_validate(slot) for slot in result.slots],
        metrics=result.metrics,
        unplaced=result.unplaced,
        unresolved=result.unresolved,
    )


@router.get("/", response_model=list[TimetableOut])
def list_all_timetables(
    semester_id: str | None = Query(default=None),
    batch_id: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    include_slots: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[TimetableOut]:
    timetables = list_timetables(
        db,
        semester_id=semester_id,
        batch_id=batch_id,
        status=status_filter,
        include_slots=include_slots,
    )
    return [_timetable_out(item, include_slots=include_slots) for item in timetables]


@router.get("/teachers/{teacher_id}", response_model=list[TimetableSlotView])
def teacher_timetable(teacher_id: str, db: Session = Depends(get_db)) -> list[TimetableSlotView]:
    return get_teacher_timetable(db, teacher_id)


@router.get("/students/{student_id}", response_model=list[TimetableSlotView])
def student_timetable(
    student_id: str,
    db: Session = Depends(get_db),
    directory: StudentDirectory = Depends(get_student_directory),
) -> list[TimetableSlotView]:
    return get_student_timetable(db, student_id, directory)


@router.get("/{timetable_id}", response_model=TimetableOut)
def read_timetable(
    timetable_id: int,
    include_slots: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return _timetable_out(get_timetable(db, timetable_id), include_slots=include_slots)


@router.get("/{timetable_id}/slots", response_model=list[TimetableSlotOut])
def read_timetable_slots(timetable_id: int, db: Session = Depends(get_db)) -> list[TimetableSlotOut]:
    return list_timetable_slots(db, timetable_id)


@router.patch("/{timetable_id}/status", response_model=TimetableOut)
def change_timetable_status(
    timetable_id: int,
    payload: TimetableStatusUpdate,
    db: Session = Depends(get_db),
) -> TimetableOut:
    timetable = update_timetable_status(db, timetable_id, payload.status)
    return _timetable_out(timetable, include_slots=False)


@router.delete("/{timetable_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_timetable(timetable_id: int, db: Session = Depends(get_db)) -> None:
    delete_timetable(db, timetable_id)


@router.post("/{timetable_id}/slots", response_model=TimetableSlotOut, status_code=status.HTTP_201_CREATED)
def add_timetable_slot(
    timetable_id: int,
    payload: TimetableSlotCreate,
    db: Session = Depends(get_db),
) -> TimetableSlotOut:
    return create_slot(db, timetable_id, payload)


@router.patch("/{timetable_id}/slots/{slot_id}", response_model=TimetableSlotOut)
def edit_timetable_slot(
    timetable_id: int,
    slot_id: str,
    payload: TimetableSlotUpdate,
    db: Session = Depends(get_db),
) -> TimetableSlotOut:
    return update_slot(db, timetable_id, slot_id, payload)


@router.delete("/{timetable_id}/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_timetable_slot(timetable_id: int, slot_id: str, db: Session = Depends(get_db)) -> None:
    remove_slot(db, timetable_id, slot_id)
