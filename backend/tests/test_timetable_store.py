import pytest
from sqlalchemy import func, select

from app.core.exceptions import InvalidStatusError, ResourceNotFoundError
from app.models.timetable import Timetable, TimetableSlot, TimetableStatus
from app.services.grid import DEFAULT_GRID
from app.services.timetable_store import (
    create_timetable,
    delete_timetable,
    get_timetable,
    list_timetable_slots,
    list_timetables,
    next_version,
    update_timetable_status,
)


def _timetable(semester_id="sem-1", batch_id="batch-1", version=1, status=TimetableStatus.draft):
    return Timetable(
        name=f"{semester_id} v{version}",
        semester_id=semester_id,
        batch_id=batch_id,
        status=status,
        version=version,
        metadata_=DEFAULT_GRID.to_metadata(),
        metrics={},
    )


def _slot(day, slot_index, teacher_id="t-1"):
    day_def = DEFAULT_GRID.day(day)
    slot_def = DEFAULT_GRID.slot(slot_index)
    return TimetableSlot(
        day_of_week=day,
        day_name=day_def.name,
        slot_index=slot_index,
        start_time=slot_def.start_time,
        end_time=slot_def.end_time,
        subject_id="sub-a",
        teacher_id=teacher_id,
    )


def test_create_timetable_stores_slots(db_session):
    timetable = create_timetable(db_session, _timetable(), [_slot(1, 0), _slot(0, 3), _slot(0, 1)])

    assert timetable.id is not None
    assert [(slot.day_of_week, slot.slot_index) for slot in timetable.slots] == [(0, 1), (0, 3), (1, 0)]


def test_list_filters_and_orders_newest_first(db_session):
    older = create_timetable(db_session, _timetable(), [])
    newer = create_timetable(db_session, _timetable(version=2, status=TimetableStatus.published), [])
    create_timetable(db_session, _timetable(semester_id="sem-2", batch_id="batch-2"), [])

    assert [item.id for item in list_timetables(db_session, semester_id="sem-1")] == [newer.id, older.id]
    assert [item.id for item in list_timetables(db_session, status="published")] == [newer.id]
    assert len(list_timetables(db_session, batch_id="batch-2")) == 1
    assert len(list_timetables(db_session)) == 3


def test_list_rejects_unknown_status(db_session):
    with pytest.raises(InvalidStatusError):
        list_timetables(db_session, status="live")


def test_get_unknown_timetable_raises(db_session):
    with pytest.raises(ResourceNotFoundError) as exc:
        get_timetable(db_session, 404)
    assert exc.value.status_code == 404


def test_list_slots_orders_by_cell(db_session):
    timetable = create_timetable(db_session, _timetable(), [_slot(2, 0), _slot(0, 6), _slot(0, 2)])

    slots = list_timetable_slots(db_session, timetable.id)

    assert [(slot.day_of_week, slot.slot_index) for slot in slots] == [(0, 2), (0, 6), (2, 0)]


def test_status_transitions_are_unconstrained(db_session):
    timetable = create_timetable(db_session, _timetable(), [])

    for status in ("archived", "draft", "published", "completed", "active"):
        assert update_timetable_status(db_session, timetable.id, status).status == TimetableStatus(status)


def test_status_outside_the_allowed_set_is_rejected(db_session):
    timetable = create_timetable(db_session, _timetable(), [])

    with pytest.raises(InvalidStatusError) as exc:
        update_timetable_status(db_session, timetable.id, "live")

    assert exc.value.status_code == 400
    assert exc.value.details["allowed"] == ["draft", "active", "published", "completed", "archived"]
    assert get_timetable(db_session, timetable.id).status == TimetableStatus.draft


def test_delete_cascades_to_slots(db_session):
    timetable = create_timetable(db_session, _timetable(), [_slot(0, 0), _slot(0, 1)])
    keep = create_timetable(db_session, _timetable(version=2), [_slot(0, 0)])

    delete_timetable(db_session, timetable.id)

    remaining = db_session.execute(select(TimetableSlot.timetable_id)).scalars().all()
    assert remaining == [keep.id]
    with pytest.raises(ResourceNotFoundError):
        get_timetable(db_session, timetable.id)


def test_delete_unknown_timetable_raises(db_session):
    with pytest.raises(ResourceNotFoundError):
        delete_timetable(db_session, 99)


def test_next_version_is_scoped(db_session):
    create_timetable(db_session, _timetable(version=1), [])
    create_timetable(db_session, _timetable(version=4), [])

    assert next_version(db_session, semester_id="sem-1", batch_id="batch-1") == 5
    assert next_version(db_session, semester_id="sem-1", batch_id=None) == 1
    assert db_session.execute(select(func.count()).select_from(Timetable)).scalar() == 2
