import pytest

from app.core.exceptions import ResourceNotFoundError, UpstreamUnavailableError
from app.models.timetable import Timetable, TimetableSlot, TimetableStatus
from app.services.grid import DEFAULT_GRID
from app.services.roster import SqlStudentDirectory, StudentPlacement
from app.services.timetable_store import create_timetable, update_timetable_status
from app.services.timetable_views import get_student_timetable, get_teacher_timetable


class BrokenDirectory:
    def lookup_student(self, student_id):
        raise TimeoutError("directory did not answer")


class StaticDirectory:
    def __init__(self, placement):
        self.placement = placement

    def lookup_student(self, student_id):
        return self.placement


def _slot(day, slot_index, teacher_id="t-1", section=None, subject_id="sub-a"):
    return TimetableSlot(
        day_of_week=day,
        day_name=DEFAULT_GRID.day(day).name,
        slot_index=slot_index,
        start_time=DEFAULT_GRID.slot(slot_index).start_time,
        end_time=DEFAULT_GRID.slot(slot_index).end_time,
        subject_id=subject_id,
        teacher_id=teacher_id,
        section=section,
    )


def _store(db, slots, *, status, semester_id="sem-1", batch_id="batch-1", version=1):
    return create_timetable(
        db,
        Timetable(
            semester_id=semester_id,
            batch_id=batch_id,
            status=status,
            version=version,
            metadata_=DEFAULT_GRID.to_metadata(),
            metrics={},
        ),
        slots,
    )


def test_teacher_view_spans_timetables_and_skips_archived(db_session):
    first = _store(db_session, [_slot(1, 0), _slot(0, 4), _slot(0, 0, teacher_id="t-2")], status=TimetableStatus.draft)
    second = _store(db_session, [_slot(0, 4)], status=TimetableStatus.published, semester_id="sem-2", batch_id="batch-2")
    _store(db_session, [_slot(0, 1)], status=TimetableStatus.archived, version=2)

    slots = get_teacher_timetable(db_session, "t-1")

    assert [(slot.timetable_id, slot.day_of_week, slot.slot_index) for slot in slots] == [
        (first.id, 0, 4),
        (second.id, 0, 4),
        (first.id, 1, 0),
    ]


def test_teacher_without_slots_gets_an_empty_view(db_session):
    assert get_teacher_timetable(db_session, "t-9") == []


def test_teacher_view_tolerates_missing_catalog_rows(db_session):
    _store(db_session, [_slot(0, 0, subject_id="sub-gone")], status=TimetableStatus.draft)

    [slot] = get_teacher_timetable(db_session, "t-1")

    assert (slot.subject_name, slot.teacher_name) == (None, None)


def test_student_view_prefers_published_and_filters_sections(db_session, catalog):
    published = _store(
        db_session,
        [_slot(0, 0, section="A"), _slot(0, 1, section="B"), _slot(0, 2)],
        status=TimetableStatus.published,
    )
    # Newer, but only active.
    _store(db_session, [_slot(2, 2, section="A")], status=TimetableStatus.active, version=2)

    slots = get_student_timetable(db_session, "stu-1", SqlStudentDirectory(db_session))

    assert {slot.timetable_id for slot in slots} == {published.id}
    assert [(slot.slot_index, slot.section) for slot in slots] == [(0, "A"), (2, None)]
    assert (slots[0].subject_name, slots[0].subject_code, slots[0].teacher_name) == ("Calculus", "MA101", "Ada Lovelace")


def test_student_view_uses_the_latest_active_when_nothing_is_published(db_session, catalog):
    _store(db_session, [_slot(0, 0)], status=TimetableStatus.active)
    newer = _store(db_session, [_slot(1, 1)], status=TimetableStatus.draft, version=2)
    update_timetable_status(db_session, newer.id, "active")

    slots = get_student_timetable(db_session, "stu-1", SqlStudentDirectory(db_session))

    assert [slot.timetable_id for slot in slots] == [newer.id]


def test_student_view_ignores_drafts(db_session, catalog):
    _store(db_session, [_slot(0, 0)], status=TimetableStatus.draft)

    assert get_student_timetable(db_session, "stu-1", SqlStudentDirectory(db_session)) == []


def test_student_without_section_sees_shared_slots_only(db_session):
    _store(db_session, [_slot(0, 0, section="A"), _slot(0, 1)], status=TimetableStatus.published)
    directory = StaticDirectory(StudentPlacement("stu-5", "batch-1", "sem-1", None))

    slots = get_student_timetable(db_session, "stu-5", directory)

    assert [slot.slot_index for slot in slots] == [1]


def test_student_without_scope_gets_an_empty_view(db_session):
    _store(db_session, [_slot(0, 0)], status=TimetableStatus.published)
    directory = StaticDirectory(StudentPlacement("stu-6", None, None, "A"))

    assert get_student_timetable(db_session, "stu-6", directory) == []


def test_unknown_student_is_not_found(db_session, catalog):
    with pytest.raises(ResourceNotFoundError):
        get_student_timetable(db_session, "stu-404", SqlStudentDirectory(db_session))


def test_directory_failure_is_retryable(db_session):
    with pytest.raises(UpstreamUnavailableError) as exc:
        get_student_timetable(db_session, "stu-1", BrokenDirectory())
    assert exc.value.details["retryable"] is True
