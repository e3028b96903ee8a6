from app.core.exceptions import (
    AppError,
    InvalidGridReferenceError,
    InvalidInputError,
    InvalidStatusError,
    ResourceNotFoundError,
    SlotConflictError,
    StorageError,
    UpstreamUnavailableError,
)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_client_errors_are_400():
    assert InvalidInputError("bad").status_code == 400
    assert isinstance(InvalidStatusError("live", ["draft"]), InvalidInputError)
    grid_err = InvalidGridReferenceError("slot_index", 9)
    assert grid_err.status_code == 400
    assert grid_err.message == "Invalid slot_index value 9"


def test_not_found_names_the_resource():
    err = ResourceNotFoundError("Timetable slot", "abc")
    assert err.status_code == 404
    assert err.message == "Timetable slot with id abc not found"


def test_slot_conflict_details():
    err = SlotConflictError("teacher-busy", "slot-1", 4)
    assert err.status_code == 409
    assert err.details == {"rule": "teacher-busy", "conflicting_slot_id": "slot-1", "conflicting_timetable_id": 4}
    assert "Teacher" in err.message


def test_transient_failures_are_retryable():
    for err in (UpstreamUnavailableError("down", {"semester_id": "s"}), StorageError("rolled back")):
        assert err.status_code == 503
        assert err.details["retryable"] is True
        assert isinstance(err, AppError)
