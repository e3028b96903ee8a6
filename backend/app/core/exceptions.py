class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class InvalidInputError(AppError):
    """Raised when a request carries missing or malformed input."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class InvalidStatusError(InvalidInputError):
    """Raised when a timetable status is outside the allowed set."""
    def __init__(self, value: str, allowed: list[str]):
        super().__init__(
            f"Invalid timetable status '{value}'",
            details={"status": value, "allowed": allowed},
        )

class InvalidGridReferenceError(InvalidInputError):
    """Raised when a day or slot index is not part of a timetable's grid."""
    def __init__(self, field: str, value: int):
        super().__init__(f"Invalid {field} value {value}", details={"field": field, "value": value})

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class SlotConflictError(AppError):
    """Raised when a slot collides with an existing cell or teacher booking."""
    def __init__(self, rule: str, conflicting_slot_id: str | None, conflicting_timetable_id: int | None = None):
        if rule == "teacher-busy":
            message = "Teacher is already scheduled during this time"
        else:
            message = "Another class is already scheduled during this time"
        super().__init__(
            message,
            status_code=409,
            details={
                "rule": rule,
                "conflicting_slot_id": conflicting_slot_id,
                "conflicting_timetable_id": conflicting_timetable_id,
            },
        )
        self.rule = rule
        self.conflicting_slot_id = conflicting_slot_id

class UpstreamUnavailableError(AppError):
    """Raised when a collaborator (roster, student directory) fails or times out."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details={"retryable": True, **(details or {})})

class StorageError(AppError):
    """Raised when a transactional write fails and has been rolled back."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=503, details={"retryable": True, **(details or {})})
