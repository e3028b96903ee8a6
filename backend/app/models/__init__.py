from app.models.academic import Semester, Student, Subject, Teacher, subject_teachers  # noqa: F401
from app.models.timetable import LIVE_STATUSES, Timetable, TimetableSlot, TimetableStatus  # noqa: F401
