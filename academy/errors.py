# errors.py
"""
Domain errors raised by the scheduling and reservation services.

Every error carries a stable ``error_code`` and the HTTP status the API layer
responds with. Services raise them directly; the error handler registered by
the application factory renders ``to_dict()``.
"""


class AcademyError(Exception):
    """Base class for business-rule violations."""

    error_code = 'ACADEMY_ERROR'
    status_code = 400

    def __init__(self, message=None, **details):
        self.message = message or self.__class__.__doc__ or self.error_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        result = {
            'success': False,
            'error_code': self.error_code,
            'message': self.message
        }
        if self.details:
            result['details'] = self.details
        return result


class ValidationError(AcademyError):
    """The request data is malformed."""
    error_code = 'VALIDATION_ERROR'


class PermissionDenied(AcademyError):
    """You do not have permission to perform this operation."""
    error_code = 'PERMISSION_DENIED'
    status_code = 403


# Lookup errors

class NotFoundError(AcademyError):
    status_code = 404


class ScheduleNotFound(NotFoundError):
    """Schedule not found."""
    error_code = 'SCHEDULE_NOT_FOUND'


class GroupNotFound(NotFoundError):
    """Group not found."""
    error_code = 'GROUP_NOT_FOUND'


class SubjectNotFound(NotFoundError):
    """Subject not found."""
    error_code = 'SUBJECT_NOT_FOUND'


class SessionNotFound(NotFoundError):
    """Session not found."""
    error_code = 'SESSION_NOT_FOUND'


class ReservationNotFound(NotFoundError):
    """Reservation not found."""
    error_code = 'RESERVATION_NOT_FOUND'


class EnrollmentNotFound(NotFoundError):
    """Enrollment not found."""
    error_code = 'ENROLLMENT_NOT_FOUND'


# Schedule errors

class ScheduleConflict(AcademyError):
    """The classroom is already booked for that time slot."""
    error_code = 'SCHEDULE_CONFLICT'
    status_code = 409


class TeacherScheduleConflict(AcademyError):
    """The teacher already has a schedule in that time slot."""
    error_code = 'TEACHER_SCHEDULE_CONFLICT'
    status_code = 409


class InvalidScheduleData(AcademyError):
    """Invalid schedule data."""
    error_code = 'INVALID_SCHEDULE_DATA'


# Session errors

class InvalidSessionState(AcademyError):
    """The session is not in a valid state for this operation."""
    error_code = 'INVALID_SESSION_STATE'
    status_code = 409


class SessionConflict(AcademyError):
    """The classroom is already booked by another session."""
    error_code = 'SESSION_CONFLICT'
    status_code = 409


class TeacherSessionConflict(AcademyError):
    """The teacher already has a session in that time slot."""
    error_code = 'TEACHER_SESSION_CONFLICT'
    status_code = 409


# Reservation errors

class ReservationAlreadyExists(AcademyError):
    """The student already has a reservation for this session."""
    error_code = 'RESERVATION_ALREADY_EXISTS'
    status_code = 409


class SessionFull(AcademyError):
    """No in-person seats left for this session."""
    error_code = 'SESSION_FULL'
    status_code = 409


class CrossGroupReservationNotAllowed(AcademyError):
    """The session belongs to a different subject than the enrollment."""
    error_code = 'CROSS_GROUP_RESERVATION_NOT_ALLOWED'


class SubjectReservationAlreadyExists(AcademyError):
    """The student already holds a reservation for this subject; switch sessions instead."""
    error_code = 'SUBJECT_RESERVATION_ALREADY_EXISTS'
    status_code = 409


class OnlineRequestTooLate(AcademyError):
    """Online attendance must be requested well before the session starts."""
    error_code = 'ONLINE_REQUEST_TOO_LATE'


class OnlineRequestAlreadyExists(AcademyError):
    """An online attendance request already exists for this reservation."""
    error_code = 'ONLINE_REQUEST_ALREADY_EXISTS'
    status_code = 409


class AttendanceAlreadyRecorded(AcademyError):
    """Attendance has already been recorded for this reservation."""
    error_code = 'ATTENDANCE_ALREADY_RECORDED'
    status_code = 409


class InvalidReservationState(AcademyError):
    """The reservation is not in a valid state for this operation."""
    error_code = 'INVALID_RESERVATION_STATE'
    status_code = 409
