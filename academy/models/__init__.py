# models/__init__.py
from .base import BaseModel
from .classroom import Classroom, DayOfWeek
from .user import User, RoleType
from .subject import Subject
from .group import SubjectGroup, GroupType, GroupStatus
from .enrollment import Enrollment, EnrollmentStatus
from .schedule import Schedule
from .session import Session, SessionType, SessionStatus, SessionMode
from .reservation import (
    SessionReservation, ReservationStatus, ReservationMode,
    OnlineRequestStatus, AttendanceStatus
)

__all__ = [
    'BaseModel',
    'Classroom',
    'DayOfWeek',
    'User',
    'RoleType',
    'Subject',
    'SubjectGroup',
    'GroupType',
    'GroupStatus',
    'Enrollment',
    'EnrollmentStatus',
    'Schedule',
    'Session',
    'SessionType',
    'SessionStatus',
    'SessionMode',
    'SessionReservation',
    'ReservationStatus',
    'ReservationMode',
    'OnlineRequestStatus',
    'AttendanceStatus'
]
