# services/__init__.py
from .conflict_service import ConflictService
from .schedule_service import ScheduleService
from .reservation_service import ReservationService
from .auto_reservation_service import AutoReservationService
from .session_generation_service import SessionGenerationService
from .session_service import SessionService
from .session_lifecycle_service import SessionLifecycleService
from .online_request_service import OnlineRequestService
from .attendance_service import AttendanceService
from .filters import ScheduleFilters, SessionFilters, ReservationFilters

__all__ = [
    'ConflictService',
    'ScheduleService',
    'ReservationService',
    'AutoReservationService',
    'SessionGenerationService',
    'SessionService',
    'SessionLifecycleService',
    'OnlineRequestService',
    'AttendanceService',
    'ScheduleFilters',
    'SessionFilters',
    'ReservationFilters'
]
