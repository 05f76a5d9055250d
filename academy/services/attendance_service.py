# services/attendance_service.py
"""
Attendance recording on session reservations.
Attendance is set exactly once per reservation. Whether the session has
actually started is the caller's concern (enforced by the lifecycle).
"""

import logging
from datetime import datetime

from academy.errors import AttendanceAlreadyRecorded, InvalidReservationState, SessionNotFound, ValidationError
from academy.extensions import db
from academy.models import Session, SessionReservation, ReservationStatus, AttendanceStatus
from .reservation_service import ReservationService
from .transaction import transaction

logger = logging.getLogger('attendance_service')


class AttendanceSkipReason:
    """Reasons a bulk entry was not recorded."""
    NOT_FOUND = 'reservation_not_found'
    WRONG_SESSION = 'wrong_session'
    NOT_CONFIRMED = 'not_confirmed'
    ALREADY_RECORDED = 'already_recorded'


def _validate_status(status):
    if status not in AttendanceStatus.ALL:
        raise ValidationError(f"Invalid attendance status: {status}")


class AttendanceService:

    @staticmethod
    def record_attendance(reservation_id, status, recorded_by_id):
        """
        Record attendance for one reservation.

        Raises:
            ValidationError, ReservationNotFound, InvalidReservationState, AttendanceAlreadyRecorded
        """
        _validate_status(status)

        with transaction(logger, f'record attendance for reservation {reservation_id}'):
            reservation = ReservationService.get(reservation_id)
            if reservation.status != ReservationStatus.CONFIRMED:
                raise InvalidReservationState(f"Reservation is {reservation.status}, expected confirmed")
            if reservation.has_attendance:
                raise AttendanceAlreadyRecorded(
                    f"Attendance already recorded as {reservation.attendance_status}"
                )

            reservation.attendance_status = status
            reservation.attendance_recorded_at = datetime.now()
            reservation.attendance_recorded_by_id = recorded_by_id

        logger.info(f"Recorded attendance '{status}' for reservation {reservation_id} by {recorded_by_id}")
        return reservation

    @staticmethod
    def record_bulk_attendance(session_id, statuses, recorded_by_id):
        """
        Record attendance for many reservations of one session.

        Entries that belong to another session, are not confirmed or already
        have attendance are skipped with a warning instead of failing the batch.

        Args:
            session_id: Session the attendance sheet is for
            statuses: Mapping of reservation id to attendance status
            recorded_by_id: User recording the sheet

        Returns:
            dict: Recorded reservations and skipped entries with reasons
        """

        for status in statuses.values():
            _validate_status(status)

        recorded = []
        skipped = []

        with transaction(logger, f'record bulk attendance for session {session_id}'):
            if not db.session.get(Session, session_id):
                raise SessionNotFound(f"Session {session_id} not found")

            reservations = {
                r.id: r for r in SessionReservation.query.filter(
                    SessionReservation.id.in_(list(statuses))
                ).all()
            } if statuses else {}

            now = datetime.now()
            for reservation_id, status in statuses.items():
                reservation = reservations.get(reservation_id)
                reason = None

                if reservation is None:
                    reason = AttendanceSkipReason.NOT_FOUND
                elif reservation.session_id != session_id:
                    reason = AttendanceSkipReason.WRONG_SESSION
                elif reservation.status != ReservationStatus.CONFIRMED:
                    reason = AttendanceSkipReason.NOT_CONFIRMED
                elif reservation.has_attendance:
                    reason = AttendanceSkipReason.ALREADY_RECORDED

                if reason:
                    logger.warning(f"Skipping attendance for reservation {reservation_id}: {reason}")
                    skipped.append({'reservation_id': reservation_id, 'reason': reason})
                    continue

                reservation.attendance_status = status
                reservation.attendance_recorded_at = now
                reservation.attendance_recorded_by_id = recorded_by_id
                recorded.append(reservation)

        logger.info(f"Bulk attendance for session {session_id}: {len(recorded)} recorded, "
                    f"{len(skipped)} skipped")
        return {
            'recorded': recorded,
            'skipped': skipped
        }
