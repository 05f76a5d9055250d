# services/session_lifecycle_service.py
"""
Session lifecycle state machine.

    SCHEDULED -> IN_PROGRESS -> COMPLETED
    SCHEDULED -> CANCELLED
    SCHEDULED -> POSTPONED  (spawns a new SCHEDULED session)

COMPLETED, CANCELLED and POSTPONED are terminal. Students are notified after
a cancellation or postponement has been committed.
"""

import logging

from academy.errors import InvalidSessionState, SessionNotFound, ValidationError
from academy.extensions import db, notification_service
from academy.models import (
    Session, SessionStatus, SessionMode, SessionType, SessionReservation, ReservationStatus,
    Classroom, User
)
from .conflict_service import ConflictService
from .reservation_service import ReservationService
from .schedule_service import ScheduleService
from .transaction import transaction

logger = logging.getLogger('session_lifecycle_service')

# (required status, resulting status) per operation
TRANSITIONS = {
    'start': (SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS),
    'complete': (SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED),
    'cancel': (SessionStatus.SCHEDULED, SessionStatus.CANCELLED),
    'postpone': (SessionStatus.SCHEDULED, SessionStatus.POSTPONED),
}


class SessionLifecycleService:

    @staticmethod
    def _transition(session_id, operation):
        """Lock the session, check the transition is legal and apply the new status."""
        session = Session.query.filter_by(id=session_id).with_for_update().first() if session_id else None
        if not session:
            raise SessionNotFound(f"Session {session_id} not found")

        required, target = TRANSITIONS[operation]
        if session.status != required:
            logger.warning(f"Rejected '{operation}' on session {session_id} with status {session.status}")
            raise InvalidSessionState(
                f"Cannot {operation} session: current status is {session.status}, expected {required}",
                current_status=session.status,
                operation=operation
            )

        session.status = target
        return session

    @staticmethod
    def _confirmed_reservations(session_id):
        return SessionReservation.query.filter_by(
            session_id=session_id, status=ReservationStatus.CONFIRMED
        ).order_by(SessionReservation.reserved_at).all()

    @staticmethod
    def _recipient_emails(student_ids):
        if not student_ids:
            return []
        return [u.email for u in User.query.filter(User.id.in_(student_ids)).all()]

    @staticmethod
    def start_session(session_id):
        with transaction(logger, f'start session {session_id}'):
            session = SessionLifecycleService._transition(session_id, 'start')

        logger.info(f"Session {session_id} started")
        return session

    @staticmethod
    def complete_session(session_id, topics_covered=None):
        with transaction(logger, f'complete session {session_id}'):
            session = SessionLifecycleService._transition(session_id, 'complete')
            if topics_covered is not None:
                session.topics_covered = topics_covered.strip() or None

        logger.info(f"Session {session_id} completed")
        return session

    @staticmethod
    def cancel_session(session_id, reason):
        """
        Cancel a scheduled session and every confirmed reservation on it.

        Args:
            session_id: Session to cancel
            reason: Mandatory, shown to the students

        Raises:
            SessionNotFound, InvalidSessionState, ValidationError
        """
        with transaction(logger, f'cancel session {session_id}'):
            session = SessionLifecycleService._transition(session_id, 'cancel')
            if not reason or not reason.strip():
                raise ValidationError("A cancellation reason is required")
            session.cancellation_reason = reason.strip()

            reservations = SessionLifecycleService._confirmed_reservations(session.id)
            for reservation in reservations:
                reservation.cancel()
            student_ids = [r.student_id for r in reservations]

        logger.info(f"Session {session_id} cancelled ({len(student_ids)} reservations cancelled): {reason}")

        notification_service.notify_session_cancelled(
            session, SessionLifecycleService._recipient_emails(student_ids), session.cancellation_reason
        )
        return session

    @staticmethod
    def postpone_session(session_id, new_date, new_start_time=None, new_end_time=None,
                         new_classroom=None, new_mode=None):
        """
        Postpone a scheduled session to a new slot.

        The original becomes POSTPONED and a replacement SCHEDULED session is
        created with the same subject, group and type. Time, classroom and
        mode are copied unless overridden. Confirmed reservations move to the
        replacement; in-person seats beyond the new room's capacity become online.

        Returns:
            Session: The replacement session

        Raises:
            SessionNotFound, InvalidSessionState, InvalidScheduleData,
            SessionConflict, TeacherSessionConflict, ValidationError
        """
        if new_date is None:
            raise ValidationError("A new date is required to postpone a session")

        with transaction(logger, f'postpone session {session_id}'):
            original = SessionLifecycleService._transition(session_id, 'postpone')

            start_time = new_start_time or original.start_time
            end_time = new_end_time or original.end_time
            classroom = new_classroom or original.classroom
            if not Classroom.is_valid(classroom):
                raise ValidationError(f"Invalid classroom: {classroom}")

            if new_mode is not None:
                if new_mode not in SessionMode.ALL:
                    raise ValidationError(f"Invalid session mode: {new_mode}")
                mode = new_mode
            elif Classroom.is_virtual(classroom):
                mode = SessionMode.ONLINE
            else:
                mode = original.mode
            if Classroom.is_virtual(classroom) and mode != SessionMode.ONLINE:
                raise ValidationError("Sessions in the virtual classroom must be online")

            ScheduleService.validate_time_range(start_time, end_time)
            ConflictService.check_session_classroom_conflict(
                new_date, start_time, end_time, classroom, exclude_ids=(original.id,)
            )
            ConflictService.check_session_schedule_slot_conflict(
                new_date, start_time, end_time, classroom, exclude_schedule_id=original.schedule_id
            )
            ConflictService.check_session_teacher_conflict(
                original.group.teacher_id if original.group else None, original.subject_id,
                new_date, start_time, end_time, mode, exclude_ids=(original.id,)
            )

            # Keep the schedule link only if that (schedule, date) slot is still free;
            # a detached replacement is no longer a regular session
            schedule_id = original.schedule_id
            session_type = original.session_type
            if schedule_id and Session.query.filter_by(schedule_id=schedule_id, date=new_date).first():
                schedule_id = None
                session_type = SessionType.EXTRA

            original.postponed_to_date = new_date

            replacement = Session(
                subject_id=original.subject_id,
                group_id=original.group_id,
                schedule_id=schedule_id,
                date=new_date,
                start_time=start_time,
                end_time=end_time,
                classroom=classroom,
                mode=mode,
                status=SessionStatus.SCHEDULED,
                session_type=session_type
            )
            db.session.add(replacement)
            db.session.flush()

            reservations = SessionLifecycleService._confirmed_reservations(original.id)
            for reservation in reservations:
                reservation.session_id = replacement.id
            db.session.flush()
            ReservationService.release_overflow_seats(replacement)
            student_ids = [r.student_id for r in reservations]

        logger.info(f"Session {session_id} postponed to {new_date} as session {replacement.id} "
                    f"({len(student_ids)} reservations moved)")

        notification_service.notify_session_postponed(
            original, replacement, SessionLifecycleService._recipient_emails(student_ids)
        )
        return replacement
