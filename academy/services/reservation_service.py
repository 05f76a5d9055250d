# services/reservation_service.py
"""
Reservation engine.
Per-session seat accounting: in-person seats are bounded by the classroom,
online seats are unlimited. All seat claims lock the session row first so
concurrent claims on the same session are serialized.
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from academy.errors import (
    SessionNotFound, InvalidSessionState, ReservationNotFound, EnrollmentNotFound,
    ReservationAlreadyExists, SessionFull, CrossGroupReservationNotAllowed,
    SubjectReservationAlreadyExists, InvalidReservationState, PermissionDenied, ValidationError
)
from academy.extensions import db
from academy.models import (
    Session, SessionStatus, SessionMode, SessionReservation, ReservationStatus, ReservationMode,
    Enrollment, Classroom
)
from .filters import ReservationFilters
from .transaction import transaction

logger = logging.getLogger('reservation_service')


def _duplicate_reservation():
    return ReservationAlreadyExists("The student already has a reservation for this session")


class ReservationService:

    # ===============================
    # SEAT ACCOUNTING
    # ===============================

    @staticmethod
    def effective_capacity(session):
        """In-person seats of a session: the smaller of the global cap and the room size."""
        if Classroom.is_virtual(session.classroom) or session.mode == SessionMode.ONLINE:
            return 0
        max_in_person = current_app.config.get('MAX_IN_PERSON_CAPACITY', 24)
        room = Classroom.capacity_for(session.classroom, current_app.config.get('CLASSROOM_CAPACITY'))
        return min(max_in_person, room)

    @staticmethod
    def release_overflow_seats(session):
        """
        Move confirmed in-person reservations that no longer fit the session
        online, keeping the earliest ones in person.

        Called after a session changes room or mode, or receives the
        reservations of a postponed session.

        Returns:
            int: Number of reservations moved online
        """
        free_seats = ReservationService.effective_capacity(session)
        in_person = SessionReservation.query.filter_by(
            session_id=session.id, status=ReservationStatus.CONFIRMED, mode=ReservationMode.IN_PERSON
        ).order_by(SessionReservation.reserved_at).all()

        overflow = in_person[free_seats:]
        for reservation in overflow:
            reservation.mode = ReservationMode.ONLINE
        if overflow:
            db.session.flush()
            logger.info(f"Moved {len(overflow)} in-person reservations of session {session.id} online "
                        f"({free_seats} seats left in {session.classroom})")
        return len(overflow)

    @staticmethod
    def count_in_person_reservations(session_id):
        return db.session.query(func.count(SessionReservation.id)).filter(
            SessionReservation.session_id == session_id,
            SessionReservation.status == ReservationStatus.CONFIRMED,
            SessionReservation.mode == ReservationMode.IN_PERSON
        ).scalar()

    @staticmethod
    def available_in_person_seats(session):
        capacity = ReservationService.effective_capacity(session)
        return max(0, capacity - ReservationService.count_in_person_reservations(session.id))

    @staticmethod
    def lock_session(session_id):
        session = Session.query.filter_by(id=session_id).with_for_update().first() if session_id else None
        if not session:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    # ===============================
    # VALIDATION HELPERS
    # ===============================

    @staticmethod
    def _require_scheduled(session, operation):
        if session.status != SessionStatus.SCHEDULED:
            raise InvalidSessionState(
                f"Cannot {operation} on a session with status {session.status}",
                current_status=session.status,
                operation=operation
            )

    @staticmethod
    def _check_cross_group(session, enrollment):
        # Same group is always allowed; otherwise the subject must match
        if session.group_id == enrollment.group_id:
            return
        group_subject_id = enrollment.group.subject_id
        if session.subject_id != group_subject_id:
            raise CrossGroupReservationNotAllowed(
                "Cannot reserve a session of a different subject than the enrollment",
                session_subject_id=session.subject_id,
                enrollment_subject_id=group_subject_id
            )

    @staticmethod
    def _check_capacity(session):
        capacity = ReservationService.effective_capacity(session)
        in_person = ReservationService.count_in_person_reservations(session.id)
        if in_person >= capacity:
            logger.warning(f"Session {session.id} is full ({in_person}/{capacity} in-person seats)")
            raise SessionFull(
                f"No in-person seats left for this session ({in_person}/{capacity})",
                capacity=capacity,
                in_person_count=in_person
            )

    @staticmethod
    def _check_subject_reservation(student_id, session):
        other = db.session.query(SessionReservation.id).join(
            Session, Session.id == SessionReservation.session_id
        ).filter(
            SessionReservation.student_id == student_id,
            SessionReservation.status == ReservationStatus.CONFIRMED,
            SessionReservation.session_id != session.id,
            Session.subject_id == session.subject_id,
            Session.date == session.date
        ).first()
        if other:
            raise SubjectReservationAlreadyExists(
                "The student already has a reservation for this subject on that date; "
                "switch sessions instead",
                existing_reservation_id=other.id
            )

    @staticmethod
    def _get_owned(reservation_id, student_id):
        reservation = ReservationService.get(reservation_id)
        if reservation.student_id != student_id:
            raise PermissionDenied("The reservation does not belong to this student")
        return reservation

    @staticmethod
    def _require_cancellable(reservation):
        if reservation.status != ReservationStatus.CONFIRMED:
            raise InvalidReservationState(f"Reservation is {reservation.status}, expected confirmed")
        if reservation.has_attendance:
            raise InvalidReservationState("Attendance has already been recorded for this reservation")

    @staticmethod
    def _claim(student_id, session, enrollment_id, mode):
        """
        Insert a confirmed reservation, or reactivate the cancelled row for the
        same (student, session) pair. Caller has already run every check.
        """
        existing = SessionReservation.query.filter_by(
            student_id=student_id, session_id=session.id
        ).with_for_update().first()

        if existing:
            existing.status = ReservationStatus.CONFIRMED
            existing.enrollment_id = enrollment_id
            existing.mode = mode
            existing.reserved_at = datetime.now()
            existing.cancelled_at = None
            existing.online_request_status = None
            existing.online_requested_at = None
            existing.online_request_processed_at = None
            existing.online_request_processed_by_id = None
            reservation = existing
        else:
            reservation = SessionReservation(
                student_id=student_id,
                session_id=session.id,
                enrollment_id=enrollment_id,
                mode=mode,
                status=ReservationStatus.CONFIRMED,
                reserved_at=datetime.now()
            )
            db.session.add(reservation)

        db.session.flush()
        return reservation

    @staticmethod
    def _confirmed_for(student_id, session_id):
        return SessionReservation.query.filter_by(
            student_id=student_id, session_id=session_id, status=ReservationStatus.CONFIRMED
        ).first()

    # ===============================
    # OPERATIONS
    # ===============================

    @staticmethod
    def create_reservation(student_id, session_id, enrollment_id, mode=ReservationMode.IN_PERSON):
        """
        Reserve a seat for a student.

        Args:
            student_id: Student claiming the seat
            session_id: Target session, must be scheduled
            enrollment_id: Active enrollment of the student the seat is claimed through
            mode: 'in_person' (capacity bound) or 'online' (unbounded)

        Returns:
            SessionReservation: The confirmed reservation

        Raises:
            SessionNotFound, InvalidSessionState, EnrollmentNotFound, PermissionDenied,
            InvalidReservationState, ReservationAlreadyExists, CrossGroupReservationNotAllowed,
            SubjectReservationAlreadyExists, SessionFull
        """
        if mode not in ReservationMode.ALL:
            raise ValidationError(f"Invalid reservation mode: {mode}")

        with transaction(logger, f'create reservation for student {student_id}',
                         integrity_error=_duplicate_reservation):
            session = ReservationService.lock_session(session_id)
            ReservationService._require_scheduled(session, 'reserve a seat')

            if ReservationService._confirmed_for(student_id, session.id):
                raise _duplicate_reservation()

            enrollment = db.session.get(Enrollment, enrollment_id) if enrollment_id else None
            if not enrollment:
                raise EnrollmentNotFound(f"Enrollment {enrollment_id} not found")
            if enrollment.student_id != student_id:
                raise PermissionDenied("The enrollment does not belong to this student")
            if not enrollment.is_active:
                raise InvalidReservationState(f"Enrollment is {enrollment.status}, expected active")

            ReservationService._check_cross_group(session, enrollment)
            ReservationService._check_subject_reservation(student_id, session)

            if mode == ReservationMode.IN_PERSON:
                ReservationService._check_capacity(session)

            reservation = ReservationService._claim(student_id, session, enrollment.id, mode)

        logger.info(f"Student {student_id} reserved {mode} seat in session {session_id}")
        return reservation

    @staticmethod
    def cancel_reservation(reservation_id, student_id):
        """Cancel a confirmed reservation that has no attendance yet."""
        with transaction(logger, f'cancel reservation {reservation_id}'):
            reservation = ReservationService._get_owned(reservation_id, student_id)
            ReservationService._require_cancellable(reservation)
            reservation.cancel()

        logger.info(f"Student {student_id} cancelled reservation {reservation_id}")
        return reservation

    @staticmethod
    def switch_session(student_id, current_reservation_id, new_session_id):
        """
        Move a student's reservation to another session in one transaction.
        The new reservation keeps the mode of the current one.
        """
        with transaction(logger, f'switch reservation {current_reservation_id}',
                         integrity_error=_duplicate_reservation):
            current = ReservationService._get_owned(current_reservation_id, student_id)
            ReservationService._require_cancellable(current)

            if current.session_id == new_session_id:
                raise InvalidReservationState("The reservation is already for that session")

            new_session = ReservationService.lock_session(new_session_id)
            ReservationService._require_scheduled(new_session, 'switch into session')

            if ReservationService._confirmed_for(student_id, new_session.id):
                raise _duplicate_reservation()

            ReservationService._check_cross_group(new_session, current.enrollment)
            if current.mode == ReservationMode.IN_PERSON:
                ReservationService._check_capacity(new_session)

            current.cancel()
            db.session.flush()
            new_reservation = ReservationService._claim(
                student_id, new_session, current.enrollment_id, current.mode
            )

        logger.info(f"Student {student_id} switched from session {current.session_id} "
                    f"to session {new_session_id}")
        return new_reservation

    # ===============================
    # QUERIES
    # ===============================

    @staticmethod
    def get(reservation_id):
        reservation = db.session.get(SessionReservation, reservation_id) if reservation_id else None
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        return reservation

    @staticmethod
    def list_by_session(session_id, status=None):
        query = SessionReservation.query.filter_by(session_id=session_id)
        if status:
            query = query.filter_by(status=status)
        return query.order_by(SessionReservation.reserved_at).all()

    @staticmethod
    def list_by_student(student_id, filters=None):
        filters = filters or ReservationFilters()
        filters.student_id = student_id
        reservations = filters.apply(SessionReservation.query).all()
        logger.debug(f"Found {len(reservations)} reservations for student {student_id}")
        return reservations

    @staticmethod
    def get_session_occupancy(session_id):
        """Seat summary for a session."""
        session = db.session.get(Session, session_id) if session_id else None
        if not session:
            raise SessionNotFound(f"Session {session_id} not found")

        capacity = ReservationService.effective_capacity(session)
        in_person = ReservationService.count_in_person_reservations(session.id)
        online = db.session.query(func.count(SessionReservation.id)).filter(
            SessionReservation.session_id == session.id,
            SessionReservation.status == ReservationStatus.CONFIRMED,
            SessionReservation.mode == ReservationMode.ONLINE
        ).scalar()

        return {
            'session_id': session.id,
            'capacity': capacity,
            'in_person_count': in_person,
            'online_count': online,
            'available_in_person': max(0, capacity - in_person)
        }
