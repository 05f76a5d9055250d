# services/auto_reservation_service.py
"""
Automatic reservations for enrolled students.

New sessions reserve a seat for every active enrollment of their group and new
enrollments get a seat in every upcoming session. In-person seats are handed
out until the classroom is full, the rest attend online. Every operation is
idempotent: students who already hold a row for a session are left alone.
"""

import logging
from datetime import date, datetime

from flask import current_app

from academy.errors import GroupNotFound, EnrollmentNotFound
from academy.extensions import db
from academy.models import (
    Session, SessionStatus, SessionMode, SessionReservation, ReservationStatus, ReservationMode,
    Enrollment, EnrollmentStatus, SubjectGroup
)
from .reservation_service import ReservationService
from .transaction import transaction

logger = logging.getLogger('auto_reservation_service')


class AutoReservationService:

    @staticmethod
    def _initial_mode(session, free_seats):
        if session.mode == SessionMode.ONLINE or free_seats <= 0:
            return ReservationMode.ONLINE
        return ReservationMode.IN_PERSON

    @staticmethod
    def reserve_for_session(session):
        """Reserve seats for the group's active enrollments. Does not commit."""
        if not session.group_id:
            return []

        enrollments = Enrollment.query.filter_by(
            group_id=session.group_id, status=EnrollmentStatus.ACTIVE
        ).order_by(Enrollment.enrolled_at).all()

        already = {
            row.student_id for row in db.session.query(SessionReservation.student_id).filter_by(
                session_id=session.id
            )
        }
        free_seats = ReservationService.available_in_person_seats(session)

        created = []
        for enrollment in enrollments:
            if enrollment.student_id in already:
                continue

            mode = AutoReservationService._initial_mode(session, free_seats)
            if mode == ReservationMode.IN_PERSON:
                free_seats -= 1

            reservation = SessionReservation(
                student_id=enrollment.student_id,
                session_id=session.id,
                enrollment_id=enrollment.id,
                mode=mode,
                status=ReservationStatus.CONFIRMED,
                reserved_at=datetime.now()
            )
            db.session.add(reservation)
            created.append(reservation)

        if created:
            db.session.flush()
            logger.debug(f"Auto-reserved {len(created)} seats in session {session.id}")
        return created

    @staticmethod
    def generate_for_session(session_id, group_id=None):
        """
        Reserve a seat in a session for every active enrollment of its group.

        Returns:
            list: Newly created reservations
        """
        with transaction(logger, f'generate reservations for session {session_id}'):
            session = ReservationService.lock_session(session_id)
            if group_id and session.group_id != group_id:
                raise GroupNotFound(f"Session {session_id} does not belong to group {group_id}")
            created = AutoReservationService.reserve_for_session(session)

        logger.info(f"Generated {len(created)} reservations for session {session_id}")
        return created

    @staticmethod
    def generate_for_new_enrollment(student_id, group_id, enrollment_id, today=None):
        """
        Reserve a seat for a newly enrolled student in every upcoming scheduled
        session of the group.
        """
        today = today or date.today()

        with transaction(logger, f'generate reservations for enrollment {enrollment_id}'):
            group = db.session.get(SubjectGroup, group_id) if group_id else None
            if not group:
                raise GroupNotFound(f"Group {group_id} not found")

            enrollment = db.session.get(Enrollment, enrollment_id) if enrollment_id else None
            if not enrollment or enrollment.student_id != student_id or enrollment.group_id != group.id:
                raise EnrollmentNotFound(f"Enrollment {enrollment_id} not found for student {student_id}")

            limit = current_app.config.get('UPCOMING_SESSIONS_LIMIT', 999)
            sessions = Session.query.filter(
                Session.group_id == group.id,
                Session.status == SessionStatus.SCHEDULED,
                Session.date >= today
            ).order_by(Session.date, Session.start_time).limit(limit).all()

            reserved_session_ids = {
                row.session_id for row in db.session.query(SessionReservation.session_id).filter_by(
                    student_id=student_id
                )
            }

            created = []
            for session in sessions:
                if session.id in reserved_session_ids:
                    continue

                free_seats = ReservationService.available_in_person_seats(session)
                reservation = SessionReservation(
                    student_id=student_id,
                    session_id=session.id,
                    enrollment_id=enrollment.id,
                    mode=AutoReservationService._initial_mode(session, free_seats),
                    status=ReservationStatus.CONFIRMED,
                    reserved_at=datetime.now()
                )
                db.session.add(reservation)
                db.session.flush()
                created.append(reservation)

        logger.info(f"Generated {len(created)} reservations for student {student_id} in group {group_id}")
        return created

    @staticmethod
    def cancel_future_reservations(student_id, group_id, today=None):
        """
        Cancel a student's confirmed reservations in the group's upcoming
        scheduled sessions, e.g. after withdrawal.

        Returns:
            int: Number of reservations cancelled
        """
        today = today or date.today()

        with transaction(logger, f'cancel future reservations of {student_id} in group {group_id}'):
            reservations = SessionReservation.query.join(
                Session, Session.id == SessionReservation.session_id
            ).filter(
                SessionReservation.student_id == student_id,
                SessionReservation.status == ReservationStatus.CONFIRMED,
                SessionReservation.attendance_status.is_(None),
                Session.group_id == group_id,
                Session.status == SessionStatus.SCHEDULED,
                Session.date >= today
            ).all()

            for reservation in reservations:
                reservation.cancel()

        logger.info(f"Cancelled {len(reservations)} future reservations of student {student_id} "
                    f"in group {group_id}")
        return len(reservations)
