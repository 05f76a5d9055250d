# services/online_request_service.py
"""
Online attendance requests.
A student holding an in-person seat may ask to attend online instead; the
group's teacher (or an admin) approves or rejects. Approval frees the seat.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app

from academy.errors import (
    InvalidReservationState, OnlineRequestAlreadyExists, OnlineRequestTooLate, PermissionDenied
)
from academy.extensions import db
from academy.models import (
    Session, SessionReservation, ReservationStatus, ReservationMode, OnlineRequestStatus,
    SubjectGroup, User
)
from .reservation_service import ReservationService
from .transaction import transaction

logger = logging.getLogger('online_request_service')


class OnlineRequestService:

    @staticmethod
    def request_online_attendance(reservation_id, student_id, now=None):
        """
        File an online attendance request for an in-person reservation.

        Args:
            reservation_id: Confirmed in-person reservation of the student
            student_id: Requesting student
            now: Current time, defaults to datetime.now()

        Raises:
            ReservationNotFound, PermissionDenied, InvalidReservationState,
            OnlineRequestAlreadyExists, OnlineRequestTooLate
        """
        now = now or datetime.now()

        with transaction(logger, f'request online attendance for reservation {reservation_id}'):
            reservation = ReservationService.get(reservation_id)
            if reservation.student_id != student_id:
                raise PermissionDenied("The reservation does not belong to this student")
            if reservation.status != ReservationStatus.CONFIRMED:
                raise InvalidReservationState(f"Reservation is {reservation.status}, expected confirmed")
            if reservation.mode != ReservationMode.IN_PERSON:
                raise InvalidReservationState("Only in-person reservations can request online attendance")
            if reservation.has_online_request:
                raise OnlineRequestAlreadyExists(
                    f"An online request already exists with status {reservation.online_request_status}"
                )

            min_hours = current_app.config.get('ONLINE_REQUEST_MIN_HOURS', 6)
            deadline = reservation.session.starts_at - timedelta(hours=min_hours)
            if now > deadline:
                logger.warning(f"Online request for reservation {reservation_id} is too late "
                               f"(deadline {deadline.isoformat()})")
                raise OnlineRequestTooLate(
                    f"Online attendance must be requested at least {min_hours} hours before the session",
                    deadline=deadline.isoformat()
                )

            reservation.online_request_status = OnlineRequestStatus.PENDING
            reservation.online_requested_at = now

        logger.info(f"Student {student_id} requested online attendance for reservation {reservation_id}")
        return reservation

    @staticmethod
    def process_online_request(reservation_id, teacher_id, approved):
        """
        Approve or reject a pending online request.

        Only the teacher of the session's group or an admin may decide.
        """
        with transaction(logger, f'process online request for reservation {reservation_id}'):
            reservation = ReservationService.get(reservation_id)
            # Approval releases an in-person seat
            session = ReservationService.lock_session(reservation.session_id)

            processor = db.session.get(User, teacher_id) if teacher_id else None
            if not processor:
                raise PermissionDenied("Unknown user can not process online requests")
            is_group_teacher = session.group is not None and session.group.teacher_id == processor.id
            if not (processor.is_admin() or is_group_teacher):
                raise PermissionDenied("Only the session's teacher or an admin can process online requests")

            if reservation.online_request_status != OnlineRequestStatus.PENDING:
                raise InvalidReservationState(
                    f"Online request is {reservation.online_request_status or 'absent'}, expected pending"
                )

            if approved:
                reservation.approve_online_request(processor.id)
            else:
                reservation.reject_online_request(processor.id)

        logger.info(f"Online request for reservation {reservation_id} "
                    f"{'approved' if approved else 'rejected'} by {teacher_id}")
        return reservation

    @staticmethod
    def pending_online_requests_for_teacher(teacher_id):
        """Pending requests in sessions of the groups the teacher teaches, soonest first."""
        return SessionReservation.query.join(
            Session, Session.id == SessionReservation.session_id
        ).join(
            SubjectGroup, SubjectGroup.id == Session.group_id
        ).filter(
            SubjectGroup.teacher_id == teacher_id,
            SessionReservation.online_request_status == OnlineRequestStatus.PENDING
        ).order_by(Session.date, Session.start_time).all()
