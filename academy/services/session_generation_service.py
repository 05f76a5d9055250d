# services/session_generation_service.py
"""
Session Generator.
Expands recurring schedules into dated REGULAR sessions over a date range.

Generation is idempotent: a session is never created twice for the same
(schedule, date). Concurrent runs over overlapping ranges are absorbed by the
unique constraint on (schedule_id, date): the losing run rolls back, re-reads
what already exists and retries, skipping the dates the other run created.
"""

import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from academy.errors import AcademyError, InvalidSessionState, GroupNotFound, ValidationError
from academy.extensions import db
from academy.models import (
    Schedule, SubjectGroup, GroupStatus, Session, SessionStatus, SessionType, SessionMode,
    Classroom, DayOfWeek
)
from .auto_reservation_service import AutoReservationService
from .conflict_service import ConflictService

logger = logging.getLogger('session_generation_service')

MAX_ATTEMPTS = 3


class SessionGenerationService:

    @staticmethod
    def derive_mode(classroom, group):
        """Virtual room is online; intensive groups in a physical room are dual."""
        if Classroom.is_virtual(classroom):
            return SessionMode.ONLINE
        if group is not None and group.is_intensive:
            return SessionMode.DUAL
        return SessionMode.IN_PERSON

    @staticmethod
    def _validate_range(start_date, end_date):
        if start_date is None or end_date is None:
            raise ValidationError("Start date and end date are required")
        if start_date > end_date:
            raise ValidationError(
                f"Start date ({start_date.isoformat()}) must be on or before end date ({end_date.isoformat()})"
            )

        max_days = current_app.config.get('MAX_GENERATION_DAYS', 366)
        days = (end_date - start_date).days + 1
        if days > max_days:
            raise ValidationError(f"Date range of {days} days exceeds the maximum of {max_days}")

    @staticmethod
    def _schedules_in_scope(group_id):
        if group_id:
            group = db.session.get(SubjectGroup, group_id)
            if not group:
                raise GroupNotFound(f"Group {group_id} not found")
            if group.is_cancelled:
                raise InvalidSessionState(f"Cannot generate sessions for cancelled group {group_id}")
            return Schedule.query.filter_by(group_id=group.id).all()

        return Schedule.query.join(SubjectGroup, Schedule.group_id == SubjectGroup.id).filter(
            SubjectGroup.status != GroupStatus.CANCELLED
        ).all()

    @staticmethod
    def _build_candidates(group_id, start_date, end_date):
        """Compute the sessions missing in the range, checking classroom and teacher conflicts."""
        SessionGenerationService._validate_range(start_date, end_date)
        schedules = SessionGenerationService._schedules_in_scope(group_id)
        if not schedules:
            logger.debug(f"No schedules in scope for group {group_id or 'ALL'}")
            return []

        by_day = {}
        for schedule in schedules:
            by_day.setdefault(schedule.day_of_week, []).append(schedule)
        for day_schedules in by_day.values():
            day_schedules.sort(key=lambda s: s.start_time)

        existing = {
            (row.schedule_id, row.date)
            for row in db.session.query(Session.schedule_id, Session.date).filter(
                Session.schedule_id.in_([s.id for s in schedules]),
                Session.date >= start_date,
                Session.date <= end_date
            )
        }

        candidates = []
        batch = []
        current = start_date
        while current <= end_date:
            for schedule in by_day.get(DayOfWeek.from_date(current), ()):
                if (schedule.id, current) in existing:
                    logger.debug(f"Session for schedule {schedule.id} on {current} already exists, skipping")
                    continue

                group = schedule.group
                candidate = Session(
                    subject_id=group.subject_id,
                    group_id=group.id,
                    schedule_id=schedule.id,
                    date=current,
                    start_time=schedule.start_time,
                    end_time=schedule.end_time,
                    classroom=schedule.classroom,
                    mode=SessionGenerationService.derive_mode(schedule.classroom, group),
                    status=SessionStatus.SCHEDULED,
                    session_type=SessionType.REGULAR
                )

                ConflictService.check_session_classroom_conflict(
                    current, candidate.start_time, candidate.end_time, candidate.classroom,
                    batch=candidates
                )
                ConflictService.check_session_teacher_conflict(
                    group.teacher_id, group.subject_id, current,
                    candidate.start_time, candidate.end_time, candidate.mode,
                    batch=batch
                )

                batch.append((candidate, group.teacher_id))
                candidates.append(candidate)
            current += timedelta(days=1)

        return candidates

    @staticmethod
    def preview(group_id, start_date, end_date):
        """
        Compute the sessions generate() would create, without persisting anything.

        Returns:
            list: Unsaved Session objects
        """
        try:
            candidates = SessionGenerationService._build_candidates(group_id, start_date, end_date)
            logger.debug(f"Preview for group {group_id or 'ALL'} {start_date}..{end_date}: "
                         f"{len(candidates)} sessions")
            return candidates
        finally:
            # Candidates are never added, but release any row locks taken by the checks
            db.session.rollback()

    @staticmethod
    def generate(group_id, start_date, end_date):
        """
        Generate REGULAR sessions for the schedules in scope and reserve seats
        for the enrolled students.

        Args:
            group_id: Restrict to one group, or None for every non-cancelled group
            start_date: First date, inclusive
            end_date: Last date, inclusive

        Returns:
            list: Newly created sessions (empty when everything already exists)

        Raises:
            ValidationError: Missing dates, reversed or oversized range
            InvalidSessionState: Cancelled group
            GroupNotFound: Unknown group
            SessionConflict: Classroom double-booked on some date
            TeacherSessionConflict: Teacher double-booked on some date
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                sessions = SessionGenerationService._build_candidates(group_id, start_date, end_date)
                if sessions:
                    db.session.add_all(sessions)
                    db.session.flush()

                    reservation_count = 0
                    for session in sessions:
                        reservation_count += len(AutoReservationService.reserve_for_session(session))
                else:
                    reservation_count = 0

                db.session.commit()

                logger.info(f"Generated {len(sessions)} sessions and {reservation_count} reservations "
                            f"for group {group_id or 'ALL'} from {start_date} to {end_date}")
                return sessions

            except IntegrityError as e:
                db.session.rollback()
                if attempt == MAX_ATTEMPTS:
                    logger.error(f"Session generation kept colliding after {attempt} attempts: {str(e)}",
                                 exc_info=True)
                    raise
                logger.warning(f"Concurrent session generation detected (attempt {attempt}), re-checking")

            except AcademyError:
                db.session.rollback()
                raise

            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to generate sessions: {str(e)}", exc_info=True)
                raise
