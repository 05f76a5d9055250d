# services/session_service.py
"""
Session Service.
Direct creation and maintenance of sessions outside batch generation: ad-hoc
EXTRA sessions for a group, subject-level SCHEDULING meetings, and manual
REGULAR sessions tied to a schedule.
"""

import logging

from academy.errors import (
    SessionNotFound, InvalidSessionState, SessionConflict, ValidationError,
    GroupNotFound, SubjectNotFound, ScheduleNotFound
)
from academy.extensions import db
from academy.models import (
    Session, SessionStatus, SessionType, SessionMode, SessionReservation,
    Schedule, Subject, SubjectGroup, Classroom
)
from .auto_reservation_service import AutoReservationService
from .conflict_service import ConflictService
from .filters import SessionFilters
from .reservation_service import ReservationService
from .schedule_service import ScheduleService
from .session_generation_service import SessionGenerationService
from .transaction import transaction

logger = logging.getLogger('session_service')

UPDATABLE_FIELDS = ('date', 'start_time', 'end_time', 'classroom', 'mode')


def _slot_taken():
    return SessionConflict("A session already exists for that schedule and date")


class SessionService:

    @staticmethod
    def _resolve_mode(classroom, mode, group=None):
        if mode is None:
            return SessionGenerationService.derive_mode(classroom, group)
        if mode not in SessionMode.ALL:
            raise ValidationError(f"Invalid session mode: {mode}")
        if Classroom.is_virtual(classroom) and mode != SessionMode.ONLINE:
            raise ValidationError("Sessions in the virtual classroom must be online")
        return mode

    @staticmethod
    def _check_conflicts(session_date, start_time, end_time, classroom, mode, group, subject_id,
                         exclude_ids=(), schedule_id=None):
        ScheduleService.validate_time_range(start_time, end_time)
        ConflictService.check_session_classroom_conflict(session_date, start_time, end_time, classroom,
                                                         exclude_ids)
        ConflictService.check_session_schedule_slot_conflict(session_date, start_time, end_time, classroom,
                                                             exclude_schedule_id=schedule_id)
        ConflictService.check_session_teacher_conflict(
            group.teacher_id if group else None, subject_id, session_date, start_time, end_time, mode,
            exclude_ids=exclude_ids
        )

    @staticmethod
    def create(session_type, session_date, start_time=None, end_time=None, classroom=None, subject_id=None,
               group_id=None, schedule_id=None, mode=None):
        """
        Create a single session.

        REGULAR sessions come from a schedule and inherit its group and room;
        EXTRA sessions belong to a group; SCHEDULING sessions belong to a
        subject only and always run online in the virtual classroom.

        Returns:
            Session: The persisted session
        """
        if session_type not in SessionType.ALL:
            raise ValidationError(f"Invalid session type: {session_type}")

        with transaction(logger, f'create {session_type} session', integrity_error=_slot_taken):
            group = None

            if session_type == SessionType.REGULAR:
                if not schedule_id:
                    raise ValidationError("Regular sessions require a schedule")
                schedule = db.session.get(Schedule, schedule_id)
                if not schedule:
                    raise ScheduleNotFound(f"Schedule {schedule_id} not found")
                if group_id and group_id != schedule.group_id:
                    raise ValidationError("Regular sessions belong to the group of their schedule")
                group = schedule.group
                classroom = classroom or schedule.classroom
                start_time = start_time or schedule.start_time
                end_time = end_time or schedule.end_time
                if Session.query.filter_by(schedule_id=schedule.id, date=session_date).first():
                    raise _slot_taken()

            elif session_type == SessionType.EXTRA:
                if schedule_id:
                    raise ValidationError("Extra sessions can not reference a schedule")
                group = db.session.get(SubjectGroup, group_id) if group_id else None
                if not group:
                    raise GroupNotFound(f"Group {group_id} not found")

            else:
                if group_id or schedule_id:
                    raise ValidationError("Scheduling sessions can not reference a group or schedule")
                if not subject_id:
                    raise ValidationError("Scheduling sessions require a subject")
                classroom = Classroom.AULA_VIRTUAL
                mode = SessionMode.ONLINE

            if group is not None:
                if subject_id and subject_id != group.subject_id:
                    raise ValidationError("Session subject must match the group's subject")
                subject_id = group.subject_id
            elif not db.session.get(Subject, subject_id):
                raise SubjectNotFound(f"Subject {subject_id} not found")

            if not Classroom.is_valid(classroom):
                raise ValidationError(f"Invalid classroom: {classroom}")
            mode = SessionService._resolve_mode(classroom, mode, group)

            SessionService._check_conflicts(
                session_date, start_time, end_time, classroom, mode, group, subject_id,
                schedule_id=schedule_id if session_type == SessionType.REGULAR else None
            )

            session = Session(
                subject_id=subject_id,
                group_id=group.id if group else None,
                schedule_id=schedule_id if session_type == SessionType.REGULAR else None,
                date=session_date,
                start_time=start_time,
                end_time=end_time,
                classroom=classroom,
                mode=mode,
                status=SessionStatus.SCHEDULED,
                session_type=session_type
            )
            db.session.add(session)
            db.session.flush()

            reservations = AutoReservationService.reserve_for_session(session)

        logger.info(f"Created {session_type} session {session.id} on {session_date} "
                    f"({len(reservations)} reservations)")
        return session

    @staticmethod
    def get(session_id):
        session = db.session.get(Session, session_id) if session_id else None
        if not session:
            raise SessionNotFound(f"Session {session_id} not found")
        return session

    @staticmethod
    def find(filters=None):
        filters = filters or SessionFilters()
        sessions = filters.apply(Session.query).all()
        logger.debug(f"Found {len(sessions)} sessions for {filters}")
        return sessions

    @staticmethod
    def update(session_id, **changes):
        """Reschedule a session in place while it is still scheduled."""
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        with transaction(logger, f'update session {session_id}', integrity_error=_slot_taken):
            session = Session.query.filter_by(id=session_id).with_for_update().first()
            if not session:
                raise SessionNotFound(f"Session {session_id} not found")
            if session.status != SessionStatus.SCHEDULED:
                raise InvalidSessionState(
                    f"Cannot update a session with status {session.status}",
                    current_status=session.status,
                    operation='update'
                )

            merged = {field: getattr(session, field) for field in UPDATABLE_FIELDS}
            merged.update({k: v for k, v in changes.items() if v is not None})

            if session.session_type == SessionType.SCHEDULING:
                merged['classroom'] = Classroom.AULA_VIRTUAL
                merged['mode'] = SessionMode.ONLINE
            if not Classroom.is_valid(merged['classroom']):
                raise ValidationError(f"Invalid classroom: {merged['classroom']}")
            if 'classroom' in changes and 'mode' not in changes:
                merged['mode'] = SessionGenerationService.derive_mode(merged['classroom'], session.group)
            merged['mode'] = SessionService._resolve_mode(merged['classroom'], merged['mode'], session.group)

            SessionService._check_conflicts(
                merged['date'], merged['start_time'], merged['end_time'], merged['classroom'],
                merged['mode'], session.group, session.subject_id, exclude_ids=(session.id,),
                schedule_id=session.schedule_id
            )

            for field, value in merged.items():
                setattr(session, field, value)
            db.session.flush()
            moved_online = ReservationService.release_overflow_seats(session)

        logger.info(f"Updated session {session_id}: {changes} ({moved_online} in-person seats moved online)")
        return session

    @staticmethod
    def delete(session_id):
        """Delete a scheduled session together with its reservations."""
        with transaction(logger, f'delete session {session_id}'):
            session = Session.query.filter_by(id=session_id).with_for_update().first()
            if not session:
                raise SessionNotFound(f"Session {session_id} not found")
            if session.status != SessionStatus.SCHEDULED:
                raise InvalidSessionState(
                    f"Cannot delete a session with status {session.status}",
                    current_status=session.status,
                    operation='delete'
                )

            recorded = SessionReservation.query.filter(
                SessionReservation.session_id == session.id,
                SessionReservation.attendance_status.isnot(None)
            ).count()
            if recorded:
                raise InvalidSessionState("Cannot delete a session with recorded attendance",
                                          current_status=session.status, operation='delete')

            SessionReservation.query.filter_by(session_id=session.id).delete(synchronize_session=False)
            db.session.delete(session)

        logger.info(f"Deleted session {session_id}")
