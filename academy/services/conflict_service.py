# services/conflict_service.py
"""
Classroom and teacher double-booking detection.

Classrooms and teachers are shared across groups, so every check looks at all
schedules (or sessions) globally. Ranges are half-open: a slot ending at 11:00
does not overlap one starting at 11:00. The virtual classroom never produces
classroom conflicts.
"""

import logging

from sqlalchemy import exists

from academy.errors import (
    ScheduleConflict, TeacherScheduleConflict, SessionConflict, TeacherSessionConflict
)
from academy.extensions import db
from academy.models import (
    Classroom, DayOfWeek, GroupStatus, Schedule, Session, SessionStatus, SessionMode, SubjectGroup
)

logger = logging.getLogger('conflict_service')

# Sessions that still occupy their room and teacher
OCCUPYING_STATUSES = (SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED)


def _fmt(value):
    return value.strftime('%H:%M')


class ConflictService:

    @staticmethod
    def time_overlaps(start1, end1, start2, end2):
        """True when [start1, end1) and [start2, end2) intersect."""
        return start1 < end2 and end1 > start2

    # ===============================
    # SCHEDULES
    # ===============================

    @staticmethod
    def check_schedule_conflicts(group, day_of_week, start_time, end_time, classroom, exclude_id=None):
        """
        Validate a schedule slot against every existing schedule.

        Args:
            group: SubjectGroup owning the slot
            day_of_week: DayOfWeek value
            start_time: Slot start
            end_time: Slot end
            classroom: Classroom value
            exclude_id: Schedule being updated, ignored in the search

        Raises:
            ScheduleConflict: Classroom already booked
            TeacherScheduleConflict: Teacher already teaching in that slot
        """
        ConflictService.check_schedule_classroom_conflict(day_of_week, start_time, end_time, classroom, exclude_id)
        ConflictService.check_schedule_teacher_conflict(group, day_of_week, start_time, end_time, classroom,
                                                        exclude_id)

    @staticmethod
    def check_schedule_classroom_conflict(day_of_week, start_time, end_time, classroom, exclude_id=None):
        if Classroom.is_virtual(classroom):
            return

        query = Schedule.query.filter(
            Schedule.classroom == classroom,
            Schedule.day_of_week == day_of_week,
            Schedule.start_time < end_time,
            Schedule.end_time > start_time
        )
        if exclude_id:
            query = query.filter(Schedule.id != exclude_id)

        conflicts = query.with_for_update().all()
        if conflicts:
            slots = ', '.join(f"{_fmt(s.start_time)}-{_fmt(s.end_time)}" for s in conflicts)
            logger.warning(f"Classroom conflict in {classroom} on {day_of_week}: {slots}")
            raise ScheduleConflict(
                f"{Classroom.display_name(classroom)} is already booked on {day_of_week} at {slots}",
                classroom=classroom,
                day_of_week=day_of_week,
                conflicting_schedule_ids=[s.id for s in conflicts]
            )

    @staticmethod
    def check_schedule_teacher_conflict(group, day_of_week, start_time, end_time, classroom, exclude_id=None):
        if not group.teacher_id:
            return

        query = db.session.query(Schedule).join(SubjectGroup, Schedule.group_id == SubjectGroup.id).filter(
            SubjectGroup.teacher_id == group.teacher_id,
            Schedule.day_of_week == day_of_week,
            Schedule.start_time < end_time,
            Schedule.end_time > start_time
        )
        if exclude_id:
            query = query.filter(Schedule.id != exclude_id)

        for existing in query.with_for_update().all():
            # Simultaneous online lecture for several groups of the same subject
            if (Classroom.is_virtual(classroom) and existing.is_virtual
                    and existing.group.subject_id == group.subject_id):
                continue

            logger.warning(f"Teacher {group.teacher_id} already teaches on {day_of_week} "
                           f"{_fmt(existing.start_time)}-{_fmt(existing.end_time)}")
            raise TeacherScheduleConflict(
                f"The teacher already has a schedule on {day_of_week} from "
                f"{_fmt(existing.start_time)} to {_fmt(existing.end_time)} "
                f"in {Classroom.display_name(existing.classroom)}",
                teacher_id=group.teacher_id,
                day_of_week=day_of_week,
                conflicting_schedule_ids=[existing.id]
            )

    # ===============================
    # SESSIONS
    # ===============================

    @staticmethod
    def check_session_classroom_conflict(session_date, start_time, end_time, classroom, exclude_ids=(),
                                         batch=None):
        """Raise SessionConflict when an occupying session, or an unsaved one in `batch`, holds the room."""
        if Classroom.is_virtual(classroom):
            return

        query = Session.query.filter(
            Session.classroom == classroom,
            Session.date == session_date,
            Session.status.in_(OCCUPYING_STATUSES),
            Session.start_time < end_time,
            Session.end_time > start_time
        )
        if exclude_ids:
            query = query.filter(Session.id.notin_(list(exclude_ids)))

        conflicts = list(query.with_for_update().all())
        for pending in batch or ():
            if (pending.classroom == classroom and pending.date == session_date and
                    ConflictService.time_overlaps(pending.start_time, pending.end_time, start_time, end_time)):
                conflicts.append(pending)

        if conflicts:
            slots = ', '.join(f"{_fmt(s.start_time)}-{_fmt(s.end_time)}" for s in conflicts)
            logger.warning(f"Session classroom conflict in {classroom} on {session_date}: {slots}")
            raise SessionConflict(
                f"{Classroom.display_name(classroom)} is already booked on {session_date.isoformat()} at {slots}",
                classroom=classroom,
                date=session_date.isoformat(),
                conflicting_session_ids=[s.id for s in conflicts if s.id]
            )

    @staticmethod
    def check_session_schedule_slot_conflict(session_date, start_time, end_time, classroom,
                                             exclude_schedule_id=None):
        """
        Raise SessionConflict when a recurring schedule holds the room that
        weekday and its session for `session_date` has not been generated yet.

        Slots whose session already exists (in any status) are left to
        check_session_classroom_conflict.
        """
        if Classroom.is_virtual(classroom):
            return

        query = Schedule.query.join(SubjectGroup, Schedule.group_id == SubjectGroup.id).filter(
            Schedule.classroom == classroom,
            Schedule.day_of_week == DayOfWeek.from_date(session_date),
            Schedule.start_time < end_time,
            Schedule.end_time > start_time,
            SubjectGroup.status != GroupStatus.CANCELLED,
            ~exists().where(Session.schedule_id == Schedule.id, Session.date == session_date)
        )
        if exclude_schedule_id:
            query = query.filter(Schedule.id != exclude_schedule_id)

        slots = query.with_for_update(of=Schedule).all()
        if slots:
            listed = ', '.join(f"{_fmt(s.start_time)}-{_fmt(s.end_time)}" for s in slots)
            logger.warning(f"Session overlaps recurring schedules in {classroom} on {session_date}: {listed}")
            raise SessionConflict(
                f"{Classroom.display_name(classroom)} is reserved by a weekly schedule on "
                f"{session_date.isoformat()} at {listed}",
                classroom=classroom,
                date=session_date.isoformat(),
                conflicting_schedule_ids=[s.id for s in slots]
            )


    @staticmethod
    def check_session_teacher_conflict(teacher_id, subject_id, session_date, start_time, end_time, mode,
                                       exclude_ids=(), batch=None):
        """
        Raise TeacherSessionConflict when the teacher is busy in that slot.

        Args:
            teacher_id: Teacher of the session's group; nothing is checked when None
            subject_id: Subject of the session, used by the online carve-out
            session_date: Session date
            start_time: Session start
            end_time: Session end
            mode: SessionMode of the new slot
            exclude_ids: Sessions ignored in the search
            batch: Unsaved (Session, teacher_id) pairs built in the same run
        """
        if not teacher_id:
            return

        query = db.session.query(Session).join(SubjectGroup, Session.group_id == SubjectGroup.id).filter(
            SubjectGroup.teacher_id == teacher_id,
            Session.date == session_date,
            Session.status.in_(OCCUPYING_STATUSES),
            Session.start_time < end_time,
            Session.end_time > start_time
        )
        if exclude_ids:
            query = query.filter(Session.id.notin_(list(exclude_ids)))

        candidates = list(query.with_for_update().all())
        for pending, pending_teacher in batch or ():
            if (pending_teacher == teacher_id and pending.date == session_date and
                    ConflictService.time_overlaps(pending.start_time, pending.end_time, start_time, end_time)):
                candidates.append(pending)

        for existing in candidates:
            if (mode == SessionMode.ONLINE and existing.mode == SessionMode.ONLINE
                    and existing.subject_id == subject_id):
                continue

            logger.warning(f"Teacher {teacher_id} already has a session on {session_date} "
                           f"{_fmt(existing.start_time)}-{_fmt(existing.end_time)}")
            raise TeacherSessionConflict(
                f"The teacher already has a session on {session_date.isoformat()} from "
                f"{_fmt(existing.start_time)} to {_fmt(existing.end_time)}",
                teacher_id=teacher_id,
                date=session_date.isoformat(),
                conflicting_session_ids=[existing.id] if existing.id else []
            )
