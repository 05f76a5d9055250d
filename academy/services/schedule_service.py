# services/schedule_service.py
"""
Schedule Store.
Owns the recurring weekly slots of every group and refuses any create or
update that would double-book a classroom or a teacher.
"""

import logging

from academy.errors import InvalidScheduleData, ScheduleConflict, ScheduleNotFound, GroupNotFound
from academy.extensions import db
from academy.models import Schedule, SubjectGroup, Session, Classroom, DayOfWeek
from .conflict_service import ConflictService
from .filters import ScheduleFilters
from .transaction import transaction

logger = logging.getLogger('schedule_service')

UPDATABLE_FIELDS = ('group_id', 'day_of_week', 'start_time', 'end_time', 'classroom')


def _slot_taken():
    return ScheduleConflict("The classroom slot was booked by a concurrent request")


class ScheduleService:

    @staticmethod
    def validate_time_range(start_time, end_time):
        if start_time is None or end_time is None:
            raise InvalidScheduleData("Start time and end time are required")
        if start_time >= end_time:
            raise InvalidScheduleData(
                f"Start time ({start_time.strftime('%H:%M')}) must be before end time "
                f"({end_time.strftime('%H:%M')})"
            )

    @staticmethod
    def _validate_slot(day_of_week, classroom):
        if not DayOfWeek.is_valid(day_of_week):
            raise InvalidScheduleData(f"Invalid day of week: {day_of_week}")
        if not Classroom.is_valid(classroom):
            raise InvalidScheduleData(f"Invalid classroom: {classroom}")

    @staticmethod
    def _get_group(group_id):
        group = db.session.get(SubjectGroup, group_id) if group_id else None
        if not group:
            raise GroupNotFound(f"Group {group_id} not found")
        return group

    @staticmethod
    def create(group_id, day_of_week, start_time, end_time, classroom):
        """
        Create a recurring weekly slot for a group.

        Returns:
            Schedule: The persisted schedule

        Raises:
            GroupNotFound, InvalidScheduleData, ScheduleConflict, TeacherScheduleConflict
        """
        with transaction(logger, 'create schedule', integrity_error=_slot_taken):
            group = ScheduleService._get_group(group_id)
            ScheduleService._validate_slot(day_of_week, classroom)
            ScheduleService.validate_time_range(start_time, end_time)

            ConflictService.check_schedule_conflicts(group, day_of_week, start_time, end_time, classroom)

            schedule = Schedule(
                group_id=group.id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                classroom=classroom
            )
            db.session.add(schedule)
            db.session.flush()

        logger.info(f"Created schedule {schedule.id} for group {group_id}: {day_of_week} "
                    f"{start_time.strftime('%H:%M')}-{end_time.strftime('%H:%M')} in {classroom}")
        return schedule

    @staticmethod
    def update(schedule_id, **changes):
        """
        Update a schedule; missing fields keep their current values.

        The merged slot is validated and conflict-checked as a whole,
        ignoring the schedule itself.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise InvalidScheduleData(f"Unknown schedule fields: {', '.join(sorted(unknown))}")

        with transaction(logger, f'update schedule {schedule_id}', integrity_error=_slot_taken):
            schedule = ScheduleService.get(schedule_id)

            merged = {field: getattr(schedule, field) for field in UPDATABLE_FIELDS}
            merged.update({k: v for k, v in changes.items() if v is not None})

            group = ScheduleService._get_group(merged['group_id'])
            ScheduleService._validate_slot(merged['day_of_week'], merged['classroom'])
            ScheduleService.validate_time_range(merged['start_time'], merged['end_time'])

            ConflictService.check_schedule_conflicts(
                group, merged['day_of_week'], merged['start_time'], merged['end_time'],
                merged['classroom'], exclude_id=schedule.id
            )

            for field, value in merged.items():
                setattr(schedule, field, value)
            db.session.flush()

        logger.info(f"Updated schedule {schedule_id}: {changes}")
        return schedule

    @staticmethod
    def delete(schedule_id):
        """Delete a schedule; sessions generated from it stay, detached from the slot."""
        with transaction(logger, f'delete schedule {schedule_id}'):
            schedule = ScheduleService.get(schedule_id)

            detached = Session.query.filter_by(schedule_id=schedule.id).update(
                {Session.schedule_id: None}, synchronize_session=False
            )
            db.session.delete(schedule)

        logger.info(f"Deleted schedule {schedule_id} ({detached} sessions detached)")
        return detached

    @staticmethod
    def get(schedule_id):
        schedule = db.session.get(Schedule, schedule_id) if schedule_id else None
        if not schedule:
            raise ScheduleNotFound(f"Schedule {schedule_id} not found")
        return schedule

    @staticmethod
    def list_by_group(group_id):
        ScheduleService._get_group(group_id)
        return ScheduleService.find(ScheduleFilters(group_id=group_id))

    @staticmethod
    def find(filters=None):
        filters = filters or ScheduleFilters()
        query = filters.apply(Schedule.query)
        schedules = query.all()

        # Week order, then time of day
        schedules.sort(key=lambda s: (DayOfWeek.index(s.day_of_week), s.start_time))
        logger.debug(f"Found {len(schedules)} schedules for {filters}")
        return schedules
