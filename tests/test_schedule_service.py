import itertools

import pytest

from academy.errors import (
    ScheduleConflict, TeacherScheduleConflict, InvalidScheduleData, GroupNotFound, ScheduleNotFound
)
from academy.extensions import db
from academy.models import Classroom, Schedule, Session
from academy.services import ScheduleService, ConflictService
from tests.factories import make_group, make_subject, make_user, make_session, make_schedule, t


def test_overlapping_slot_in_same_classroom_conflicts_and_touching_slot_does_not():
    group_a = make_group()
    group_b = make_group()
    group_c = make_group()

    ScheduleService.create(group_a.id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)

    with pytest.raises(ScheduleConflict) as exc:
        ScheduleService.create(group_b.id, 'monday', t('10:00'), t('12:00'), Classroom.AULA_PORTAL1)
    assert 'monday' in exc.value.message
    assert '09:00-11:00' in exc.value.message

    schedule_c = ScheduleService.create(group_c.id, 'monday', t('11:00'), t('13:00'), Classroom.AULA_PORTAL1)
    assert schedule_c.id is not None
    assert Schedule.query.count() == 2


def test_same_time_in_other_classroom_or_other_day_is_allowed():
    ScheduleService.create(make_group().id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)
    ScheduleService.create(make_group().id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL2)
    ScheduleService.create(make_group().id, 'tuesday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)

    assert Schedule.query.count() == 3


def test_virtual_classroom_never_conflicts_on_classroom():
    ScheduleService.create(make_group().id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_VIRTUAL)
    ScheduleService.create(make_group().id, 'monday', t('09:30'), t('10:30'), Classroom.AULA_VIRTUAL)

    assert Schedule.query.filter_by(classroom=Classroom.AULA_VIRTUAL).count() == 2


@pytest.mark.parametrize('start, end', [('11:00', '09:00'), ('10:00', '10:00')])
def test_invalid_time_range_is_rejected(start, end):
    group = make_group()
    with pytest.raises(InvalidScheduleData):
        ScheduleService.create(group.id, 'monday', t(start), t(end), Classroom.AULA_PORTAL1)


def test_missing_time_is_rejected():
    group = make_group()
    with pytest.raises(InvalidScheduleData):
        ScheduleService.create(group.id, 'monday', None, t('10:00'), Classroom.AULA_PORTAL1)


def test_unknown_group_is_rejected():
    with pytest.raises(GroupNotFound):
        ScheduleService.create('missing', 'monday', t('09:00'), t('10:00'), Classroom.AULA_PORTAL1)


def test_teacher_can_not_teach_two_overlapping_schedules():
    teacher = make_user('teacher')
    first = make_group(teacher=teacher)
    second = make_group(teacher=teacher)

    ScheduleService.create(first.id, 'wednesday', t('16:00'), t('18:00'), Classroom.AULA_PORTAL1)
    with pytest.raises(TeacherScheduleConflict):
        ScheduleService.create(second.id, 'wednesday', t('17:00'), t('19:00'), Classroom.AULA_PORTAL2)


def test_teacher_online_lecture_for_groups_of_same_subject_is_allowed():
    teacher = make_user('teacher')
    subject = make_subject()
    first = make_group(subject=subject, teacher=teacher)
    second = make_group(subject=subject, teacher=teacher)

    ScheduleService.create(first.id, 'friday', t('18:00'), t('20:00'), Classroom.AULA_VIRTUAL)
    ScheduleService.create(second.id, 'friday', t('18:00'), t('20:00'), Classroom.AULA_VIRTUAL)

    assert Schedule.query.count() == 2


def test_teacher_online_lecture_of_different_subject_conflicts():
    teacher = make_user('teacher')
    first = make_group(teacher=teacher)
    second = make_group(teacher=teacher)

    ScheduleService.create(first.id, 'friday', t('18:00'), t('20:00'), Classroom.AULA_VIRTUAL)
    with pytest.raises(TeacherScheduleConflict):
        ScheduleService.create(second.id, 'friday', t('19:00'), t('21:00'), Classroom.AULA_VIRTUAL)


def test_update_merges_partial_fields_and_ignores_itself():
    group = make_group()
    schedule = ScheduleService.create(group.id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)

    updated = ScheduleService.update(schedule.id, end_time=t('12:00'))

    assert updated.start_time == t('09:00')
    assert updated.end_time == t('12:00')
    assert updated.classroom == Classroom.AULA_PORTAL1
    assert updated.day_of_week == 'monday'


def test_update_into_occupied_slot_conflicts_and_leaves_schedule_unchanged():
    schedule = ScheduleService.create(make_group().id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)
    ScheduleService.create(make_group().id, 'monday', t('12:00'), t('14:00'), Classroom.AULA_PORTAL1)

    with pytest.raises(ScheduleConflict):
        ScheduleService.update(schedule.id, end_time=t('13:00'))

    assert db.session.get(Schedule, schedule.id).end_time == t('11:00')


def test_update_rejects_merged_range_that_becomes_invalid():
    schedule = ScheduleService.create(make_group().id, 'monday', t('09:00'), t('11:00'), Classroom.AULA_PORTAL1)
    with pytest.raises(InvalidScheduleData):
        ScheduleService.update(schedule.id, start_time=t('11:30'))


def test_delete_keeps_generated_sessions_detached():
    group = make_group()
    schedule = make_schedule(group)
    session = make_session(group, schedule=schedule, session_type='regular')

    detached = ScheduleService.delete(schedule.id)

    assert detached == 1
    assert db.session.get(Schedule, schedule.id) is None
    remaining = db.session.get(Session, session.id)
    assert remaining is not None
    assert remaining.schedule_id is None


def test_get_unknown_schedule_raises():
    with pytest.raises(ScheduleNotFound):
        ScheduleService.get('missing')


def test_list_by_group_is_in_week_order():
    group = make_group()
    make_schedule(group, 'thursday', '09:00', '10:00', Classroom.AULA_PORTAL2)
    make_schedule(group, 'monday', '15:00', '16:00')
    make_schedule(group, 'monday', '09:00', '10:00')
    make_schedule(make_group(), 'monday', '11:00', '12:00')

    schedules = ScheduleService.list_by_group(group.id)

    assert [(s.day_of_week, s.start_time.strftime('%H:%M')) for s in schedules] == [
        ('monday', '09:00'), ('monday', '15:00'), ('thursday', '09:00')
    ]


def test_accepted_schedules_never_overlap_in_a_physical_classroom():
    attempts = [
        ('monday', '08:00', '10:00'), ('monday', '09:00', '11:00'), ('monday', '10:00', '12:00'),
        ('monday', '11:30', '12:30'), ('monday', '07:00', '13:00'), ('monday', '12:00', '14:00'),
        ('tuesday', '09:00', '11:00'), ('tuesday', '10:59', '11:30'), ('tuesday', '11:00', '11:30'),
    ]
    for day, start, end in attempts:
        try:
            ScheduleService.create(make_group().id, day, t(start), t(end), Classroom.AULA_PORTAL1)
        except ScheduleConflict:
            pass

    schedules = Schedule.query.filter_by(classroom=Classroom.AULA_PORTAL1).all()
    assert len(schedules) == 5
    for a, b in itertools.combinations(schedules, 2):
        if a.day_of_week == b.day_of_week:
            assert not ConflictService.time_overlaps(a.start_time, a.end_time, b.start_time, b.end_time)
