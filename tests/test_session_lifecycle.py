from datetime import date

import pytest

from academy.errors import (
    InvalidSessionState, SessionConflict, TeacherSessionConflict, InvalidScheduleData, ValidationError,
    SessionNotFound
)
from academy.extensions import db
from academy.models import (
    Classroom, Session, SessionStatus, SessionMode, SessionType, SessionReservation, ReservationStatus,
    ReservationMode
)
from academy.services import SessionLifecycleService
from tests.factories import (
    MONDAY, TUESDAY, make_group, make_schedule, make_session, make_enrollment, make_reservation, make_user,
    fill_in_person, t
)


def test_start_then_complete_records_topics():
    session = make_session(make_group())

    SessionLifecycleService.start_session(session.id)
    completed = SessionLifecycleService.complete_session(session.id, '  Recursion and stacks ')

    assert completed.status == SessionStatus.COMPLETED
    assert completed.topics_covered == 'Recursion and stacks'


def test_complete_requires_started_session():
    session = make_session(make_group())

    with pytest.raises(InvalidSessionState) as exc:
        SessionLifecycleService.complete_session(session.id)

    assert exc.value.details['current_status'] == SessionStatus.SCHEDULED
    assert exc.value.details['operation'] == 'complete'
    assert db.session.get(Session, session.id).status == SessionStatus.SCHEDULED


@pytest.mark.parametrize('status', [SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.POSTPONED])
def test_terminal_sessions_reject_every_transition(status):
    session = make_session(make_group(), status=status)

    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.start_session(session.id)
    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.complete_session(session.id)
    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.cancel_session(session.id, 'Teacher is ill')
    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.postpone_session(session.id, TUESDAY)


def test_in_progress_session_can_not_be_cancelled_or_postponed():
    session = make_session(make_group(), status=SessionStatus.IN_PROGRESS)

    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.cancel_session(session.id, 'Fire alarm')
    with pytest.raises(InvalidSessionState):
        SessionLifecycleService.postpone_session(session.id, TUESDAY)


def test_unknown_session_raises_not_found():
    with pytest.raises(SessionNotFound):
        SessionLifecycleService.start_session('missing')


def test_cancel_requires_reason():
    session = make_session(make_group())

    with pytest.raises(ValidationError):
        SessionLifecycleService.cancel_session(session.id, '   ')

    assert db.session.get(Session, session.id).status == SessionStatus.SCHEDULED


def test_cancel_cancels_confirmed_reservations_and_notifies(sent_notifications):
    group = make_group()
    session = make_session(group)
    enrollments = fill_in_person(session, group, 2)

    cancelled = SessionLifecycleService.cancel_session(session.id, 'Teacher is ill')

    assert cancelled.status == SessionStatus.CANCELLED
    assert cancelled.cancellation_reason == 'Teacher is ill'
    statuses = {r.status for r in SessionReservation.query.filter_by(session_id=session.id)}
    assert statuses == {ReservationStatus.CANCELLED}

    assert len(sent_notifications) == 1
    kind, session_id, recipients, reason = sent_notifications[0]
    assert (kind, session_id, reason) == ('cancelled', session.id, 'Teacher is ill')
    assert len(recipients) == len(enrollments)


def test_postpone_creates_replacement_and_moves_reservations(sent_notifications):
    group = make_group()
    schedule = make_schedule(group)
    session = make_session(group, schedule=schedule, session_type='regular')
    fill_in_person(session, group, 3)
    next_week = date(2030, 1, 14)

    replacement = SessionLifecycleService.postpone_session(session.id, next_week)

    original = db.session.get(Session, session.id)
    assert original.status == SessionStatus.POSTPONED
    assert original.postponed_to_date == next_week

    assert replacement.status == SessionStatus.SCHEDULED
    assert replacement.date == next_week
    assert replacement.start_time == original.start_time
    assert replacement.classroom == original.classroom
    assert replacement.mode == original.mode
    assert replacement.group_id == group.id
    assert replacement.subject_id == original.subject_id
    assert replacement.session_type == original.session_type
    assert replacement.schedule_id == schedule.id

    assert SessionReservation.query.filter_by(session_id=replacement.id,
                                              status=ReservationStatus.CONFIRMED).count() == 3
    assert SessionReservation.query.filter_by(session_id=session.id).count() == 0
    assert sent_notifications[0][:3] == ('postponed', session.id, replacement.id)


def test_postpone_on_same_date_detaches_from_schedule_as_extra_session():
    group = make_group()
    schedule = make_schedule(group)
    session = make_session(group, schedule=schedule, session_type='regular')

    replacement = SessionLifecycleService.postpone_session(session.id, MONDAY, t('15:00'), t('17:00'))

    assert replacement.schedule_id is None
    assert replacement.session_type == SessionType.EXTRA
    assert replacement.start_time == t('15:00')


def test_postpone_to_virtual_classroom_moves_everyone_online():
    group = make_group()
    session = make_session(group)
    fill_in_person(session, group, 2)

    replacement = SessionLifecycleService.postpone_session(session.id, TUESDAY,
                                                           new_classroom=Classroom.AULA_VIRTUAL)

    assert replacement.mode == SessionMode.ONLINE
    modes = {r.mode for r in SessionReservation.query.filter_by(session_id=replacement.id)}
    assert modes == {ReservationMode.ONLINE}


def test_postpone_into_occupied_classroom_fails_and_keeps_original():
    session = make_session(make_group())
    make_session(make_group(), session_date=TUESDAY, start='10:00', end='12:00')

    with pytest.raises(SessionConflict):
        SessionLifecycleService.postpone_session(session.id, TUESDAY)

    assert db.session.get(Session, session.id).status == SessionStatus.SCHEDULED
    assert Session.query.count() == 2


def test_postpone_ignores_the_original_slot_itself():
    session = make_session(make_group())

    replacement = SessionLifecycleService.postpone_session(session.id, MONDAY, t('10:00'), t('12:00'))

    assert replacement.start_time == t('10:00')


def test_postpone_into_a_pending_weekly_slot_fails():
    make_schedule(make_group(), 'tuesday', '10:00', '12:00')
    session = make_session(make_group())

    with pytest.raises(SessionConflict):
        SessionLifecycleService.postpone_session(session.id, TUESDAY)

    assert db.session.get(Session, session.id).status == SessionStatus.SCHEDULED


def test_postpone_into_busy_teacher_slot_fails():
    teacher = make_user('teacher')
    session = make_session(make_group(teacher=teacher))
    make_session(make_group(teacher=teacher), session_date=TUESDAY, classroom=Classroom.AULA_PORTAL2)

    with pytest.raises(TeacherSessionConflict):
        SessionLifecycleService.postpone_session(session.id, TUESDAY)


def test_postpone_validates_new_time_range():
    session = make_session(make_group())

    with pytest.raises(InvalidScheduleData):
        SessionLifecycleService.postpone_session(session.id, TUESDAY, t('12:00'), t('10:00'))


def test_postpone_keeps_seat_count_within_new_classroom_capacity(app):
    app.config['CLASSROOM_CAPACITY'] = dict(app.config['CLASSROOM_CAPACITY'], aula_portal2=2)
    group = make_group()
    session = make_session(group)
    fill_in_person(session, group, 3)

    replacement = SessionLifecycleService.postpone_session(session.id, TUESDAY,
                                                           new_classroom=Classroom.AULA_PORTAL2)

    in_person = SessionReservation.query.filter_by(session_id=replacement.id,
                                                   mode=ReservationMode.IN_PERSON).count()
    online = SessionReservation.query.filter_by(session_id=replacement.id, mode=ReservationMode.ONLINE).count()
    assert (in_person, online) == (2, 1)


def test_cancelled_reservations_are_not_moved_on_postpone():
    group = make_group()
    session = make_session(group)
    kept = make_enrollment(group)
    dropped = make_enrollment(group)
    make_reservation(session, kept)
    make_reservation(session, dropped, status=ReservationStatus.CANCELLED)

    replacement = SessionLifecycleService.postpone_session(session.id, TUESDAY)

    moved = SessionReservation.query.filter_by(session_id=replacement.id).all()
    assert [r.student_id for r in moved] == [kept.student_id]
