import pytest

from academy.errors import EnrollmentNotFound, GroupNotFound
from academy.models import (
    Classroom, ReservationMode, ReservationStatus, SessionReservation, SessionStatus, AttendanceStatus
)
from academy.services import AutoReservationService, AttendanceService
from tests.factories import (
    MONDAY, TUESDAY, make_group, make_session, make_enrollment, make_reservation, make_user, enroll_students,
    fill_in_person
)


def test_generate_for_session_is_idempotent():
    group = make_group()
    session = make_session(group)
    enroll_students(group, 3)

    first = AutoReservationService.generate_for_session(session.id)
    second = AutoReservationService.generate_for_session(session.id)

    assert len(first) == 3
    assert second == []
    assert SessionReservation.query.filter_by(session_id=session.id).count() == 3


def test_generate_for_session_leaves_cancelled_rows_alone():
    group = make_group()
    session = make_session(group)
    enrollment = make_enrollment(group)
    make_reservation(session, enrollment, status=ReservationStatus.CANCELLED)

    assert AutoReservationService.generate_for_session(session.id) == []


def test_generate_for_session_checks_group():
    session = make_session(make_group())
    with pytest.raises(GroupNotFound):
        AutoReservationService.generate_for_session(session.id, group_id=make_group().id)


def test_online_session_reserves_online_seats():
    group = make_group()
    session = make_session(group, classroom=Classroom.AULA_VIRTUAL)
    enroll_students(group, 2)

    created = AutoReservationService.generate_for_session(session.id)

    assert {r.mode for r in created} == {ReservationMode.ONLINE}


def test_new_enrollment_gets_seats_in_upcoming_scheduled_sessions():
    group = make_group(capacity=30)
    past = make_session(group, session_date=MONDAY)
    upcoming = make_session(group, session_date=TUESDAY)
    full = make_session(group, session_date=TUESDAY, start='14:00', end='16:00')
    make_session(group, session_date=TUESDAY, start='17:00', end='18:00', status=SessionStatus.CANCELLED)
    fill_in_person(full, group, 24)
    enrollment = make_enrollment(group)

    created = AutoReservationService.generate_for_new_enrollment(enrollment.student_id, group.id, enrollment.id,
                                                                 today=TUESDAY)

    by_session = {r.session_id: r.mode for r in created}
    assert by_session == {upcoming.id: ReservationMode.IN_PERSON, full.id: ReservationMode.ONLINE}
    assert past.id not in by_session

    again = AutoReservationService.generate_for_new_enrollment(enrollment.student_id, group.id, enrollment.id,
                                                               today=TUESDAY)
    assert again == []


def test_new_enrollment_must_match_student_and_group():
    group = make_group()
    enrollment = make_enrollment(group)

    with pytest.raises(EnrollmentNotFound):
        AutoReservationService.generate_for_new_enrollment(make_user().id, group.id, enrollment.id)
    with pytest.raises(EnrollmentNotFound):
        AutoReservationService.generate_for_new_enrollment(enrollment.student_id, make_group().id, enrollment.id)
    with pytest.raises(GroupNotFound):
        AutoReservationService.generate_for_new_enrollment(enrollment.student_id, 'missing', enrollment.id)


def test_cancel_future_reservations_after_withdrawal():
    group = make_group()
    enrollment = make_enrollment(group)
    past = make_reservation(make_session(group, session_date=MONDAY), enrollment)
    future = make_reservation(make_session(group, session_date=TUESDAY), enrollment)
    attended = make_reservation(make_session(group, session_date=TUESDAY, start='14:00', end='15:00'),
                                enrollment)
    AttendanceService.record_attendance(attended.id, AttendanceStatus.PRESENT, None)

    cancelled = AutoReservationService.cancel_future_reservations(enrollment.student_id, group.id, today=TUESDAY)

    assert cancelled == 1
    statuses = {r.id: r.status for r in SessionReservation.query.all()}
    assert statuses == {
        past.id: ReservationStatus.CONFIRMED,
        future.id: ReservationStatus.CANCELLED,
        attended.id: ReservationStatus.CONFIRMED,
    }
