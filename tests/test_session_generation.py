from datetime import date

import pytest

from academy.errors import SessionConflict, TeacherSessionConflict, GroupNotFound, ValidationError
from academy.models import (
    Classroom, GroupStatus, GroupType, Session, SessionMode, SessionReservation, SessionStatus,
    SessionType, ReservationMode, EnrollmentStatus
)
from academy.services import SessionGenerationService
from tests.factories import (
    make_group, make_schedule, make_user, make_subject, make_session, make_enrollment, enroll_students
)


def _dates(sessions):
    return sorted(s.date for s in sessions)


def test_generates_one_session_per_matching_day():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00')

    sessions = SessionGenerationService.generate(group.id, date(2025, 1, 1), date(2025, 1, 31))

    assert _dates(sessions) == [date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20), date(2025, 1, 27)]
    session = sessions[0]
    assert session.session_type == SessionType.REGULAR
    assert session.status == SessionStatus.SCHEDULED
    assert session.group_id == group.id
    assert session.subject_id == group.subject_id
    assert session.classroom == Classroom.AULA_PORTAL1


def test_rerun_over_overlapping_range_only_adds_new_dates():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00')
    SessionGenerationService.generate(group.id, date(2025, 1, 1), date(2025, 1, 31))

    sessions = SessionGenerationService.generate(group.id, date(2025, 1, 15), date(2025, 2, 15))

    assert _dates(sessions) == [date(2025, 2, 3), date(2025, 2, 10)]
    assert Session.query.count() == 6


def test_generate_twice_is_idempotent():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00')
    make_schedule(group, 'thursday', '09:00', '11:00')

    first = SessionGenerationService.generate(group.id, date(2025, 3, 1), date(2025, 3, 31))
    second = SessionGenerationService.generate(group.id, date(2025, 3, 1), date(2025, 3, 31))

    assert len(first) == 9
    assert second == []
    pairs = [(s.schedule_id, s.date) for s in Session.query.all()]
    assert len(pairs) == len(set(pairs)) == 9


def test_preview_does_not_persist():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00')

    preview = SessionGenerationService.preview(group.id, date(2025, 1, 1), date(2025, 1, 31))

    assert len(preview) == 4
    assert Session.query.count() == 0
    assert len(SessionGenerationService.generate(group.id, date(2025, 1, 1), date(2025, 1, 31))) == 4


def test_start_after_end_is_rejected():
    group = make_group()
    with pytest.raises(ValidationError):
        SessionGenerationService.generate(group.id, date(2025, 2, 1), date(2025, 1, 1))


def test_range_longer_than_allowed_is_rejected():
    group = make_group()
    with pytest.raises(ValidationError):
        SessionGenerationService.generate(group.id, date(2025, 1, 1), date(2026, 6, 1))


def test_unknown_group_is_rejected():
    with pytest.raises(GroupNotFound):
        SessionGenerationService.generate('missing', date(2025, 1, 1), date(2025, 1, 31))


def test_mode_is_derived_from_classroom_and_group_type():
    regular = make_group()
    intensive = make_group(group_type=GroupType.INTENSIVE_Q1)
    online = make_group()
    make_schedule(regular, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_schedule(intensive, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL2)
    make_schedule(online, 'monday', '09:00', '11:00', Classroom.AULA_VIRTUAL)

    sessions = SessionGenerationService.generate(None, date(2025, 1, 6), date(2025, 1, 6))

    modes = {s.group_id: s.mode for s in sessions}
    assert modes == {
        regular.id: SessionMode.IN_PERSON,
        intensive.id: SessionMode.DUAL,
        online.id: SessionMode.ONLINE,
    }


def test_generation_without_group_skips_cancelled_groups():
    active = make_group()
    cancelled = make_group(status=GroupStatus.CANCELLED)
    make_schedule(active, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_schedule(cancelled, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL2)

    sessions = SessionGenerationService.generate(None, date(2025, 1, 1), date(2025, 1, 31))

    assert {s.group_id for s in sessions} == {active.id}


def test_generation_reserves_seats_for_active_enrollments():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00')
    enroll_students(group, 3)
    make_enrollment(group, status=EnrollmentStatus.WITHDRAWN)

    sessions = SessionGenerationService.generate(group.id, date(2025, 1, 6), date(2025, 1, 13))

    assert len(sessions) == 2
    for session in sessions:
        reservations = SessionReservation.query.filter_by(session_id=session.id).all()
        assert len(reservations) == 3
        assert all(r.mode == ReservationMode.IN_PERSON for r in reservations)


def test_generated_reservations_overflow_to_online_when_classroom_is_full():
    group = make_group(capacity=30)
    make_schedule(group, 'monday', '09:00', '11:00')
    enroll_students(group, 26)

    session = SessionGenerationService.generate(group.id, date(2025, 1, 6), date(2025, 1, 6))[0]

    in_person = SessionReservation.query.filter_by(session_id=session.id, mode=ReservationMode.IN_PERSON).count()
    online = SessionReservation.query.filter_by(session_id=session.id, mode=ReservationMode.ONLINE).count()
    assert (in_person, online) == (24, 2)


def test_classroom_taken_by_an_extra_session_aborts_generation():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_session(make_group(), session_date=date(2025, 1, 6), start='10:00', end='12:00',
                 classroom=Classroom.AULA_PORTAL1)

    with pytest.raises(SessionConflict):
        SessionGenerationService.generate(group.id, date(2025, 1, 1), date(2025, 1, 31))

    assert Session.query.count() == 1


def test_cancelled_session_does_not_block_generation():
    group = make_group()
    make_schedule(group, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_session(make_group(), session_date=date(2025, 1, 6), classroom=Classroom.AULA_PORTAL1,
                 status=SessionStatus.CANCELLED)

    assert len(SessionGenerationService.generate(group.id, date(2025, 1, 6), date(2025, 1, 6))) == 1


def test_classroom_clash_inside_the_same_batch_aborts_generation():
    # Inserted directly, bypassing the schedule store checks
    make_schedule(make_group(), 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_schedule(make_group(), 'monday', '10:00', '12:00', Classroom.AULA_PORTAL1)

    with pytest.raises(SessionConflict):
        SessionGenerationService.generate(None, date(2025, 1, 6), date(2025, 1, 6))

    assert Session.query.count() == 0


def test_teacher_conflict_inside_the_same_batch_aborts_generation():
    teacher = make_user('teacher')
    first = make_group(teacher=teacher)
    second = make_group(teacher=teacher)
    # Inserted directly, bypassing the schedule store checks
    make_schedule(first, 'monday', '09:00', '11:00', Classroom.AULA_PORTAL1)
    make_schedule(second, 'monday', '10:00', '12:00', Classroom.AULA_PORTAL2)

    with pytest.raises(TeacherSessionConflict):
        SessionGenerationService.generate(None, date(2025, 1, 6), date(2025, 1, 6))

    assert Session.query.count() == 0


def test_teacher_conflict_with_existing_session_aborts_generation():
    teacher = make_user('teacher')
    group = make_group(teacher=teacher)
    other = make_group(teacher=teacher)
    make_schedule(group, 'monday', '09:00', '11:00')
    make_session(other, session_date=date(2025, 1, 6), start='10:00', end='11:30', classroom=Classroom.AULA_PORTAL2)

    with pytest.raises(TeacherSessionConflict):
        SessionGenerationService.generate(group.id, date(2025, 1, 6), date(2025, 1, 6))


def test_simultaneous_online_sessions_of_same_subject_are_generated():
    teacher = make_user('teacher')
    subject = make_subject()
    first = make_group(subject=subject, teacher=teacher)
    second = make_group(subject=subject, teacher=teacher)
    make_schedule(first, 'monday', '18:00', '20:00', Classroom.AULA_VIRTUAL)
    make_schedule(second, 'monday', '18:00', '20:00', Classroom.AULA_VIRTUAL)

    sessions = SessionGenerationService.generate(None, date(2025, 1, 6), date(2025, 1, 6))

    assert len(sessions) == 2
