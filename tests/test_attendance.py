import pytest

from academy.errors import (
    AttendanceAlreadyRecorded, InvalidReservationState, ReservationNotFound, SessionNotFound, ValidationError
)
from academy.models import AttendanceStatus, ReservationStatus, RoleType
from academy.services import AttendanceService, ReservationService
from academy.services.attendance_service import AttendanceSkipReason
from tests.factories import TUESDAY, make_group, make_session, make_enrollment, make_reservation, make_user


def test_attendance_is_recorded_once():
    group = make_group()
    reservation = make_reservation(make_session(group), make_enrollment(group))
    teacher = make_user(RoleType.TEACHER)

    recorded = AttendanceService.record_attendance(reservation.id, AttendanceStatus.LATE, teacher.id)

    assert recorded.attendance_status == AttendanceStatus.LATE
    assert recorded.attendance_recorded_by_id == teacher.id
    assert recorded.attendance_recorded_at is not None

    with pytest.raises(AttendanceAlreadyRecorded):
        AttendanceService.record_attendance(reservation.id, AttendanceStatus.PRESENT, teacher.id)
    assert ReservationService.get(reservation.id).attendance_status == AttendanceStatus.LATE


def test_attendance_rejects_unknown_status_and_reservation():
    group = make_group()
    reservation = make_reservation(make_session(group), make_enrollment(group))

    with pytest.raises(ValidationError):
        AttendanceService.record_attendance(reservation.id, 'asleep', None)
    with pytest.raises(ReservationNotFound):
        AttendanceService.record_attendance('missing', AttendanceStatus.PRESENT, None)


def test_cancelled_reservation_has_no_attendance():
    group = make_group()
    reservation = make_reservation(make_session(group), make_enrollment(group), status=ReservationStatus.CANCELLED)

    with pytest.raises(InvalidReservationState):
        AttendanceService.record_attendance(reservation.id, AttendanceStatus.ABSENT, None)


def test_bulk_attendance_records_valid_entries_and_skips_the_rest():
    group = make_group()
    session = make_session(group)
    other_session = make_session(group, session_date=TUESDAY)
    teacher = make_user(RoleType.TEACHER)

    present = make_reservation(session, make_enrollment(group))
    absent = make_reservation(session, make_enrollment(group))
    cancelled = make_reservation(session, make_enrollment(group), status=ReservationStatus.CANCELLED)
    already = make_reservation(session, make_enrollment(group))
    AttendanceService.record_attendance(already.id, AttendanceStatus.EXCUSED, teacher.id)
    elsewhere = make_reservation(other_session, make_enrollment(group))

    result = AttendanceService.record_bulk_attendance(session.id, {
        present.id: AttendanceStatus.PRESENT,
        absent.id: AttendanceStatus.ABSENT,
        cancelled.id: AttendanceStatus.PRESENT,
        already.id: AttendanceStatus.PRESENT,
        elsewhere.id: AttendanceStatus.PRESENT,
        'missing': AttendanceStatus.PRESENT,
    }, teacher.id)

    assert {r.id for r in result['recorded']} == {present.id, absent.id}
    assert {entry['reservation_id']: entry['reason'] for entry in result['skipped']} == {
        cancelled.id: AttendanceSkipReason.NOT_CONFIRMED,
        already.id: AttendanceSkipReason.ALREADY_RECORDED,
        elsewhere.id: AttendanceSkipReason.WRONG_SESSION,
        'missing': AttendanceSkipReason.NOT_FOUND,
    }
    assert ReservationService.get(absent.id).attendance_status == AttendanceStatus.ABSENT
    assert ReservationService.get(already.id).attendance_status == AttendanceStatus.EXCUSED
    assert ReservationService.get(elsewhere.id).attendance_status is None


def test_bulk_attendance_validates_before_writing():
    group = make_group()
    session = make_session(group)
    reservation = make_reservation(session, make_enrollment(group))

    with pytest.raises(ValidationError):
        AttendanceService.record_bulk_attendance(session.id, {reservation.id: 'asleep'}, None)
    with pytest.raises(SessionNotFound):
        AttendanceService.record_bulk_attendance('missing', {reservation.id: AttendanceStatus.PRESENT}, None)

    assert ReservationService.get(reservation.id).attendance_status is None
