# controllers/api/reservations.py
from flask import jsonify, request
from flask_login import current_user

from academy.errors import ValidationError
from academy.models import AttendanceStatus, ReservationMode, ReservationStatus, OnlineRequestStatus, RoleType
from academy.services import (
    ReservationService, OnlineRequestService, AttendanceService, AutoReservationService, ReservationFilters
)
from academy.utils.auth import login_required_json, staff_required, role_required
from academy.utils.parsing import parse_date, parse_choice
from . import api_bp, get_payload


def _acting_student_id(data):
    """Students act for themselves; staff may name the student."""
    if current_user.is_staff() and data.get('student_id'):
        return data['student_id']
    return current_user.id


@api_bp.route('/reservations', methods=['POST'])
@login_required_json
def create_reservation():
    data = get_payload()
    reservation = ReservationService.create_reservation(
        student_id=_acting_student_id(data),
        session_id=data.get('session_id'),
        enrollment_id=data.get('enrollment_id'),
        mode=parse_choice(data.get('mode', ReservationMode.IN_PERSON), ReservationMode.ALL, 'mode')
    )
    return jsonify({'success': True, 'reservation': reservation.to_dict()}), 201


@api_bp.route('/reservations/<reservation_id>', methods=['GET'])
@login_required_json
def get_reservation(reservation_id):
    reservation = ReservationService.get(reservation_id)
    if not current_user.is_staff() and reservation.student_id != current_user.id:
        return jsonify({
            'success': False,
            'error_code': 'PERMISSION_DENIED',
            'message': 'The reservation does not belong to this student'
        }), 403
    return jsonify({'success': True, 'reservation': reservation.to_dict()})


@api_bp.route('/reservations/<reservation_id>/cancel', methods=['POST'])
@login_required_json
def cancel_reservation(reservation_id):
    data = get_payload()
    reservation = ReservationService.cancel_reservation(reservation_id, _acting_student_id(data))
    return jsonify({'success': True, 'reservation': reservation.to_dict()})


@api_bp.route('/reservations/<reservation_id>/switch', methods=['POST'])
@login_required_json
def switch_reservation(reservation_id):
    data = get_payload()
    reservation = ReservationService.switch_session(
        _acting_student_id(data), reservation_id, data.get('new_session_id')
    )
    return jsonify({'success': True, 'reservation': reservation.to_dict()}), 201


@api_bp.route('/students/<student_id>/reservations', methods=['GET'])
@login_required_json
def list_student_reservations(student_id):
    if not current_user.is_staff() and student_id != current_user.id:
        return jsonify({
            'success': False,
            'error_code': 'PERMISSION_DENIED',
            'message': 'Students can only list their own reservations'
        }), 403

    args = request.args
    filters = ReservationFilters(
        status=parse_choice(args.get('status'), (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED),
                            'status', required=False),
        mode=parse_choice(args.get('mode'), ReservationMode.ALL, 'mode', required=False),
        date_from=parse_date(args.get('date_from'), 'date_from', required=False),
        date_to=parse_date(args.get('date_to'), 'date_to', required=False)
    )
    reservations = ReservationService.list_by_student(student_id, filters)
    return jsonify({
        'success': True,
        'reservations': [r.to_dict() for r in reservations],
        'total': len(reservations)
    })


@api_bp.route('/sessions/<session_id>/reservations', methods=['GET'])
@staff_required
def list_session_reservations(session_id):
    reservations = ReservationService.list_by_session(session_id, status=request.args.get('status'))
    return jsonify({
        'success': True,
        'reservations': [r.to_dict() for r in reservations],
        'occupancy': ReservationService.get_session_occupancy(session_id),
        'total': len(reservations)
    })


@api_bp.route('/sessions/<session_id>/reservations/generate', methods=['POST'])
@role_required(RoleType.ADMIN)
def generate_session_reservations(session_id):
    created = AutoReservationService.generate_for_session(session_id)
    return jsonify({'success': True, 'created_count': len(created)}), 201


# Online attendance requests

@api_bp.route('/reservations/<reservation_id>/online-request', methods=['POST'])
@login_required_json
def request_online_attendance(reservation_id):
    reservation = OnlineRequestService.request_online_attendance(reservation_id, current_user.id)
    return jsonify({'success': True, 'reservation': reservation.to_dict()})


@api_bp.route('/reservations/<reservation_id>/online-request/process', methods=['POST'])
@staff_required
def process_online_request(reservation_id):
    data = get_payload()
    approved = data.get('approved')
    if not isinstance(approved, bool):
        raise ValidationError("'approved' must be true or false")

    reservation = OnlineRequestService.process_online_request(reservation_id, current_user.id, approved)
    return jsonify({'success': True, 'reservation': reservation.to_dict()})


@api_bp.route('/online-requests/pending', methods=['GET'])
@staff_required
def pending_online_requests():
    teacher_id = request.args.get('teacher_id') if current_user.is_admin() else None
    reservations = OnlineRequestService.pending_online_requests_for_teacher(teacher_id or current_user.id)
    return jsonify({
        'success': True,
        'status': OnlineRequestStatus.PENDING,
        'reservations': [r.to_dict() for r in reservations],
        'total': len(reservations)
    })


# Attendance

@api_bp.route('/reservations/<reservation_id>/attendance', methods=['POST'])
@staff_required
def record_attendance(reservation_id):
    data = get_payload()
    reservation = AttendanceService.record_attendance(
        reservation_id,
        parse_choice(data.get('status'), AttendanceStatus.ALL, 'status'),
        current_user.id
    )
    return jsonify({'success': True, 'reservation': reservation.to_dict()})


@api_bp.route('/sessions/<session_id>/attendance', methods=['POST'])
@staff_required
def record_bulk_attendance(session_id):
    data = get_payload()
    entries = data.get('attendance')
    if not isinstance(entries, dict) or not entries:
        raise ValidationError("'attendance' must map reservation ids to statuses")

    statuses = {
        reservation_id: parse_choice(status, AttendanceStatus.ALL, f'attendance.{reservation_id}')
        for reservation_id, status in entries.items()
    }
    result = AttendanceService.record_bulk_attendance(session_id, statuses, current_user.id)
    return jsonify({
        'success': True,
        'recorded': [r.to_dict() for r in result['recorded']],
        'skipped': result['skipped'],
        'recorded_count': len(result['recorded'])
    })
