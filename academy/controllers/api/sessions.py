# controllers/api/sessions.py
import logging

from flask import jsonify, request

from academy.models import Classroom, RoleType, SessionMode, SessionStatus, SessionType
from academy.services import (
    SessionService, SessionGenerationService, SessionLifecycleService, ReservationService, SessionFilters
)
from academy.utils.auth import role_required, login_required_json, staff_required
from academy.utils.parsing import parse_date, parse_time, parse_choice
from . import api_bp, get_payload

logger = logging.getLogger('api.sessions')


def _session_payload(session, include_occupancy=False):
    data = session.to_dict()
    if include_occupancy:
        data['occupancy'] = ReservationService.get_session_occupancy(session.id)
    return data


@api_bp.route('/sessions', methods=['GET'])
@login_required_json
def list_sessions():
    args = request.args
    filters = SessionFilters(
        subject_id=args.get('subject_id'),
        group_id=args.get('group_id'),
        schedule_id=args.get('schedule_id'),
        session_type=parse_choice(args.get('type'), SessionType.ALL, 'type', required=False),
        status=parse_choice(args.get('status'), SessionStatus.ALL, 'status', required=False),
        mode=parse_choice(args.get('mode'), SessionMode.ALL, 'mode', required=False),
        classroom=parse_choice(args.get('classroom'), Classroom.ALL, 'classroom', required=False),
        date_from=parse_date(args.get('date_from'), 'date_from', required=False),
        date_to=parse_date(args.get('date_to'), 'date_to', required=False),
        descending=args.get('order', 'asc').lower() == 'desc'
    )
    sessions = SessionService.find(filters)
    return jsonify({
        'success': True,
        'sessions': [s.to_dict() for s in sessions],
        'total': len(sessions)
    })


@api_bp.route('/sessions/<session_id>', methods=['GET'])
@login_required_json
def get_session(session_id):
    session = SessionService.get(session_id)
    return jsonify({'success': True, 'session': _session_payload(session, include_occupancy=True)})


@api_bp.route('/sessions', methods=['POST'])
@staff_required
def create_session():
    data = get_payload()
    session = SessionService.create(
        session_type=parse_choice(data.get('type'), SessionType.ALL, 'type'),
        session_date=parse_date(data.get('date'), 'date'),
        start_time=parse_time(data.get('start_time'), 'start_time', required=False),
        end_time=parse_time(data.get('end_time'), 'end_time', required=False),
        classroom=parse_choice(data.get('classroom'), Classroom.ALL, 'classroom', required=False),
        subject_id=data.get('subject_id'),
        group_id=data.get('group_id'),
        schedule_id=data.get('schedule_id'),
        mode=parse_choice(data.get('mode'), SessionMode.ALL, 'mode', required=False)
    )
    return jsonify({'success': True, 'session': _session_payload(session)}), 201


@api_bp.route('/sessions/<session_id>', methods=['PATCH', 'PUT'])
@staff_required
def update_session(session_id):
    data = get_payload()
    session = SessionService.update(
        session_id,
        date=parse_date(data.get('date'), 'date', required=False),
        start_time=parse_time(data.get('start_time'), 'start_time', required=False),
        end_time=parse_time(data.get('end_time'), 'end_time', required=False),
        classroom=parse_choice(data.get('classroom'), Classroom.ALL, 'classroom', required=False),
        mode=parse_choice(data.get('mode'), SessionMode.ALL, 'mode', required=False)
    )
    return jsonify({'success': True, 'session': _session_payload(session)})


@api_bp.route('/sessions/<session_id>', methods=['DELETE'])
@role_required(RoleType.ADMIN)
def delete_session(session_id):
    SessionService.delete(session_id)
    return jsonify({'success': True, 'message': 'Session deleted'})


# Generation

def _generation_args():
    data = get_payload()
    return (
        data.get('group_id'),
        parse_date(data.get('start_date'), 'start_date'),
        parse_date(data.get('end_date'), 'end_date')
    )


@api_bp.route('/sessions/generate', methods=['POST'])
@role_required(RoleType.ADMIN)
def generate_sessions():
    group_id, start_date, end_date = _generation_args()
    sessions = SessionGenerationService.generate(group_id, start_date, end_date)
    logger.info(f"Generated {len(sessions)} sessions via API")
    return jsonify({
        'success': True,
        'sessions': [s.to_dict() for s in sessions],
        'created_count': len(sessions)
    }), 201


@api_bp.route('/sessions/generate/preview', methods=['POST'])
@role_required(RoleType.ADMIN)
def preview_sessions():
    group_id, start_date, end_date = _generation_args()
    sessions = SessionGenerationService.preview(group_id, start_date, end_date)
    return jsonify({
        'success': True,
        'sessions': [s.to_dict() for s in sessions],
        'total': len(sessions)
    })


# Lifecycle

@api_bp.route('/sessions/<session_id>/start', methods=['POST'])
@staff_required
def start_session(session_id):
    session = SessionLifecycleService.start_session(session_id)
    return jsonify({'success': True, 'session': _session_payload(session)})


@api_bp.route('/sessions/<session_id>/complete', methods=['POST'])
@staff_required
def complete_session(session_id):
    data = get_payload()
    session = SessionLifecycleService.complete_session(session_id, data.get('topics_covered'))
    return jsonify({'success': True, 'session': _session_payload(session)})


@api_bp.route('/sessions/<session_id>/cancel', methods=['POST'])
@staff_required
def cancel_session(session_id):
    data = get_payload()
    session = SessionLifecycleService.cancel_session(session_id, data.get('reason'))
    return jsonify({'success': True, 'session': _session_payload(session)})


@api_bp.route('/sessions/<session_id>/postpone', methods=['POST'])
@staff_required
def postpone_session(session_id):
    data = get_payload()
    replacement = SessionLifecycleService.postpone_session(
        session_id,
        new_date=parse_date(data.get('new_date'), 'new_date'),
        new_start_time=parse_time(data.get('new_start_time'), 'new_start_time', required=False),
        new_end_time=parse_time(data.get('new_end_time'), 'new_end_time', required=False),
        new_classroom=parse_choice(data.get('new_classroom'), Classroom.ALL, 'new_classroom', required=False),
        new_mode=parse_choice(data.get('new_mode'), SessionMode.ALL, 'new_mode', required=False)
    )
    return jsonify({
        'success': True,
        'original_session_id': session_id,
        'session': _session_payload(replacement)
    }), 201
