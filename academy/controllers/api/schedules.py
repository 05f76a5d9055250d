# controllers/api/schedules.py
from flask import jsonify, request

from academy.models import Classroom, DayOfWeek, RoleType
from academy.services import ScheduleService, ScheduleFilters
from academy.utils.auth import role_required, login_required_json
from academy.utils.parsing import parse_time, parse_choice
from . import api_bp, get_payload


@api_bp.route('/schedules', methods=['GET'])
@login_required_json
def list_schedules():
    filters = ScheduleFilters(
        group_id=request.args.get('group_id'),
        classroom=parse_choice(request.args.get('classroom'), Classroom.ALL, 'classroom', required=False),
        day_of_week=parse_choice(request.args.get('day_of_week'), DayOfWeek.ALL, 'day_of_week', required=False)
    )
    schedules = ScheduleService.find(filters)
    return jsonify({
        'success': True,
        'schedules': [s.to_dict() for s in schedules],
        'total': len(schedules)
    })


@api_bp.route('/groups/<group_id>/schedules', methods=['GET'])
@login_required_json
def list_group_schedules(group_id):
    schedules = ScheduleService.list_by_group(group_id)
    return jsonify({
        'success': True,
        'schedules': [s.to_dict() for s in schedules],
        'total': len(schedules)
    })


@api_bp.route('/schedules/<schedule_id>', methods=['GET'])
@login_required_json
def get_schedule(schedule_id):
    return jsonify({'success': True, 'schedule': ScheduleService.get(schedule_id).to_dict()})


@api_bp.route('/schedules', methods=['POST'])
@role_required(RoleType.ADMIN)
def create_schedule():
    data = get_payload()
    schedule = ScheduleService.create(
        group_id=data.get('group_id'),
        day_of_week=parse_choice(data.get('day_of_week'), DayOfWeek.ALL, 'day_of_week'),
        start_time=parse_time(data.get('start_time'), 'start_time', required=False),
        end_time=parse_time(data.get('end_time'), 'end_time', required=False),
        classroom=parse_choice(data.get('classroom'), Classroom.ALL, 'classroom')
    )
    return jsonify({'success': True, 'schedule': schedule.to_dict()}), 201


@api_bp.route('/schedules/<schedule_id>', methods=['PATCH', 'PUT'])
@role_required(RoleType.ADMIN)
def update_schedule(schedule_id):
    data = get_payload()
    changes = {
        'group_id': data.get('group_id'),
        'day_of_week': parse_choice(data.get('day_of_week'), DayOfWeek.ALL, 'day_of_week', required=False),
        'start_time': parse_time(data.get('start_time'), 'start_time', required=False),
        'end_time': parse_time(data.get('end_time'), 'end_time', required=False),
        'classroom': parse_choice(data.get('classroom'), Classroom.ALL, 'classroom', required=False)
    }
    schedule = ScheduleService.update(schedule_id, **changes)
    return jsonify({'success': True, 'schedule': schedule.to_dict()})


@api_bp.route('/schedules/<schedule_id>', methods=['DELETE'])
@role_required(RoleType.ADMIN)
def delete_schedule(schedule_id):
    detached = ScheduleService.delete(schedule_id)
    return jsonify({
        'success': True,
        'message': 'Schedule deleted',
        'detached_sessions': detached
    })
