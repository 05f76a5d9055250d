# controllers/api/__init__.py
"""
JSON API for schedules, sessions and reservations.
Handlers translate request payloads into service calls; domain errors are
rendered by the application-wide error handler.
"""

from flask import Blueprint, request

from academy.errors import ValidationError

api_bp = Blueprint('api', __name__, url_prefix='/api')


def get_payload():
    """Request JSON body as a dict, rejecting anything else."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


from . import schedules, sessions, reservations  # noqa: E402,F401
