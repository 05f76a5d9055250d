# utils/auth.py
from functools import wraps
from flask import jsonify
from flask_login import current_user

from academy.models import RoleType


def role_required(*roles):
    """Decorator to require specific role(s)."""

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({
                    'success': False,
                    'error_code': 'AUTHENTICATION_REQUIRED',
                    'message': 'Authentication required'
                }), 401

            if current_user.role not in roles:
                return jsonify({
                    'success': False,
                    'error_code': 'PERMISSION_DENIED',
                    'message': f'Role required: {", ".join(roles)}'
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator


def staff_required(f):
    """Decorator to require staff role (teacher or admin)."""
    return role_required(RoleType.ADMIN, RoleType.TEACHER)(f)


def login_required_json(f):
    """Decorator that allows any authenticated user."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({
                'success': False,
                'error_code': 'AUTHENTICATION_REQUIRED',
                'message': 'Authentication required'
            }), 401

        return f(*args, **kwargs)

    return decorated_function
