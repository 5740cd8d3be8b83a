"""JWT callbacks and role guards.

A token is only honoured while its jti matches the user's current
``UserSession`` row, so logging in elsewhere or logging out revokes it.
"""
from functools import wraps

from flask_jwt_extended import current_user, verify_jwt_in_request
from werkzeug.exceptions import Forbidden

from bloodconnect.errors import error_response
from bloodconnect.extensions import db, jwt
from bloodconnect.models import User
from bloodconnect.services import session_service


@jwt.user_lookup_loader
def load_user(_jwt_header, jwt_data):
    return db.session.get(User, jwt_data['sub'])


@jwt.token_in_blocklist_loader
def session_revoked(_jwt_header, jwt_payload):
    return not session_service.is_session_active(jwt_payload.get('sub'), jwt_payload.get('jti'))


@jwt.revoked_token_loader
def revoked_token(_jwt_header, _jwt_payload):
    return error_response('Session expired. Please login again.', 401, code='SESSION_EXPIRED')


@jwt.expired_token_loader
def expired_token(_jwt_header, _jwt_payload):
    return error_response('Token expired. Please login again.', 401, code='TOKEN_EXPIRED')


@jwt.invalid_token_loader
def invalid_token(reason):
    return error_response('Invalid token.', 401, code='INVALID_TOKEN')


@jwt.unauthorized_loader
def missing_token(reason):
    return error_response('Access denied. No token provided.', 401, code='NO_TOKEN')


@jwt.user_lookup_error_loader
def user_not_found(_jwt_header, _jwt_payload):
    return error_response('User not found.', 401, code='USER_NOT_FOUND')


def roles_required(*roles):
    """Require a live session and, when given, one of ``roles``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if roles and current_user.role not in roles:
                raise Forbidden('Access denied. Insufficient permissions.')
            return fn(*args, **kwargs)
        return wrapper
    return decorator


login_required = roles_required()
admin_required = roles_required('admin')
student_required = roles_required('student')
