"""Rate limit windows and the keys they are counted against."""
from flask import request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError

GENERAL_LIMIT = '100 per 15 minutes'
AUTH_LIMIT = '5 per 15 minutes'
BLOOD_REQUEST_LIMIT = '3 per hour'
ADMIN_LIMIT = '50 per 5 minutes'
UPLOAD_LIMIT = '10 per hour'


def _identity():
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt_identity()
    except (JWTExtendedException, PyJWTError):
        return None


def _body_email():
    data = request.get_json(silent=True)
    email = data.get('email') if isinstance(data, dict) else None
    return email.strip().lower() if isinstance(email, str) else 'anonymous'


def ip_and_user_key():
    return f'{get_remote_address()}:{_identity() or "anonymous"}'


def ip_and_email_key():
    return f'{get_remote_address()}:{_body_email()}'


def user_key():
    return _identity() or get_remote_address()
