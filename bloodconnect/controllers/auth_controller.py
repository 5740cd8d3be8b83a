from datetime import datetime

from flask import Blueprint, current_app, request
from flask_jwt_extended import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest

from bloodconnect.auth import login_required
from bloodconnect.errors import AuthFailed, error_response
from bloodconnect.extensions import db, limiter
from bloodconnect.models import LoginHistory, User
from bloodconnect.rate_limits import AUTH_LIMIT, ip_and_email_key
from bloodconnect.services import session_service, student_service
from bloodconnect.services.system_log_service import record_event
from bloodconnect.utils import api_response, get_json, page_args, paginate
from bloodconnect.validators import validate_login, validate_password_change, validate_student

auth_bp = Blueprint('auth_bp', __name__, url_prefix='/api/auth')


def _start_session(user, now):
    token = session_service.issue_token(user, now)
    session_service.open_login_record(user, request.remote_addr, request.user_agent.string, now)
    return token


@auth_bp.route('/register', methods=['POST'])
@limiter.limit(AUTH_LIMIT, key_func=ip_and_email_key)
def register():
    try:
        student, _ = student_service.create_student(get_json())
        now = datetime.utcnow()
        student.last_login = now
        token = _start_session(student, now)
        db.session.commit()
        return api_response({'user': student.to_dict(), 'token': token}, 'User registered successfully', 201)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Register error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit(AUTH_LIMIT, key_func=ip_and_email_key)
def login():
    email, password = validate_login(get_json())
    try:
        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            record_event('WARN', f'Failed login attempt for {email}')
            db.session.commit()
            raise AuthFailed('Invalid email or password', 'INVALID_CREDENTIALS')

        now = datetime.utcnow()
        user.last_login = now
        user.refresh_availability(now)
        token = _start_session(user, now)
        record_event('INFO', 'User logged in', user)
        db.session.commit()
        return api_response({'user': user.to_dict(), 'token': token}, 'Login successful')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Login error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    try:
        session_service.end_session(current_user)
        session_service.close_login_records(current_user)
        record_event('INFO', 'User logged out', current_user)
        db.session.commit()
        return api_response(message='Logout successful')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Logout error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    try:
        if current_user.refresh_availability():
            db.session.commit()
        return api_response(current_user.to_dict())
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Get me error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    payload = get_json()
    # Role, password and donation history are not editable here
    allowed = {key: payload[key] for key in ('name', 'email', 'phone', 'bloodGroup', 'rollNo') if key in payload}
    data = validate_student(allowed, partial=True)
    try:
        if 'email' in data and data['email'] != current_user.email \
                and student_service.email_taken(data['email'], current_user.id):
            raise BadRequest('Email already in use')
        for field, value in data.items():
            setattr(current_user, field, value)
        db.session.commit()
        return api_response(current_user.to_dict(), 'Profile updated successfully')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Update profile error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/change-password', methods=['PUT'])
@login_required
def change_password():
    current_password, new_password = validate_password_change(get_json())
    if not current_user.check_password(current_password):
        raise BadRequest('Current password is incorrect')

    try:
        current_user.set_password(new_password)
        record_event('INFO', 'Password changed', current_user)
        db.session.commit()
        return api_response(message='Password changed successfully')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Change password error: {e}')
        return error_response('Database error occurred', 500)


@auth_bp.route('/login-history', methods=['GET'])
@login_required
def login_history():
    page, limit = page_args()
    try:
        query = LoginHistory.query.filter_by(user_id=current_user.id).order_by(LoginHistory.login_time.desc())
        return api_response(paginate(query, page, limit))
    except SQLAlchemyError as e:
        current_app.logger.error(f'Login history error: {e}')
        return error_response('Database error occurred', 500)
