"""Token issuance and the one-session-per-user record.

A login writes the user's ``UserSession`` row with the new token's jti,
replacing whatever was there, so earlier tokens stop validating.
"""
from datetime import datetime

from flask import current_app
from flask_jwt_extended import create_access_token, decode_token

from bloodconnect.extensions import db
from bloodconnect.models import LoginHistory, UserSession


def issue_token(user, now=None):
    """Create a JWT for the user and make it the user's only live session."""
    now = now or datetime.utcnow()
    token = create_access_token(identity=user.id, additional_claims={'role': user.role})
    jti = decode_token(token)['jti']

    session = db.session.query(UserSession).filter_by(user_id=user.id).first()
    if session is None:
        session = UserSession(user_id=user.id)
        db.session.add(session)
    session.token_jti = jti
    session.created_at = now
    session.expires_at = now + current_app.config['SESSION_TTL']
    return token


def is_session_active(user_id, jti, now=None):
    if not user_id or not jti:
        return False
    session = db.session.query(UserSession).filter_by(user_id=user_id).first()
    return session is not None and session.is_valid_for(jti, now)


def end_session(user):
    db.session.query(UserSession).filter_by(user_id=user.id).delete()


def open_login_record(user, ip_address, user_agent, now=None):
    """Close the user's active login rows and start a new one."""
    now = now or datetime.utcnow()
    LoginHistory.query.filter_by(user_id=user.id, is_active=True).update({'is_active': False})
    record = LoginHistory(
        user_id=user.id,
        ip_address=ip_address or 'unknown',
        user_agent=user_agent or 'unknown',
        login_time=now,
        is_active=True,
    )
    db.session.add(record)
    return record


def close_login_records(user, now=None):
    LoginHistory.query.filter_by(user_id=user.id, is_active=True).update({
        'is_active': False,
        'logout_time': now or datetime.utcnow(),
    })
