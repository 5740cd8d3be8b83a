import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from bloodconnect.extensions import db
from bloodconnect.models import SystemLog

logger = logging.getLogger(__name__)

_LEVELS = {
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
    'DEBUG': logging.DEBUG,
}


def describe_user(user):
    if user is None:
        return 'system - admin', 'admin'
    return f'{user.name} - {user.role}', user.role


def record_event(level, message, user=None):
    """Log to the application logger and stage a SystemLog row.

    The row is committed together with the caller's transaction.
    """
    label, role = describe_user(user)
    logger.log(_LEVELS.get(level, logging.INFO), '[%s] %s', label, message)
    db.session.add(SystemLog(timestamp=datetime.utcnow(), level=level, user=label, role=role, message=message))


def record_http_request(method, path, user=None):
    """Write one INFO row for an HTTP request; never raises."""
    label, role = describe_user(user)
    try:
        db.session.add(SystemLog(
            timestamp=datetime.utcnow(),
            level='INFO',
            user=label,
            role=role,
            message=f'{method} {path}',
        ))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f'Could not record request log: {e}')
