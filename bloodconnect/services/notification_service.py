"""Notification fan-out: inbox row, realtime event and templated email.

Dispatching is fire-and-forget. Every step logs and swallows its own
failure so a lifecycle transition is never undone by a notification.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from bloodconnect.extensions import db
from bloodconnect.models import Notification, User
from bloodconnect.services import email_service, realtime

logger = logging.getLogger(__name__)


def admins():
    return User.query.filter_by(role='admin').all()


def create_notification(user_id, notification_type, title, message, metadata=None):
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        extra=metadata or {},
    )
    db.session.add(notification)
    return notification


def dispatch(users, notification_type, title, message, metadata=None, event=None, email=None):
    """Notify ``users`` in-app and over their realtime rooms, then email.

    ``event`` is ``(name, payload)`` for the per-user realtime push and
    ``email`` is a dict of ``send_email`` keyword arguments.
    Returns the number of inbox rows written.
    """
    users = list(users)
    written = 0
    try:
        for user in users:
            create_notification(user.id, notification_type, title, message, metadata)
        db.session.commit()
        written = len(users)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f'Error saving "{notification_type}" notifications: {e}')

    if event:
        name, payload = event
        for user in users:
            realtime.emit_to_user(user.id, name, payload)

    if email:
        email_service.send_email(**email)
    return written


def notify_admins(notification_type, title, message, metadata=None, event=None, email_template=None,
                  email_subject=None, email_data=None):
    """Inbox rows for every admin, one ``admins`` room broadcast, one email."""
    admin_users = admins()
    email = None
    if email_template:
        email = {
            'to': [admin.email for admin in admin_users],
            'subject': email_subject,
            'template': email_template,
            **(email_data or {}),
        }
    written = dispatch(admin_users, notification_type, title, message, metadata, email=email)
    if event:
        realtime.emit_to_admins(*event)
    return written


def list_for_user(user, unread_only=False):
    query = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        query = query.filter_by(read=False)
    return query.order_by(Notification.created_at.desc())


def get_for_user(user, notification_id):
    return Notification.query.filter_by(id=notification_id, user_id=user.id).first()


def mark_all_read(user):
    return Notification.query.filter_by(user_id=user.id, read=False).update({'read': True})


def unread_count(user):
    return Notification.query.filter_by(user_id=user.id, read=False).count()
