from flask import Blueprint, current_app, request
from flask_jwt_extended import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import NotFound

from bloodconnect.auth import login_required
from bloodconnect.errors import error_response
from bloodconnect.extensions import db
from bloodconnect.services import notification_service
from bloodconnect.utils import api_response, page_args, paginate, to_bool

# Inbox of the signed-in user
notification_bp = Blueprint('notification_bp', __name__, url_prefix='/api/notifications')


@notification_bp.route('/', methods=['GET'], strict_slashes=False)
@login_required
def get_notifications():
    page, limit = page_args()
    try:
        query = notification_service.list_for_user(current_user, to_bool(request.args.get('unreadOnly')))
        return api_response(paginate(query, page, limit))
    except SQLAlchemyError as e:
        current_app.logger.error(f'Get notifications error: {e}')
        return error_response('Database error occurred', 500)


@notification_bp.route('/<string:notification_id>/read', methods=['PUT'])
@login_required
def mark_as_read(notification_id):
    try:
        notification = notification_service.get_for_user(current_user, notification_id)
        if not notification:
            raise NotFound('Notification not found')
        notification.read = True
        db.session.commit()
        return api_response(notification.to_dict(), 'Notification marked as read')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Mark notification read error: {e}')
        return error_response('Database error occurred', 500)


@notification_bp.route('/read-all', methods=['PUT'])
@login_required
def mark_all_as_read():
    try:
        updated = notification_service.mark_all_read(current_user)
        db.session.commit()
        return api_response({'updated': updated}, 'All notifications marked as read')
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Mark all notifications read error: {e}')
        return error_response('Database error occurred', 500)


@notification_bp.route('/unread-count', methods=['GET'])
@login_required
def get_unread_count():
    try:
        return api_response({'count': notification_service.unread_count(current_user)})
    except SQLAlchemyError as e:
        current_app.logger.error(f'Unread count error: {e}')
        return error_response('Database error occurred', 500)
