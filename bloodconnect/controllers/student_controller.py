from flask import Blueprint, current_app
from flask_jwt_extended import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest

from bloodconnect.auth import student_required
from bloodconnect.errors import ValidationFailed, error_response
from bloodconnect.extensions import db
from bloodconnect.utils import api_response, get_json, to_bool

student_bp = Blueprint('student_bp', __name__, url_prefix='/api/students')


@student_bp.route('/availability', methods=['PUT'])
@student_required
def update_availability():
    payload = get_json()
    if 'availability' not in payload:
        raise ValidationFailed([{'field': 'availability', 'message': 'availability is required'}],
                               'Missing required fields')
    availability = to_bool(payload['availability'])
    # A donor still in the cooldown window cannot mark themselves available
    if availability and not current_user.is_available_for_donation():
        next_date = current_user.next_available_donation_date()
        raise BadRequest(f'You are not eligible to donate yet. You can donate again after {next_date:%Y-%m-%d}')

    try:
        current_user.availability_status = availability
        db.session.commit()
        return api_response(
            current_user.to_dict(),
            f'Availability updated to {"available" if availability else "unavailable"}',
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Update availability error: {e}')
        return error_response('Database error occurred', 500)
