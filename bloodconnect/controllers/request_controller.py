from flask import Blueprint, current_app
from flask_jwt_extended import current_user
from sqlalchemy.exc import SQLAlchemyError

from bloodconnect.auth import student_required
from bloodconnect.errors import error_response
from bloodconnect.extensions import db, limiter
from bloodconnect.models import StudentOptIn
from bloodconnect.rate_limits import BLOOD_REQUEST_LIMIT, ip_and_email_key
from bloodconnect.services import lifecycle
from bloodconnect.utils import api_response, get_json

request_bp = Blueprint('request_bp', __name__, url_prefix='/api/requests')


@request_bp.route('/', methods=['POST'], strict_slashes=False)
@limiter.limit(BLOOD_REQUEST_LIMIT, key_func=ip_and_email_key)
def create_blood_request():
    try:
        blood_request = lifecycle.create_request(get_json())
        return api_response(blood_request.to_dict(), 'Blood request submitted successfully', 201)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Create blood request error: {e}')
        return error_response('Database error occurred', 500)


@request_bp.route('/matching', methods=['GET'])
@student_required
def get_matching_requests():
    try:
        requests = lifecycle.matching_requests(current_user)
        return api_response([r.to_dict(include_opt_ins=True) for r in requests])
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Get matching requests error: {e}')
        return error_response('Database error occurred', 500)


@request_bp.route('/<string:request_id>/opt-in', methods=['POST'])
@student_required
def opt_in_to_request(request_id):
    try:
        opt_in = lifecycle.opt_in(current_user, request_id)
        return api_response(opt_in.to_dict(include_request=True), 'Successfully opted in to blood request', 201)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Opt-in error: {e}')
        return error_response('Database error occurred', 500)


@request_bp.route('/opt-ins', methods=['GET'])
@student_required
def get_student_opt_ins():
    try:
        opt_ins = StudentOptIn.query.filter_by(student_id=current_user.id) \
            .order_by(StudentOptIn.created_at.desc()).all()
        return api_response([opt_in.to_dict(include_request=True) for opt_in in opt_ins])
    except SQLAlchemyError as e:
        current_app.logger.error(f'Get opt-ins error: {e}')
        return error_response('Database error occurred', 500)
