from flask import Blueprint, current_app, send_file
from flask_jwt_extended import current_user
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import Forbidden

from bloodconnect.auth import admin_required, login_required, student_required
from bloodconnect.errors import error_response
from bloodconnect.extensions import db
from bloodconnect.services import certificate_service
from bloodconnect.utils import api_response, get_json

certificate_bp = Blueprint('certificate_bp', __name__, url_prefix='/api/certificates')


def _database_error(action, e):
    db.session.rollback()
    current_app.logger.error(f'{action} error: {e}')
    return error_response('Database error occurred', 500)


def _owned_certificate(certificate_id, action):
    """Fetch a certificate the current user owns, or any one for admins."""
    certificate = certificate_service.get_certificate(certificate_id)
    if not current_user.is_admin and certificate.donor_id != current_user.id:
        raise Forbidden(f'You do not have permission to {action} this certificate')
    return certificate


def _send_certificate(certificate):
    path = certificate_service.certificate_file(certificate)
    return send_file(
        path,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=certificate_service.file_name_for(certificate),
    )


@certificate_bp.route('/request', methods=['POST'])
@student_required
def create_certificate_request():
    try:
        certificate = certificate_service.create_certificate_request(current_user, get_json().get('requestId'))
        return api_response(certificate.to_dict(), 'Certificate request created successfully', 201)
    except SQLAlchemyError as e:
        return _database_error('Create certificate request', e)


@certificate_bp.route('/my-certificates', methods=['GET'])
@student_required
def get_donor_certificates():
    try:
        certificates = certificate_service.certificates_for_donor(current_user)
        return api_response([c.to_dict(include_related=True) for c in certificates])
    except SQLAlchemyError as e:
        return _database_error('Get donor certificates', e)


@certificate_bp.route('/<string:certificate_id>', methods=['GET'])
@login_required
def get_certificate_by_id(certificate_id):
    try:
        certificate = _owned_certificate(certificate_id, 'view')
        return api_response(certificate.to_dict(include_related=True))
    except SQLAlchemyError as e:
        return _database_error('Get certificate', e)


@certificate_bp.route('/<string:certificate_id>/download', methods=['GET'])
@login_required
def download_certificate(certificate_id):
    try:
        return _send_certificate(_owned_certificate(certificate_id, 'download'))
    except SQLAlchemyError as e:
        return _database_error('Download certificate', e)


@certificate_bp.route('/<string:certificate_id>', methods=['DELETE'])
@login_required
def delete_certificate_request(certificate_id):
    try:
        certificate_service.delete_certificate(_owned_certificate(certificate_id, 'delete'))
        return api_response(message='Certificate request deleted successfully')
    except SQLAlchemyError as e:
        return _database_error('Delete certificate request', e)


@certificate_bp.route('/admin/pending', methods=['GET'])
@admin_required
def get_pending_certificates():
    try:
        return api_response([c.to_dict(include_related=True) for c in certificate_service.pending_certificates()])
    except SQLAlchemyError as e:
        return _database_error('Get pending certificates', e)


@certificate_bp.route('/admin/all', methods=['GET'])
@admin_required
def get_all_certificates():
    try:
        return api_response([c.to_dict(include_related=True) for c in certificate_service.all_certificates()])
    except SQLAlchemyError as e:
        return _database_error('Get all certificates', e)


@certificate_bp.route('/admin/<string:certificate_id>/approve', methods=['POST'])
@admin_required
def approve_certificate(certificate_id):
    try:
        certificate = certificate_service.approve_certificate(certificate_id, current_user)
        return api_response(certificate.to_dict(), 'Certificate approved successfully')
    except SQLAlchemyError as e:
        return _database_error('Approve certificate', e)


@certificate_bp.route('/admin/<string:certificate_id>/generate', methods=['POST'])
@admin_required
def generate_certificate(certificate_id):
    try:
        certificate, _ = certificate_service.generate_certificate(certificate_id)
        return api_response(certificate.to_dict(), 'Certificate generated successfully')
    except SQLAlchemyError as e:
        return _database_error('Generate certificate', e)


@certificate_bp.route('/admin/<string:certificate_id>/download', methods=['GET'])
@admin_required
def admin_download_certificate(certificate_id):
    try:
        return _send_certificate(certificate_service.get_certificate(certificate_id))
    except SQLAlchemyError as e:
        return _database_error('Download certificate', e)
