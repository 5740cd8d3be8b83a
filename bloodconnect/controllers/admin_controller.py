from flask import Blueprint, current_app, make_response, request
from flask_jwt_extended import current_user
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest, NotFound

from bloodconnect.auth import admin_required
from bloodconnect.errors import error_response
from bloodconnect.extensions import db, limiter
from bloodconnect.models import User
from bloodconnect.rate_limits import ADMIN_LIMIT, UPLOAD_LIMIT, user_key
from bloodconnect.services import certificate_service, lifecycle, stats_service, student_service
from bloodconnect.services.system_log_service import record_event
from bloodconnect.utils import api_response, get_json, page_args, paginate, to_bool
from bloodconnect.validators import validate_admin

admin_bp = Blueprint('admin_bp', __name__, url_prefix='/api/admin')
limiter.limit(ADMIN_LIMIT, key_func=user_key)(admin_bp)


@admin_bp.before_request
@admin_required
def require_admin():
    pass


def _database_error(action, e):
    db.session.rollback()
    current_app.logger.error(f'{action} error: {e}')
    return error_response('Database error occurred', 500)


# Dashboard

@admin_bp.route('/dashboard/stats', methods=['GET'])
def get_dashboard_stats():
    try:
        return api_response(stats_service.dashboard_stats())
    except SQLAlchemyError as e:
        return _database_error('Get dashboard stats', e)


@admin_bp.route('/dashboard/blood-groups', methods=['GET'])
def get_blood_group_stats():
    try:
        return api_response(stats_service.blood_group_stats())
    except SQLAlchemyError as e:
        return _database_error('Get blood group stats', e)


@admin_bp.route('/dashboard/donation-stats', methods=['GET'])
def get_donation_stats():
    try:
        return api_response(stats_service.donation_stats())
    except SQLAlchemyError as e:
        return _database_error('Get donation stats', e)


@admin_bp.route('/dashboard/donation-report', methods=['GET'])
def download_donation_report():
    try:
        output = make_response(stats_service.donation_report_csv())
    except SQLAlchemyError as e:
        return _database_error('Donation report', e)
    output.headers['Content-Disposition'] = 'attachment; filename=donation_report.csv'
    output.headers['Content-Type'] = 'text/csv'
    return output


# Blood requests

@admin_bp.route('/requests', methods=['GET'])
def get_all_requests():
    page, limit = page_args()
    try:
        query = lifecycle.search_requests(
            status=request.args.get('status'),
            blood_group=request.args.get('bloodGroup'),
            urgency=request.args.get('urgency'),
            search=request.args.get('search'),
        )
        return api_response(paginate(query, page, limit, lambda r: r.to_dict(include_opt_ins=True)))
    except SQLAlchemyError as e:
        return _database_error('Get requests', e)


@admin_bp.route('/requests/<string:request_id>', methods=['GET'])
def get_request_by_id(request_id):
    try:
        blood_request = lifecycle.get_request(request_id)
        return api_response(blood_request.to_dict(include_opt_ins=True))
    except SQLAlchemyError as e:
        return _database_error('Get request', e)


@admin_bp.route('/requests/<string:request_id>/approve', methods=['POST'])
def approve_request(request_id):
    try:
        blood_request, donors = lifecycle.approve_request(request_id, current_user)
        data = blood_request.to_dict()
        data['notifiedDonors'] = len(donors)
        return api_response(data, 'Blood request approved successfully')
    except SQLAlchemyError as e:
        return _database_error('Approve request', e)


@admin_bp.route('/requests/<string:request_id>/reject', methods=['POST'])
def reject_request(request_id):
    try:
        blood_request = lifecycle.reject_request(request_id, get_json().get('reason'), current_user)
        return api_response(blood_request.to_dict(), 'Blood request rejected successfully')
    except SQLAlchemyError as e:
        return _database_error('Reject request', e)


@admin_bp.route('/requests/<string:request_id>/fulfill', methods=['POST'])
def fulfill_request(request_id):
    try:
        blood_request = lifecycle.fulfill_request(request_id, get_json().get('donorId'), current_user)
        return api_response(blood_request.to_dict(), 'Blood request fulfilled successfully')
    except SQLAlchemyError as e:
        return _database_error('Fulfill request', e)


@admin_bp.route('/requests/<string:request_id>/assign-donor', methods=['PUT'])
def assign_donor(request_id):
    try:
        blood_request = lifecycle.assign_donor(request_id, get_json().get('donorId'), current_user)
        return api_response(blood_request.to_dict(), 'Donor assigned successfully')
    except SQLAlchemyError as e:
        return _database_error('Assign donor', e)


@admin_bp.route('/requests/<string:request_id>/complete-donation', methods=['POST'])
@limiter.limit(UPLOAD_LIMIT, key_func=user_key)
def complete_donation(request_id):
    try:
        blood_request, certificate = lifecycle.complete_donation(
            request_id, request.files.get('geotagPhoto'), current_user
        )
        return api_response(
            {'request': blood_request.to_dict(), 'certificate': certificate.to_dict()},
            'Donation completed successfully',
        )
    except SQLAlchemyError as e:
        return _database_error('Complete donation', e)


@admin_bp.route('/requests/<string:request_id>', methods=['DELETE'])
def delete_request(request_id):
    try:
        lifecycle.delete_request(request_id, current_user)
        return api_response(message='Blood request deleted successfully')
    except SQLAlchemyError as e:
        return _database_error('Delete request', e)


# Students

def _get_user(user_id, role):
    user = User.query.filter_by(id=user_id, role=role).first()
    if not user:
        raise NotFound(f'{role.capitalize()} not found')
    return user


@admin_bp.route('/students', methods=['GET'])
def get_all_students():
    page, limit = page_args()
    try:
        query = User.query.filter_by(role='student')
        if request.args.get('bloodGroup'):
            query = query.filter(User.blood_group == request.args['bloodGroup'])
        if request.args.get('availability') not in (None, ''):
            query = query.filter(User.availability_status.is_(to_bool(request.args['availability'])))
        if request.args.get('search'):
            pattern = f"%{request.args['search']}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.roll_no.ilike(pattern)))
        return api_response(paginate(query.order_by(User.created_at.desc()), page, limit))
    except SQLAlchemyError as e:
        return _database_error('Get students', e)


@admin_bp.route('/students', methods=['POST'])
def create_student():
    try:
        student, _ = student_service.create_student(get_json(), current_user)
        return api_response(student.to_dict(), 'Student created successfully', 201)
    except SQLAlchemyError as e:
        return _database_error('Create student', e)


@admin_bp.route('/students/<string:student_id>', methods=['PUT'])
def update_student(student_id):
    try:
        student = student_service.update_student(_get_user(student_id, 'student'), get_json())
        return api_response(student.to_dict(), 'Student updated successfully')
    except SQLAlchemyError as e:
        return _database_error('Update student', e)


@admin_bp.route('/students/<string:student_id>', methods=['DELETE'])
def delete_student(student_id):
    try:
        student = _get_user(student_id, 'student')
        record_event('INFO', f'Student {student.email} deleted', current_user)
        db.session.delete(student)
        db.session.commit()
        return api_response(message='Student deleted successfully')
    except SQLAlchemyError as e:
        return _database_error('Delete student', e)


@admin_bp.route('/students/bulk-upload', methods=['POST'])
@limiter.limit(UPLOAD_LIMIT, key_func=user_key)
def bulk_upload_students():
    upload = request.files.get('file')
    if not upload or not upload.filename:
        raise BadRequest('No file uploaded')
    if not upload.filename.lower().endswith('.csv'):
        raise BadRequest('Only CSV files are allowed')
    try:
        created, errors = student_service.import_students_csv(upload.stream, current_user)
        return api_response(
            {'created': len(created), 'errors': errors},
            f'Bulk upload completed. {len(created)} students created.',
        )
    except SQLAlchemyError as e:
        return _database_error('Bulk upload', e)


# Admins

@admin_bp.route('/admins', methods=['GET'])
def get_all_admins():
    try:
        admins = User.query.filter_by(role='admin').order_by(User.created_at.desc()).all()
        return api_response([admin.to_dict() for admin in admins])
    except SQLAlchemyError as e:
        return _database_error('Get admins', e)


@admin_bp.route('/admins', methods=['POST'])
def create_admin():
    payload = get_json()
    validate_admin(payload)
    try:
        email = payload['email'].strip().lower()
        if student_service.email_taken(email):
            raise BadRequest('User with this email already exists')
        admin = User(name=payload['name'].strip(), email=email, role='admin', phone=payload.get('phone'))
        admin.set_password(payload['password'])
        db.session.add(admin)
        record_event('INFO', f'Admin {email} created', current_user)
        db.session.commit()
        return api_response(admin.to_dict(), 'Admin created successfully', 201)
    except SQLAlchemyError as e:
        return _database_error('Create admin', e)


@admin_bp.route('/admins/<string:admin_id>', methods=['PUT'])
def update_admin(admin_id):
    payload = get_json()
    validate_admin(payload, partial=True)
    try:
        admin = _get_user(admin_id, 'admin')
        if payload.get('email'):
            email = payload['email'].strip().lower()
            if email != admin.email and student_service.email_taken(email, admin.id):
                raise BadRequest('Email already in use')
            admin.email = email
        if payload.get('name'):
            admin.name = payload['name'].strip()
        if 'phone' in payload:
            admin.phone = payload['phone']
        if payload.get('password'):
            admin.set_password(payload['password'])
        db.session.commit()
        return api_response(admin.to_dict(), 'Admin updated successfully')
    except SQLAlchemyError as e:
        return _database_error('Update admin', e)


@admin_bp.route('/admins/<string:admin_id>', methods=['DELETE'])
def delete_admin(admin_id):
    if admin_id == current_user.id:
        raise BadRequest('You cannot delete your own account')
    try:
        admin = _get_user(admin_id, 'admin')
        record_event('INFO', f'Admin {admin.email} deleted', current_user)
        db.session.delete(admin)
        db.session.commit()
        return api_response(message='Admin deleted successfully')
    except SQLAlchemyError as e:
        return _database_error('Delete admin', e)


# Certificates

@admin_bp.route('/certificates/<string:certificate_id>/approve-and-generate', methods=['POST'])
def approve_and_generate_certificate(certificate_id):
    try:
        certificate, _ = certificate_service.approve_and_generate(certificate_id, current_user)
        return api_response(certificate.to_dict(), 'Certificate approved and generated successfully')
    except SQLAlchemyError as e:
        return _database_error('Approve and generate certificate', e)
