"""Blood request lifecycle: pending -> approved -> fulfilled, pending -> rejected.

Each transition commits its rows in a single transaction and only then
notifies the people involved.
"""
import logging
import os
import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy import case, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import BadRequest, NotFound
from werkzeug.utils import secure_filename

from bloodconnect.extensions import db
from bloodconnect.models import BloodRequest, Certificate, StudentOptIn, User
from bloodconnect.services import certificate_service, email_service, notification_service, realtime
from bloodconnect.services.system_log_service import record_event
from bloodconnect.validators import validate_blood_request

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = 'Request did not meet our criteria'
PHOTO_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'webp'}

URGENCY_ORDER = case(
    {'critical': 4, 'high': 3, 'medium': 2, 'low': 1},
    value=BloodRequest.urgency,
)


def get_request(request_id):
    blood_request = db.session.get(BloodRequest, request_id)
    if not blood_request:
        raise NotFound('Blood request not found')
    return blood_request


def _get_donor(donor_id):
    donor = db.session.get(User, donor_id)
    if not donor or donor.role != 'student':
        raise NotFound('Donor not found')
    return donor


def _has_opted_in(donor, blood_request):
    return StudentOptIn.query.filter_by(student_id=donor.id, request_id=blood_request.id).first() is not None


def _request_event(blood_request):
    return {
        'requestId': blood_request.id,
        'requestorName': blood_request.requestor_name,
        'bloodGroup': blood_request.blood_group,
        'units': blood_request.units,
        'urgency': blood_request.urgency,
        'hospitalName': blood_request.hospital_name,
    }


def _stamp_donation(blood_request, donor, now):
    blood_request.transition_to('fulfilled')
    blood_request.assigned_donor_id = donor.id
    donor.availability_status = False
    donor.last_donation_date = now


def create_request(payload, now=None):
    data = validate_blood_request(payload, now)
    blood_request = BloodRequest(status='pending', **data)
    db.session.add(blood_request)
    db.session.flush()
    record_event('INFO', f'Blood request {blood_request.id} created for {blood_request.blood_group}')
    db.session.commit()

    notification_service.notify_admins(
        'request_created',
        'New Blood Request',
        f'{blood_request.requestor_name} needs {blood_request.blood_group} blood '
        f'({blood_request.units} units) at {blood_request.hospital_name}',
        metadata={'requestId': blood_request.id},
        event=('request_created', {
            'message': f'New {blood_request.blood_group} blood request from {blood_request.requestor_name}',
            **_request_event(blood_request),
        }),
        email_template='new_blood_request',
        email_subject=f'New Blood Request - {blood_request.blood_group} ({blood_request.urgency.upper()})',
        email_data={'blood_request': blood_request},
    )
    email_service.send_email(
        [blood_request.email], 'Blood Request Submitted Successfully', 'request_confirmation',
        blood_request=blood_request,
    )
    return blood_request


def eligible_donors(blood_request, now=None):
    """Students of the request's blood group who may donate right now."""
    candidates = User.query.filter_by(
        role='student', blood_group=blood_request.blood_group, availability_status=True
    ).all()
    return [student for student in candidates if student.is_available_for_donation(now)]


def approve_request(request_id, admin=None, now=None):
    blood_request = get_request(request_id)
    blood_request.transition_to('approved')
    record_event('INFO', f'Blood request {blood_request.id} approved', admin)
    db.session.commit()

    donors = eligible_donors(blood_request, now)
    if donors:
        notification_service.dispatch(
            donors,
            'request_approved',
            'New Blood Request Available',
            f'{blood_request.requestor_name} needs {blood_request.blood_group} blood ({blood_request.units} units)',
            metadata={'requestId': blood_request.id},
            event=('request_approved', {
                'message': f'New {blood_request.blood_group} blood request approved',
                **_request_event(blood_request),
            }),
            email={
                'to': [donor.email for donor in donors],
                'subject': f'Blood Request Approved - {blood_request.blood_group} Needed',
                'template': 'request_approved',
                'blood_request': blood_request,
            },
        )
    return blood_request, donors


def reject_request(request_id, reason=None, admin=None):
    blood_request = get_request(request_id)
    blood_request.transition_to('rejected')
    blood_request.rejection_reason = reason or DEFAULT_REJECTION_REASON
    record_event('INFO', f'Blood request {blood_request.id} rejected', admin)
    db.session.commit()

    email_service.send_email(
        [blood_request.email], 'Blood Request Update', 'request_rejected',
        blood_request=blood_request,
    )
    return blood_request


def matching_requests(student, now=None):
    """Approved, upcoming requests for the student's blood group.

    Empty while the student is unavailable.
    """
    now = now or datetime.utcnow()
    if student.refresh_availability(now):
        db.session.commit()
    if not student.availability_status:
        return []
    return BloodRequest.query.filter(
        BloodRequest.blood_group == student.blood_group,
        BloodRequest.status == 'approved',
        BloodRequest.date_time >= now,
    ).order_by(URGENCY_ORDER.desc(), BloodRequest.created_at.asc()).all()


def opt_in(student, request_id, now=None):
    if not student.is_available_for_donation(now):
        next_date = student.next_available_donation_date()
        raise BadRequest(
            f'You are not eligible to donate yet. You can donate again after {next_date:%Y-%m-%d}'
        )

    blood_request = BloodRequest.query.filter_by(id=request_id, status='approved').first()
    if not blood_request:
        raise NotFound('Blood request not found or not approved')
    if blood_request.blood_group != student.blood_group:
        raise BadRequest('Your blood group does not match this request')
    if _has_opted_in(student, blood_request):
        raise BadRequest('You have already opted in to this request')

    opt_in_row = StudentOptIn(student_id=student.id, request_id=blood_request.id)
    db.session.add(opt_in_row)
    record_event('INFO', f'Student opted in to blood request {blood_request.id}', student)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise BadRequest('You have already opted in to this request')

    notification_service.notify_admins(
        'student_opted_in',
        'Student Opted In',
        f'{student.name} ({student.blood_group}) opted in to the request from {blood_request.requestor_name}',
        metadata={'requestId': blood_request.id, 'studentId': student.id},
        event=('student_opted_in', {
            'message': f'{student.name} opted in to a {blood_request.blood_group} request',
            'requestId': blood_request.id,
            'studentId': student.id,
            'studentName': student.name,
        }),
    )
    return opt_in_row


def fulfill_request(request_id, donor_id, admin=None, now=None):
    if not donor_id:
        raise BadRequest('Donor ID is required')
    blood_request = get_request(request_id)
    if blood_request.status != 'approved':
        raise BadRequest('Request is not in approved status')
    donor = _get_donor(donor_id)
    if not _has_opted_in(donor, blood_request):
        raise BadRequest('Donor has not opted in to this request')

    now = now or datetime.utcnow()
    _stamp_donation(blood_request, donor, now)
    record_event('INFO', f'Blood request {blood_request.id} fulfilled by {donor.name}', admin)
    db.session.commit()

    _notify_donor_assigned(blood_request, donor)
    email_service.send_email(
        [blood_request.email], 'Donor Assigned to Your Blood Request', 'donor_assigned',
        blood_request=blood_request, donor=donor,
    )
    return blood_request


def assign_donor(request_id, donor_id, admin=None):
    if not donor_id:
        raise BadRequest('Donor ID is required')
    blood_request = get_request(request_id)
    if blood_request.status != 'approved':
        raise BadRequest('Request is not in approved status')
    donor = _get_donor(donor_id)
    if not _has_opted_in(donor, blood_request):
        raise BadRequest('Donor has not opted in to this request')

    blood_request.assigned_donor_id = donor.id
    record_event('INFO', f'{donor.name} assigned to blood request {blood_request.id}', admin)
    db.session.commit()

    _notify_donor_assigned(blood_request, donor)
    return blood_request


def _notify_donor_assigned(blood_request, donor):
    notification_service.dispatch(
        [donor],
        'donor_assigned',
        'You Have Been Selected as Donor',
        f'You have been selected to donate {blood_request.blood_group} blood for '
        f'{blood_request.requestor_name} at {blood_request.hospital_name}',
        metadata={'requestId': blood_request.id},
        event=('donor_assigned', {
            'message': 'You have been selected as a donor',
            **_request_event(blood_request),
        }),
        email={
            'to': [donor.email],
            'subject': 'You Have Been Selected as a Blood Donor',
            'template': 'donor_selected',
            'blood_request': blood_request,
            'donor': donor,
        },
    )


def _allowed_photo(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in PHOTO_EXTENSIONS


def save_geotag_photo(photo):
    """Store an uploaded photo under uploads/geotags and return its URL."""
    if not photo or not photo.filename:
        raise BadRequest('Geotag photo is required')
    if not _allowed_photo(photo.filename):
        raise BadRequest('Only image files are allowed')

    folder = os.path.join(current_app.config['UPLOAD_FOLDER'], 'geotags')
    os.makedirs(folder, exist_ok=True)
    filename = f'{uuid.uuid4().hex}-{secure_filename(photo.filename)}'
    path = os.path.join(folder, filename)
    photo.save(path)
    return path, f'/uploads/geotags/{filename}'


def complete_donation(request_id, photo, admin=None, now=None):
    """Fulfil through the assigned donor and stage their certificate."""
    blood_request = get_request(request_id)
    if blood_request.status != 'approved':
        raise BadRequest('Request is not in approved status')
    donor = blood_request.assigned_donor
    if not donor:
        raise BadRequest('No donor has been assigned to this request')

    path, url = save_geotag_photo(photo)
    now = now or datetime.utcnow()
    try:
        _stamp_donation(blood_request, donor, now)
        blood_request.geotag_photo_url = url
        certificate = Certificate.query.filter_by(donor_id=donor.id, request_id=blood_request.id).first()
        if certificate is None:
            certificate = certificate_service.build_certificate(donor, blood_request, now)
        record_event('INFO', f'Donation for blood request {blood_request.id} completed by {donor.name}', admin)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        os.remove(path)
        raise

    notification_service.dispatch(
        [donor],
        'donation_completed',
        'Donation Completed',
        f'Thank you for donating {blood_request.blood_group} blood at {blood_request.hospital_name}. '
        f'Your certificate request is awaiting approval.',
        metadata={'requestId': blood_request.id, 'certificateId': certificate.id},
        event=('donation_completed', {
            'message': 'Your donation has been recorded',
            'certificateId': certificate.id,
            **_request_event(blood_request),
        }),
    )
    realtime.emit_to_admins('donation_completed', {
        'requestId': blood_request.id,
        'donorId': donor.id,
        'certificateId': certificate.id,
    })
    return blood_request, certificate


def delete_request(request_id, admin=None):
    blood_request = get_request(request_id)
    record_event('INFO', f'Blood request {blood_request.id} deleted', admin)
    db.session.delete(blood_request)
    db.session.commit()


def search_requests(status=None, blood_group=None, urgency=None, search=None):
    query = BloodRequest.query
    if status:
        query = query.filter(BloodRequest.status == status)
    if blood_group:
        query = query.filter(BloodRequest.blood_group == blood_group)
    if urgency:
        query = query.filter(BloodRequest.urgency == urgency)
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(
            BloodRequest.requestor_name.ilike(pattern),
            BloodRequest.email.ilike(pattern),
            BloodRequest.hospital_name.ilike(pattern),
        ))
    return query.order_by(BloodRequest.created_at.desc())
