import logging
import os
from datetime import datetime

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfgen import canvas
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Conflict, NotFound

from bloodconnect.extensions import db
from bloodconnect.models import BloodRequest, Certificate
from bloodconnect.services import email_service
from bloodconnect.services.system_log_service import record_event

logger = logging.getLogger(__name__)

RED = colors.HexColor('#dc3545')
GREY = colors.HexColor('#6c757d')
DARK = colors.HexColor('#212529')
TEXT = colors.HexColor('#495057')
GREEN = colors.HexColor('#28a745')
BACKGROUND = colors.HexColor('#f8f9fa')


def certificates_dir():
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], 'certificates')
    os.makedirs(path, exist_ok=True)
    return path


def file_name_for(certificate):
    return f'certificate-{certificate.certificate_number}.pdf'


def file_path_for(certificate):
    return os.path.join(certificates_dir(), file_name_for(certificate))


def get_certificate(certificate_id):
    certificate = db.session.get(Certificate, certificate_id)
    if not certificate:
        raise NotFound('Certificate not found')
    return certificate


def build_certificate(donor, blood_request, now=None):
    """Stage a pending certificate for a donation; the caller commits."""
    now = now or datetime.utcnow()
    certificate = Certificate(
        donor_id=donor.id,
        request_id=blood_request.id,
        certificate_number=Certificate.next_certificate_number(now),
        donor_name=donor.name,
        blood_group=donor.blood_group or blood_request.blood_group,
        donation_date=now,
        hospital_name=blood_request.hospital_name,
        units=blood_request.units,
        status='pending',
    )
    db.session.add(certificate)
    return certificate


def create_certificate_request(donor, request_id, now=None):
    blood_request = db.session.get(BloodRequest, request_id) if request_id else None
    if not blood_request:
        raise NotFound('Blood request not found')
    if blood_request.assigned_donor_id != donor.id:
        raise BadRequest('You are not the assigned donor for this request')
    if blood_request.status != 'fulfilled':
        raise BadRequest('Request has not been fulfilled yet')

    existing = Certificate.query.filter_by(donor_id=donor.id, request_id=blood_request.id).first()
    if existing:
        raise BadRequest('Certificate request already exists for this donation')

    certificate = build_certificate(donor, blood_request, now)
    record_event('INFO', f'Certificate {certificate.certificate_number} requested', donor)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict('Certificate request already exists for this donation')
    return certificate


def approve_certificate(certificate_id, admin=None, now=None):
    certificate = get_certificate(certificate_id)
    if certificate.status != 'pending':
        raise BadRequest('Certificate is not in pending status')

    certificate.status = 'approved'
    certificate.admin_approved_at = now or datetime.utcnow()
    record_event('INFO', f'Certificate {certificate.certificate_number} approved', admin)
    db.session.commit()

    send_approval_emails(certificate)
    return certificate


def generate_certificate(certificate_id, now=None):
    certificate = get_certificate(certificate_id)
    if certificate.status not in ('approved', 'generated'):
        raise BadRequest('Certificate must be approved before generation')

    path = render_pdf(certificate, now)
    certificate.status = 'generated'
    certificate.generated_at = now or datetime.utcnow()
    certificate.certificate_url = f'/api/certificates/{certificate.id}/download'
    db.session.commit()
    return certificate, path


def approve_and_generate(certificate_id, admin=None, now=None):
    certificate = get_certificate(certificate_id)
    if certificate.status == 'pending':
        approve_certificate(certificate_id, admin, now)
    return generate_certificate(certificate_id, now)


def certificate_file(certificate):
    """Path of the rendered PDF, re-rendering it when the file is gone."""
    if certificate.status != 'generated':
        raise BadRequest('Certificate has not been generated yet')
    path = file_path_for(certificate)
    if not os.path.exists(path):
        logger.warning(f'Certificate file for {certificate.certificate_number} missing, regenerating')
        render_pdf(certificate)
    return path


def delete_certificate(certificate):
    path = file_path_for(certificate)
    if os.path.exists(path):
        os.remove(path)
    db.session.delete(certificate)
    db.session.commit()


def certificates_for_donor(donor):
    return Certificate.query.filter_by(donor_id=donor.id).order_by(Certificate.created_at.desc()).all()


def pending_certificates():
    return Certificate.query.filter_by(status='pending').order_by(Certificate.created_at.desc()).all()


def all_certificates():
    return Certificate.query.order_by(Certificate.created_at.desc()).all()


def send_approval_emails(certificate):
    donor = certificate.donor
    blood_request = certificate.request
    if donor:
        email_service.send_email(
            [donor.email], 'Blood Donation Certificate Approved', 'certificate_approved',
            certificate=certificate,
        )
    if blood_request:
        email_service.send_email(
            [blood_request.email], 'Blood Donation Completed - Certificate Generated', 'donation_completed',
            certificate=certificate,
        )
    email_service.send_email(
        [current_app.config['ADMIN_EMAIL']], 'Certificate Approved - Blood Donation Completed',
        'admin_certificate_approved', certificate=certificate,
    )


def render_pdf(certificate, now=None):
    """Draw the landscape A4 certificate and return its file path."""
    now = now or datetime.utcnow()
    path = file_path_for(certificate)
    width, height = landscape(A4)
    pdf = canvas.Canvas(path, pagesize=(width, height))
    pdf.setTitle(f'Blood Donation Certificate {certificate.certificate_number}')

    pdf.setFillColor(BACKGROUND)
    pdf.rect(0, 0, width, height, stroke=0, fill=1)
    pdf.setStrokeColor(RED)
    pdf.setLineWidth(3)
    pdf.rect(20, 20, width - 40, height - 40, stroke=1, fill=0)
    pdf.setStrokeColor(GREY)
    pdf.setLineWidth(1)
    pdf.rect(40, 40, width - 80, height - 80, stroke=1, fill=0)

    pdf.setFillColor(RED)
    pdf.setFont('Helvetica-Bold', 36)
    pdf.drawCentredString(width / 2, height - 110, 'BLOOD DONATION CERTIFICATE')

    pdf.setFillColor(GREY)
    pdf.setFont('Helvetica', 14)
    pdf.drawCentredString(width / 2, height - 145, f'Certificate No: {certificate.certificate_number}')
    pdf.drawCentredString(width / 2, height - 165, f'Date: {now:%d %B %Y}')

    donor = certificate.donor
    center_y = height / 2
    left_x, right_x = 100, width / 2 + 40

    pdf.setFillColor(DARK)
    pdf.setFont('Helvetica-Bold', 16)
    pdf.drawString(left_x, center_y + 60, 'DONOR INFORMATION')
    pdf.drawString(right_x, center_y + 60, 'DONATION DETAILS')

    pdf.setFillColor(TEXT)
    pdf.setFont('Helvetica', 12)
    donor_lines = [
        f'Name: {certificate.donor_name}',
        f'Blood Group: {certificate.blood_group}',
        f'Roll No: {(donor.roll_no if donor else None) or "N/A"}',
        f'Email: {donor.email if donor else "N/A"}',
    ]
    donation_lines = [
        f'Donation Date: {certificate.donation_date:%d %B %Y}',
        f'Hospital: {certificate.hospital_name}',
        f'Units Donated: {certificate.units}',
        f'Status: {certificate.status.title()}',
    ]
    for offset, line in enumerate(donor_lines):
        pdf.drawString(left_x, center_y + 30 - offset * 20, line)
    for offset, line in enumerate(donation_lines):
        pdf.drawString(right_x, center_y + 30 - offset * 20, line)

    pdf.setFillColor(GREEN)
    pdf.setFont('Helvetica-Bold', 18)
    pdf.drawCentredString(width / 2, 150, 'Thank you for your life-saving contribution!')
    pdf.setFillColor(GREY)
    pdf.setFont('Helvetica', 12)
    pdf.drawCentredString(width / 2, 128, 'Your blood donation has the potential to save up to 3 lives.')

    pdf.setFont('Helvetica', 10)
    pdf.drawCentredString(width / 2, 70, 'This certificate is issued by the Blood Request Management System')
    pdf.drawCentredString(width / 2, 55, f'Generated on: {now:%Y-%m-%d %H:%M:%S} UTC')

    pdf.setFillColor(RED)
    for x, y in ((80, height - 80), (width - 80, height - 80), (80, 80), (width - 80, 80)):
        pdf.circle(x, y, 8, stroke=0, fill=1)

    pdf.showPage()
    pdf.save()
    logger.info(f'Rendered certificate {certificate.certificate_number} to {path}')
    return path
