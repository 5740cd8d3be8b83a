import csv
import io
from datetime import datetime, timedelta

from sqlalchemy import func

from bloodconnect.constants import BLOOD_GROUPS, CERTIFICATE_STATUSES
from bloodconnect.extensions import db
from bloodconnect.models import BloodRequest, Certificate, StudentOptIn, User
from bloodconnect.utils import add_months


def dashboard_stats(now=None):
    now = now or datetime.utcnow()
    return {
        'totalRequests': BloodRequest.query.count(),
        'pendingRequests': BloodRequest.query.filter_by(status='pending').count(),
        'approvedRequests': BloodRequest.query.filter_by(status='approved').count(),
        'totalStudents': User.query.filter_by(role='student').count(),
        'availableStudents': User.query.filter_by(role='student', availability_status=True).count(),
        'recentOptIns': StudentOptIn.query.filter(StudentOptIn.created_at >= now - timedelta(days=1)).count(),
    }


def _counts_by(column, *criteria):
    rows = db.session.query(column, func.count()).filter(*criteria).group_by(column).all()
    return {key: count for key, count in rows}


def blood_group_stats():
    students = _counts_by(User.blood_group, User.role == 'student')
    available = _counts_by(User.blood_group, User.role == 'student', User.availability_status.is_(True))
    requests = _counts_by(BloodRequest.blood_group)
    return [
        {
            'bloodGroup': group,
            'totalStudents': students.get(group, 0),
            'availableStudents': available.get(group, 0),
            'totalRequests': requests.get(group, 0),
        }
        for group in BLOOD_GROUPS
    ]


def donation_stats(now=None):
    """Fulfilled donations per month over the last year, per blood group,
    and certificates per status."""
    now = now or datetime.utcnow()
    first_month = add_months(now.replace(day=1, hour=0, minute=0, second=0, microsecond=0), -11)
    months = [add_months(first_month, offset).strftime('%Y-%m') for offset in range(12)]

    fulfilled = BloodRequest.query.filter(
        BloodRequest.status == 'fulfilled',
        BloodRequest.updated_at >= first_month,
    ).all()
    per_month = dict.fromkeys(months, 0)
    for blood_request in fulfilled:
        key = blood_request.updated_at.strftime('%Y-%m')
        if key in per_month:
            per_month[key] += 1

    by_group = _counts_by(BloodRequest.blood_group, BloodRequest.status == 'fulfilled')
    certificates = _counts_by(Certificate.status)
    return {
        'totalDonations': BloodRequest.query.filter_by(status='fulfilled').count(),
        'uniqueDonors': db.session.query(func.count(func.distinct(BloodRequest.assigned_donor_id)))
        .filter(BloodRequest.status == 'fulfilled').scalar() or 0,
        'monthly': [{'month': month, 'donations': per_month[month]} for month in months],
        'byBloodGroup': [{'bloodGroup': group, 'donations': by_group.get(group, 0)} for group in BLOOD_GROUPS],
        'certificates': {status: certificates.get(status, 0) for status in CERTIFICATE_STATUSES},
    }


REPORT_HEADER = [
    'Request ID', 'Requestor', 'Requestor Email', 'Blood Group', 'Units', 'Hospital', 'Urgency',
    'Donor Name', 'Donor Email', 'Donor Roll No', 'Fulfilled At', 'Certificate Number', 'Certificate Status',
]


def donation_report_csv():
    si = io.StringIO()
    cw = csv.writer(si)
    cw.writerow(REPORT_HEADER)

    fulfilled = BloodRequest.query.filter_by(status='fulfilled').order_by(BloodRequest.updated_at.desc()).all()
    for blood_request in fulfilled:
        donor = blood_request.assigned_donor
        certificate = next(
            (c for c in blood_request.certificates if donor and c.donor_id == donor.id), None
        )
        cw.writerow([
            blood_request.id,
            blood_request.requestor_name,
            blood_request.email,
            blood_request.blood_group,
            blood_request.units,
            blood_request.hospital_name,
            blood_request.urgency,
            donor.name if donor else '',
            donor.email if donor else '',
            (donor.roll_no or '') if donor else '',
            blood_request.updated_at.strftime('%Y-%m-%d %H:%M:%S') if blood_request.updated_at else '',
            certificate.certificate_number if certificate else '',
            certificate.status if certificate else '',
        ])
    return si.getvalue()
