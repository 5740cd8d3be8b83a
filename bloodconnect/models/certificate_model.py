from datetime import datetime

from bloodconnect.constants import BLOOD_GROUPS, CERTIFICATE_STATUSES
from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class Certificate(db.Model):
    __tablename__ = 'certificates'
    __table_args__ = (db.UniqueConstraint('donor_id', 'request_id', name='uq_certificate_donor_request'),)

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    donor_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    request_id = db.Column(db.String(36), db.ForeignKey('blood_requests.id', ondelete='CASCADE'), nullable=False)
    certificate_number = db.Column(db.String(20), unique=True, nullable=False)
    donor_name = db.Column(db.String(100), nullable=False)
    blood_group = db.Column(db.Enum(*BLOOD_GROUPS, name='blood_group'), nullable=False)
    donation_date = db.Column(db.DateTime, nullable=False)
    hospital_name = db.Column(db.String(200), nullable=False)
    units = db.Column(db.Integer, nullable=False)
    status = db.Column(db.Enum(*CERTIFICATE_STATUSES, name='certificate_status'), nullable=False, default='pending')
    admin_approved_at = db.Column(db.DateTime)
    generated_at = db.Column(db.DateTime)
    certificate_url = db.Column(db.String(500))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    donor = db.relationship('User', backref=db.backref('certificates', cascade='all, delete-orphan'))
    request = db.relationship('BloodRequest', backref=db.backref('certificates', cascade='all, delete-orphan'))

    @staticmethod
    def next_certificate_number(now=None):
        """CERT-<year>-<NNNN>, one past the highest number issued this year."""
        year = (now or datetime.utcnow()).year
        prefix = f'CERT-{year}-'
        numbers = db.session.query(Certificate.certificate_number).filter(
            Certificate.certificate_number.like(f'{prefix}%')
        ).all()
        highest = 0
        for (number,) in numbers:
            try:
                highest = max(highest, int(number[len(prefix):]))
            except ValueError:
                continue
        return f'{prefix}{highest + 1:04d}'

    def to_dict(self, include_related=False):
        data = {
            'id': self.id,
            'donorId': self.donor_id,
            'requestId': self.request_id,
            'certificateNumber': self.certificate_number,
            'donorName': self.donor_name,
            'bloodGroup': self.blood_group,
            'donationDate': isoformat(self.donation_date),
            'hospitalName': self.hospital_name,
            'units': self.units,
            'status': self.status,
            'adminApprovedAt': isoformat(self.admin_approved_at),
            'generatedAt': isoformat(self.generated_at),
            'certificateUrl': self.certificate_url,
            'notes': self.notes,
            'createdAt': isoformat(self.created_at),
        }
        if include_related:
            data['donor'] = self.donor.to_summary() if self.donor else None
            data['request'] = self.request.to_dict() if self.request else None
        return data
