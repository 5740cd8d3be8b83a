from datetime import datetime

from werkzeug.exceptions import BadRequest

from bloodconnect.constants import BLOOD_GROUPS, REQUEST_STATUSES, REQUEST_TRANSITIONS, URGENCY_LEVELS
from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class BloodRequest(db.Model):
    __tablename__ = 'blood_requests'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    requestor_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(15), nullable=False)
    blood_group = db.Column(db.Enum(*BLOOD_GROUPS, name='blood_group'), nullable=False)
    units = db.Column(db.Integer, nullable=False)
    date_time = db.Column(db.DateTime, nullable=False)
    hospital_name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.Text, nullable=False)
    urgency = db.Column(db.Enum(*URGENCY_LEVELS, name='urgency_level'), nullable=False, default='medium')
    notes = db.Column(db.Text)
    status = db.Column(db.Enum(*REQUEST_STATUSES, name='request_status'), nullable=False, default='pending')
    assigned_donor_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    rejection_reason = db.Column(db.Text)
    geotag_photo_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assigned_donor = db.relationship('User', foreign_keys=[assigned_donor_id])
    opt_ins = db.relationship(
        'StudentOptIn', backref='request', lazy=True, cascade='all, delete-orphan',
        order_by='StudentOptIn.created_at'
    )

    def can_transition_to(self, status):
        return status in REQUEST_TRANSITIONS.get(self.status, ())

    def transition_to(self, status):
        """Move the request forward; anything else is a 400."""
        if not self.can_transition_to(status):
            required = 'approved' if status == 'fulfilled' else 'pending'
            raise BadRequest(f'Request is not in {required} status')
        self.status = status

    def to_dict(self, include_opt_ins=False):
        data = {
            'id': self.id,
            'requestorName': self.requestor_name,
            'email': self.email,
            'phone': self.phone,
            'bloodGroup': self.blood_group,
            'units': self.units,
            'dateTime': isoformat(self.date_time),
            'hospitalName': self.hospital_name,
            'location': self.location,
            'urgency': self.urgency,
            'notes': self.notes,
            'status': self.status,
            'assignedDonorId': self.assigned_donor_id,
            'assignedDonor': self.assigned_donor.to_summary() if self.assigned_donor else None,
            'rejectionReason': self.rejection_reason,
            'geotagPhotoUrl': self.geotag_photo_url,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
        if include_opt_ins:
            data['optedInStudents'] = [opt_in.to_dict(include_student=True) for opt_in in self.opt_ins]
        return data

    def __repr__(self):
        return f'<BloodRequest {self.requestor_name} {self.blood_group} {self.status}>'
