from datetime import datetime

from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class StudentOptIn(db.Model):
    __tablename__ = 'student_opt_ins'
    __table_args__ = (db.UniqueConstraint('student_id', 'request_id', name='uq_student_request_opt_in'),)

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    student_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    request_id = db.Column(db.String(36), db.ForeignKey('blood_requests.id', ondelete='CASCADE'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self, include_student=False, include_request=False):
        data = {
            'id': self.id,
            'studentId': self.student_id,
            'requestId': self.request_id,
            'createdAt': isoformat(self.created_at),
        }
        if include_student and self.student:
            data['student'] = self.student.to_summary()
        if include_request and self.request:
            data['request'] = self.request.to_dict()
        return data
