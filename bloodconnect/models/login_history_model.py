from datetime import datetime

from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class LoginHistory(db.Model):
    __tablename__ = 'login_history'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    ip_address = db.Column(db.String(64), nullable=False)
    user_agent = db.Column(db.Text, nullable=False)
    login_time = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    logout_time = db.Column(db.DateTime)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    location = db.Column(db.String(255))

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
            'loginTime': isoformat(self.login_time),
            'logoutTime': isoformat(self.logout_time),
            'isActive': self.is_active,
            'location': self.location,
        }
