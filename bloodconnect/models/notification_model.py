from datetime import datetime

from bloodconnect.constants import NOTIFICATION_TYPES
from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.Enum(*NOTIFICATION_TYPES, name='notification_type'), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    read = db.Column(db.Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative models
    extra = db.Column('metadata', db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'read': self.read,
            'metadata': self.extra or {},
            'createdAt': isoformat(self.created_at),
        }
