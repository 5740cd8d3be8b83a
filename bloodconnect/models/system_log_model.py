from datetime import datetime

from bloodconnect.constants import LOG_LEVELS
from bloodconnect.extensions import db
from bloodconnect.utils import isoformat, new_id


class SystemLog(db.Model):
    __tablename__ = 'system_logs'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    level = db.Column(db.Enum(*LOG_LEVELS, name='log_level'), nullable=False, default='INFO')
    user = db.Column(db.String(255), nullable=False, default='system')
    role = db.Column(db.String(20))
    message = db.Column(db.Text, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': isoformat(self.timestamp),
            'level': self.level,
            'user': self.user,
            'role': self.role,
            'message': self.message,
        }
