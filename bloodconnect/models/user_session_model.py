from datetime import datetime

from bloodconnect.extensions import db
from bloodconnect.utils import new_id


class UserSession(db.Model):
    """The single live session of a user; a new login replaces it."""
    __tablename__ = 'user_sessions'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True)
    token_jti = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    user = db.relationship('User', backref=db.backref('session', uselist=False, cascade='all, delete-orphan'))

    def is_valid_for(self, jti, now=None):
        return self.token_jti == jti and self.expires_at > (now or datetime.utcnow())
