from datetime import datetime

from bloodconnect.constants import BLOOD_GROUPS, DONATION_COOLDOWN_MONTHS, ROLES
from bloodconnect.extensions import bcrypt, db
from bloodconnect.utils import add_months, isoformat, new_id


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(*ROLES, name='user_role'), nullable=False, default='student')
    blood_group = db.Column(db.Enum(*BLOOD_GROUPS, name='blood_group'))
    roll_no = db.Column(db.String(50))
    phone = db.Column(db.String(15))
    availability_status = db.Column(db.Boolean, nullable=False, default=True)  # True = Available
    last_donation_date = db.Column(db.DateTime)
    last_login = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    opt_ins = db.relationship('StudentOptIn', backref='student', lazy=True, cascade='all, delete-orphan')
    notifications = db.relationship('Notification', backref='user', lazy=True, cascade='all, delete-orphan')
    login_history = db.relationship('LoginHistory', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not password or not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def next_available_donation_date(self):
        if not self.last_donation_date:
            return None
        return add_months(self.last_donation_date, DONATION_COOLDOWN_MONTHS)

    def is_available_for_donation(self, now=None):
        """True when the donor never donated or the cooldown has passed."""
        if not self.last_donation_date:
            return True
        now = now or datetime.utcnow()
        return self.next_available_donation_date() <= now

    def refresh_availability(self, now=None):
        """Recompute a student's availability from the last donation date.

        Returns True when the stored flag changed.
        """
        if self.role != 'student':
            return False
        available = self.is_available_for_donation(now)
        if self.availability_status != available:
            self.availability_status = available
            return True
        return False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
            'bloodGroup': self.blood_group,
            'rollNo': self.roll_no,
            'phone': self.phone,
            'availability': self.availability_status,
            'lastDonationDate': isoformat(self.last_donation_date),
            'nextAvailableDonationDate': isoformat(self.next_available_donation_date()),
            'lastLogin': isoformat(self.last_login),
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }

    def to_summary(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'bloodGroup': self.blood_group,
        }

    def __repr__(self):
        return f'<User {self.email}>'
