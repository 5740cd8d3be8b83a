from bloodconnect.models.user_model import User
from bloodconnect.models.blood_request_model import BloodRequest
from bloodconnect.models.student_opt_in_model import StudentOptIn
from bloodconnect.models.notification_model import Notification
from bloodconnect.models.certificate_model import Certificate
from bloodconnect.models.login_history_model import LoginHistory
from bloodconnect.models.user_session_model import UserSession
from bloodconnect.models.system_log_model import SystemLog

__all__ = [
    'User',
    'BloodRequest',
    'StudentOptIn',
    'Notification',
    'Certificate',
    'LoginHistory',
    'UserSession',
    'SystemLog',
]
