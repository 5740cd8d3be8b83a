BLOOD_GROUPS = ('A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-')
URGENCY_LEVELS = ('low', 'medium', 'high', 'critical')
REQUEST_STATUSES = ('pending', 'approved', 'rejected', 'fulfilled')
CERTIFICATE_STATUSES = ('pending', 'approved', 'generated')
ROLES = ('admin', 'student')
NOTIFICATION_TYPES = (
    'request_created',
    'request_approved',
    'student_opted_in',
    'donor_assigned',
    'donation_completed',
)
LOG_LEVELS = ('INFO', 'WARN', 'ERROR', 'DEBUG')

# Months a donor has to wait between donations
DONATION_COOLDOWN_MONTHS = 3

# Allowed forward moves of a blood request
REQUEST_TRANSITIONS = {
    'pending': ('approved', 'rejected'),
    'approved': ('fulfilled',),
    'rejected': (),
    'fulfilled': (),
}
