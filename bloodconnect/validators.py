"""Field validation for incoming JSON payloads.

Each ``validate_*`` function returns a cleaned dict or raises
``ValidationFailed`` listing every offending field.
"""
from datetime import datetime

from bloodconnect.constants import BLOOD_GROUPS, URGENCY_LEVELS
from bloodconnect.errors import ValidationFailed
from bloodconnect.utils import is_valid_email, parse_datetime, to_bool

BLOOD_REQUEST_FIELDS = [
    'requestorName', 'email', 'phone', 'bloodGroup', 'units',
    'dateTime', 'hospitalName', 'location', 'urgency',
]


def _error(field, message):
    return {'field': field, 'message': message}


def _check_length(errors, data, field, low, high, required=True):
    value = data.get(field)
    if value is None or value == '':
        if required:
            errors.append(_error(field, f'{field} is required'))
        return
    if not isinstance(value, str) or not (low <= len(value.strip()) <= high):
        errors.append(_error(field, f'{field} must be between {low} and {high} characters'))


def _missing(data, fields):
    return [f for f in fields if data.get(f) in (None, '')]


def _check_password(errors, data, field):
    value = data.get(field)
    if value in (None, ''):
        return
    if not isinstance(value, str):
        errors.append(_error(field, f'{field} must be a string'))
    elif len(value) < 6:
        errors.append(_error(field, f'{field} must be at least 6 characters'))


def validate_blood_request(data, now=None):
    missing = _missing(data, BLOOD_REQUEST_FIELDS)
    if missing:
        raise ValidationFailed(
            [_error(field, f'{field} is required') for field in missing],
            'Missing required fields',
        )

    errors = []
    _check_length(errors, data, 'requestorName', 2, 100)
    _check_length(errors, data, 'phone', 10, 15)
    _check_length(errors, data, 'hospitalName', 2, 200)
    _check_length(errors, data, 'location', 5, 500)
    _check_length(errors, data, 'notes', 0, 1000, required=False)
    if not is_valid_email(data['email']):
        errors.append(_error('email', 'email must be a valid email'))

    date_time = parse_datetime(data['dateTime'])
    if date_time is None:
        errors.append(_error('dateTime', 'dateTime must be a valid date'))
    elif date_time <= (now or datetime.utcnow()):
        errors.append(_error('dateTime', 'Date and time must be in the future'))

    if data['bloodGroup'] not in BLOOD_GROUPS:
        errors.append(_error('bloodGroup', 'Invalid blood group'))
    if data['urgency'] not in URGENCY_LEVELS:
        errors.append(_error('urgency', 'Invalid urgency level'))

    units = data['units']
    if isinstance(units, str) and units.strip().isdigit():
        units = int(units)
    if isinstance(units, bool) or not isinstance(units, int) or not 1 <= units <= 10:
        errors.append(_error('units', 'Units must be between 1 and 10'))

    if errors:
        message = errors[0]['message'] if len(errors) == 1 else 'Validation error'
        raise ValidationFailed(errors, message)

    return {
        'requestor_name': data['requestorName'].strip(),
        'email': data['email'].strip().lower(),
        'phone': data['phone'].strip(),
        'blood_group': data['bloodGroup'],
        'units': units,
        'date_time': date_time,
        'hospital_name': data['hospitalName'].strip(),
        'location': data['location'].strip(),
        'urgency': data['urgency'],
        'notes': (data.get('notes') or '').strip() or None,
    }


def validate_student(data, require_password=False, partial=False):
    """Student registration / admin create / update payloads."""
    required = [] if partial else ['name', 'email', 'bloodGroup', 'rollNo', 'phone']
    if require_password:
        required.append('password')
    missing = _missing(data, required)
    if missing:
        raise ValidationFailed([_error(f, f'{f} is required') for f in missing], 'Missing required fields')

    errors = []
    _check_length(errors, data, 'name', 2, 100, required=False)
    _check_length(errors, data, 'phone', 10, 15, required=False)
    _check_length(errors, data, 'rollNo', 1, 50, required=False)
    if data.get('email') and not is_valid_email(data['email']):
        errors.append(_error('email', 'email must be a valid email'))
    if data.get('bloodGroup') and data['bloodGroup'] not in BLOOD_GROUPS:
        errors.append(_error('bloodGroup', 'Invalid blood group'))
    _check_password(errors, data, 'password')
    if errors:
        raise ValidationFailed(errors)

    cleaned = {}
    for source, target in (('name', 'name'), ('rollNo', 'roll_no'), ('phone', 'phone'),
                           ('bloodGroup', 'blood_group')):
        if data.get(source):
            cleaned[target] = data[source].strip()
    if data.get('email'):
        cleaned['email'] = data['email'].strip().lower()
    if 'availability' in data:
        cleaned['availability_status'] = to_bool(data['availability'])
    return cleaned


def validate_login(data):
    missing = _missing(data, ['email', 'password'])
    if missing:
        raise ValidationFailed([_error(f, f'{f} is required') for f in missing], 'Missing required fields')
    if not is_valid_email(data['email']):
        raise ValidationFailed([_error('email', 'email must be a valid email')])
    if not isinstance(data['password'], str):
        raise ValidationFailed([_error('password', 'password must be a string')])
    return data['email'].strip().lower(), data['password']


def validate_admin(data, partial=False):
    required = [] if partial else ['name', 'email', 'password']
    missing = _missing(data, required)
    if missing:
        raise ValidationFailed([_error(f, f'{f} is required') for f in missing], 'Missing required fields')

    errors = []
    _check_length(errors, data, 'name', 2, 100, required=False)
    _check_length(errors, data, 'phone', 10, 15, required=False)
    if data.get('email') and not is_valid_email(data['email']):
        errors.append(_error('email', 'email must be a valid email'))
    _check_password(errors, data, 'password')
    if errors:
        raise ValidationFailed(errors)


def validate_password_change(data):
    missing = _missing(data, ['currentPassword', 'newPassword'])
    if missing:
        raise ValidationFailed([_error(f, f'{f} is required') for f in missing], 'Missing required fields')
    errors = []
    if not isinstance(data['currentPassword'], str):
        errors.append(_error('currentPassword', 'currentPassword must be a string'))
    _check_password(errors, data, 'newPassword')
    if errors:
        raise ValidationFailed(errors)
    return data['currentPassword'], data['newPassword']
