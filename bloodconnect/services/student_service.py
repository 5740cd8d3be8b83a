import csv
import io
import logging
import secrets

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest

from bloodconnect.constants import BLOOD_GROUPS
from bloodconnect.errors import ValidationFailed
from bloodconnect.extensions import db
from bloodconnect.models import User
from bloodconnect.services import email_service
from bloodconnect.services.system_log_service import record_event
from bloodconnect.utils import is_valid_email, to_bool
from bloodconnect.validators import validate_student

logger = logging.getLogger(__name__)

CSV_REQUIRED_COLUMNS = ('name', 'email', 'bloodGroup', 'rollNo', 'phone')


def temporary_password():
    return secrets.token_hex(4)


def email_taken(email, exclude_id=None):
    query = User.query.filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def send_welcome(student, password):
    return email_service.send_email(
        [student.email], 'Welcome to BloodConnect', 'student_welcome',
        student=student,
        temp_password=password,
        login_url=f"{current_app.config['FRONTEND_URL']}/login",
    )


def create_student(payload, admin=None, require_password=False):
    """Create a student account.

    Without a password in ``payload`` a temporary one is generated and
    mailed in the welcome email. Returns the student and whether the
    password was generated.
    """
    data = validate_student(payload, require_password=require_password)
    if email_taken(data['email']):
        raise BadRequest('User with this email already exists')

    password = payload.get('password')
    generated = not password
    if generated:
        password = temporary_password()

    student = User(role='student', **data)
    student.set_password(password)
    db.session.add(student)
    record_event('INFO', f'Student {student.email} created', admin)
    db.session.commit()

    if generated:
        send_welcome(student, password)
    return student, generated


def update_student(student, payload):
    data = validate_student(payload, partial=True)
    if 'email' in data and data['email'] != student.email and email_taken(data['email'], student.id):
        raise BadRequest('Email already in use')
    for field, value in data.items():
        setattr(student, field, value)
    if payload.get('password'):
        student.set_password(payload['password'])
    db.session.commit()
    return student


def _row_error(line, row, message):
    return {'row': line, 'email': (row.get('email') or '').strip() or None, 'error': message}


def import_students_csv(stream, admin=None):
    """Create students from CSV rows, collecting per-row errors.

    ``stream`` is a binary file object. Rows are committed one by one so a
    bad row never undoes the good ones.
    """
    try:
        text = stream.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise BadRequest('CSV file must be UTF-8 encoded')
    reader = csv.DictReader(io.StringIO(text, newline=''))
    missing_columns = [c for c in CSV_REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
    if missing_columns:
        raise ValidationFailed(
            [{'field': c, 'message': f'{c} column is required'} for c in missing_columns],
            'CSV file is missing required columns',
        )

    created = []
    errors = []
    for line, row in enumerate(reader, start=2):
        values = {key: (value or '').strip() for key, value in row.items() if key}
        if any(not values.get(column) for column in CSV_REQUIRED_COLUMNS):
            errors.append(_row_error(line, values, 'Missing required fields'))
            continue
        email = values['email'].lower()
        if not is_valid_email(email):
            errors.append(_row_error(line, values, 'Invalid email'))
            continue
        if values['bloodGroup'] not in BLOOD_GROUPS:
            errors.append(_row_error(line, values, 'Invalid blood group'))
            continue
        if email_taken(email):
            errors.append(_row_error(line, values, 'Email already exists'))
            continue

        password = temporary_password()
        student = User(
            name=values['name'],
            email=email,
            role='student',
            blood_group=values['bloodGroup'],
            roll_no=values['rollNo'],
            phone=values['phone'],
            availability_status=to_bool(values['availability']) if values.get('availability') else True,
        )
        student.set_password(password)
        db.session.add(student)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f'Bulk upload row {line} failed: {e}')
            errors.append(_row_error(line, values, 'Could not save student'))
            continue
        created.append(student)
        send_welcome(student, password)

    record_event('INFO', f'Bulk upload created {len(created)} students with {len(errors)} errors', admin)
    db.session.commit()
    return created, errors
