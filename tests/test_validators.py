from datetime import datetime, timedelta

import pytest

from bloodconnect.errors import ValidationFailed
from bloodconnect.utils import add_months
from bloodconnect.validators import validate_admin, validate_blood_request, validate_login, validate_student


def _fields(excinfo):
    return {error['field'] for error in excinfo.value.errors}


def test_valid_blood_request_is_normalised(request_payload):
    data = validate_blood_request(request_payload(email='Ravi@Example.com', units='3'))

    assert data['email'] == 'ravi@example.com'
    assert data['units'] == 3
    assert data['date_time'].tzinfo is None
    assert data['requestor_name'] == 'Ravi Kumar'


def test_missing_fields_are_listed(request_payload):
    payload = request_payload()
    del payload['hospitalName']
    payload['phone'] = ''

    with pytest.raises(ValidationFailed) as excinfo:
        validate_blood_request(payload)

    assert excinfo.value.description == 'Missing required fields'
    assert _fields(excinfo) == {'hospitalName', 'phone'}


@pytest.mark.parametrize('units', [0, 11, -1, 'ten', 2.5])
def test_units_out_of_range(request_payload, units):
    with pytest.raises(ValidationFailed) as excinfo:
        validate_blood_request(request_payload(units=units))

    assert _fields(excinfo) == {'units'}
    assert excinfo.value.description == 'Units must be between 1 and 10'


def test_date_must_be_in_the_future(request_payload):
    past = (datetime.utcnow() - timedelta(hours=1)).isoformat()

    with pytest.raises(ValidationFailed) as excinfo:
        validate_blood_request(request_payload(dateTime=past))

    assert excinfo.value.description == 'Date and time must be in the future'


def test_unknown_blood_group_and_urgency(request_payload):
    with pytest.raises(ValidationFailed) as excinfo:
        validate_blood_request(request_payload(bloodGroup='C+', urgency='urgent'))

    assert _fields(excinfo) == {'bloodGroup', 'urgency'}
    assert excinfo.value.description == 'Validation error'


def test_partial_student_update_only_keeps_given_fields():
    data = validate_student({'phone': '9999999999', 'availability': 'false'}, partial=True)

    assert data == {'phone': '9999999999', 'availability_status': False}


def test_non_string_student_fields_are_field_errors():
    with pytest.raises(ValidationFailed) as excinfo:
        validate_student({
            'name': 42,
            'email': 'nila@university.edu',
            'bloodGroup': 'B+',
            'rollNo': 2021001,
            'phone': 9123456780,
            'password': 12345678,
        })

    assert _fields(excinfo) == {'name', 'rollNo', 'phone', 'password'}


def test_non_string_credentials_are_rejected():
    with pytest.raises(ValidationFailed) as login_error:
        validate_login({'email': 'asha@university.edu', 'password': 123456})
    with pytest.raises(ValidationFailed) as admin_error:
        validate_admin({'name': 'Ops', 'email': 'ops@brms.com', 'password': ['secret']})

    assert _fields(login_error) == {'password'}
    assert _fields(admin_error) == {'password'}


def test_add_months_clamps_to_month_end():
    assert add_months(datetime(2025, 11, 30, 9, 0), 3) == datetime(2026, 2, 28, 9, 0)
    assert add_months(datetime(2024, 1, 15), -2) == datetime(2023, 11, 15)
