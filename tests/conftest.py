from datetime import datetime, timedelta

import pytest

from bloodconnect import create_app
from bloodconnect.extensions import db as _db, mail
from bloodconnect.models import BloodRequest, User

PASSWORD = 'password123'


@pytest.fixture
def app(tmp_path):
    app = create_app('testing', {'UPLOAD_FOLDER': str(tmp_path / 'uploads')})
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(app):
    with mail.record_messages() as messages:
        yield messages


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make_user(role='student', blood_group='O+', **kwargs):
        counter['n'] += 1
        n = counter['n']
        user = User(
            name=kwargs.pop('name', f'User {n}'),
            email=kwargs.pop('email', f'user{n}@university.edu'),
            role=role,
            blood_group=blood_group if role == 'student' else None,
            roll_no=kwargs.pop('roll_no', f'CS{n:04d}' if role == 'student' else None),
            phone=kwargs.pop('phone', f'98765432{n:02d}'),
            **kwargs,
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(role='admin', name='Admin', email='admin@brms.com')


@pytest.fixture
def student(make_user):
    return make_user(name='Asha Student', email='asha@university.edu', blood_group='O+')


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        response = client.post('/api/auth/login', json={'email': user.email, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['data']['token']

    return _login


@pytest.fixture
def auth_headers(login):
    def _auth_headers(user):
        return {'Authorization': f'Bearer {login(user)}'}

    return _auth_headers


def _request_payload(**overrides):
    payload = {
        'requestorName': 'Ravi Kumar',
        'email': 'ravi@example.com',
        'phone': '9876543210',
        'bloodGroup': 'O+',
        'units': 2,
        'dateTime': (datetime.utcnow() + timedelta(days=2)).isoformat() + 'Z',
        'hospitalName': 'City Hospital',
        'location': 'Ward 4, City Hospital, Main Road',
        'urgency': 'high',
        'notes': 'Surgery scheduled',
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def request_payload():
    return _request_payload


@pytest.fixture
def make_request(db):
    def _make_request(status='pending', blood_group='O+', **kwargs):
        blood_request = BloodRequest(
            requestor_name=kwargs.pop('requestor_name', 'Ravi Kumar'),
            email=kwargs.pop('email', 'ravi@example.com'),
            phone='9876543210',
            blood_group=blood_group,
            units=kwargs.pop('units', 2),
            date_time=kwargs.pop('date_time', datetime.utcnow() + timedelta(days=2)),
            hospital_name=kwargs.pop('hospital_name', 'City Hospital'),
            location='Ward 4, City Hospital, Main Road',
            urgency=kwargs.pop('urgency', 'high'),
            status=status,
            **kwargs,
        )
        db.session.add(blood_request)
        db.session.commit()
        return blood_request

    return _make_request
