from bloodconnect.models import LoginHistory, SystemLog, User, UserSession


def test_register_creates_student_and_session(client, db):
    response = client.post('/api/auth/register', json={
        'name': 'Nila Raman',
        'email': 'Nila@University.edu',
        'password': 'secret99',
        'bloodGroup': 'B+',
        'rollNo': 'EE2023011',
        'phone': '9123456780',
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['user']['email'] == 'nila@university.edu'
    assert body['data']['user']['role'] == 'student'
    user = User.query.filter_by(email='nila@university.edu').one()
    assert UserSession.query.filter_by(user_id=user.id).count() == 1


def test_register_without_password_mails_a_temporary_one(client, outbox):
    response = client.post('/api/auth/register', json={
        'name': 'Kiran Das',
        'email': 'kiran@university.edu',
        'bloodGroup': 'A-',
        'rollNo': 'ME2023004',
        'phone': '9123456781',
    })

    assert response.status_code == 201
    assert [message.subject for message in outbox] == ['Welcome to BloodConnect']


def test_register_rejects_duplicate_email(client, student):
    response = client.post('/api/auth/register', json={
        'name': 'Someone Else',
        'email': student.email,
        'password': 'secret99',
        'bloodGroup': 'O+',
        'rollNo': 'X1',
        'phone': '9123456782',
    })

    assert response.status_code == 400
    assert response.get_json()['message'] == 'User with this email already exists'


def test_login_with_bad_password(client, student):
    response = client.post('/api/auth/login', json={'email': student.email, 'password': 'wrong-password'})

    assert response.status_code == 401
    assert response.get_json()['code'] == 'INVALID_CREDENTIALS'
    assert SystemLog.query.filter_by(level='WARN').one().message == f'Failed login attempt for {student.email}'


def test_register_rejects_numeric_fields(client):
    response = client.post('/api/auth/register', json={
        'name': 'Nila Raman',
        'email': 'nila@university.edu',
        'bloodGroup': 'B+',
        'rollNo': 2021001,
        'phone': '9123456780',
    })

    assert response.status_code == 400
    assert response.get_json()['errors'] == [
        {'field': 'rollNo', 'message': 'rollNo must be between 1 and 50 characters'},
    ]
    assert User.query.count() == 0


def test_login_validation_errors(client):
    response = client.post('/api/auth/login', json={'email': 'not-an-email'})

    assert response.status_code == 400
    assert response.get_json()['errors'] == [{'field': 'password', 'message': 'password is required'}]


def test_me_requires_token(client):
    response = client.get('/api/auth/me')

    assert response.status_code == 401
    assert response.get_json()['code'] == 'NO_TOKEN'


def test_malformed_token(client):
    response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})

    assert response.status_code == 401
    assert response.get_json()['code'] == 'INVALID_TOKEN'


def test_new_login_invalidates_previous_token(client, student, login):
    first = login(student)
    second = login(student)

    stale = client.get('/api/auth/me', headers={'Authorization': f'Bearer {first}'})
    fresh = client.get('/api/auth/me', headers={'Authorization': f'Bearer {second}'})

    assert stale.status_code == 401
    assert stale.get_json()['code'] == 'SESSION_EXPIRED'
    assert fresh.status_code == 200
    assert fresh.get_json()['data']['email'] == student.email


def test_logout_revokes_token_and_closes_history(client, student, login):
    headers = {'Authorization': f'Bearer {login(student)}'}

    assert client.post('/api/auth/logout', headers=headers).status_code == 200
    after = client.get('/api/auth/me', headers=headers)

    assert after.get_json()['code'] == 'SESSION_EXPIRED'
    history = LoginHistory.query.filter_by(user_id=student.id).all()
    assert len(history) == 1
    assert history[0].is_active is False
    assert history[0].logout_time is not None


def test_login_history_keeps_one_active_row(client, student, login):
    login(student)
    token = login(student)

    response = client.get('/api/auth/login-history', headers={'Authorization': f'Bearer {token}'})

    page = response.get_json()['data']
    assert page['total'] == 2
    assert [row['isActive'] for row in page['data']].count(True) == 1


def test_update_profile_rejects_taken_email(client, student, make_user, auth_headers):
    other = make_user()

    response = client.put('/api/auth/profile', json={'email': other.email}, headers=auth_headers(student))

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Email already in use'


def test_update_profile(client, student, auth_headers):
    response = client.put('/api/auth/profile', json={'name': 'Asha R', 'role': 'admin'},
                          headers=auth_headers(student))

    assert response.status_code == 200
    assert response.get_json()['data']['name'] == 'Asha R'
    assert student.role == 'student'


def test_change_password(client, student, auth_headers):
    headers = auth_headers(student)

    wrong = client.put('/api/auth/change-password', headers=headers,
                       json={'currentPassword': 'nope', 'newPassword': 'brand-new-1'})
    right = client.put('/api/auth/change-password', headers=headers,
                       json={'currentPassword': 'password123', 'newPassword': 'brand-new-1'})

    assert wrong.status_code == 400
    assert right.status_code == 200
    assert student.check_password('brand-new-1')


def test_student_cannot_reach_admin_routes(client, student, auth_headers):
    response = client.get('/api/admin/dashboard/stats', headers=auth_headers(student))

    assert response.status_code == 403
    assert response.get_json()['message'] == 'Access denied. Insufficient permissions.'
