from datetime import datetime, timedelta

from bloodconnect.models import BloodRequest


def test_submit_blood_request(client, admin, request_payload, outbox):
    response = client.post('/api/requests', json=request_payload())

    assert response.status_code == 201
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['status'] == 'pending'
    assert body['data']['units'] == 2
    assert BloodRequest.query.count() == 1
    assert len(outbox) == 2


def test_submit_rejects_too_many_units(client, request_payload):
    response = client.post('/api/requests', json=request_payload(units=11))

    body = response.get_json()
    assert response.status_code == 400
    assert body['success'] is False
    assert body['errors'] == [{'field': 'units', 'message': 'Units must be between 1 and 10'}]
    assert BloodRequest.query.count() == 0


def test_submit_rejects_past_date(client, request_payload):
    past = (datetime.utcnow() - timedelta(days=1)).isoformat()

    response = client.post('/api/requests', json=request_payload(dateTime=past))

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Date and time must be in the future'


def test_student_opt_in_flow(client, student, make_request, auth_headers):
    blood_request = make_request(status='approved')
    headers = auth_headers(student)

    matching = client.get('/api/requests/matching', headers=headers)
    assert [r['id'] for r in matching.get_json()['data']] == [blood_request.id]

    first = client.post(f'/api/requests/{blood_request.id}/opt-in', headers=headers)
    again = client.post(f'/api/requests/{blood_request.id}/opt-in', headers=headers)

    assert first.status_code == 201
    assert again.status_code == 400
    assert again.get_json()['message'] == 'You have already opted in to this request'

    opt_ins = client.get('/api/requests/opt-ins', headers=headers).get_json()['data']
    assert [o['requestId'] for o in opt_ins] == [blood_request.id]


def test_opt_in_to_pending_request_is_not_found(client, student, make_request, auth_headers):
    response = client.post(f'/api/requests/{make_request().id}/opt-in', headers=auth_headers(student))

    assert response.status_code == 404
    assert response.get_json()['message'] == 'Blood request not found or not approved'


def test_admin_cannot_opt_in(client, admin, make_request, auth_headers):
    response = client.post(f'/api/requests/{make_request(status="approved").id}/opt-in',
                           headers=auth_headers(admin))

    assert response.status_code == 403


def test_update_availability(client, student, auth_headers):
    response = client.put('/api/students/availability', json={'availability': False},
                          headers=auth_headers(student))

    assert response.status_code == 200
    assert response.get_json()['message'] == 'Availability updated to unavailable'
    assert student.availability_status is False


def test_cannot_mark_available_during_cooldown(client, make_user, auth_headers):
    resting = make_user(last_donation_date=datetime.utcnow() - timedelta(days=7), availability_status=False)

    response = client.put('/api/students/availability', json={'availability': True},
                          headers=auth_headers(resting))

    assert response.status_code == 400
    assert 'not eligible to donate yet' in response.get_json()['message']
