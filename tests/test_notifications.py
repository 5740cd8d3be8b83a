from bloodconnect.models import Notification
from bloodconnect.services import lifecycle, notification_service


def test_approval_notifies_matching_students(student, make_user, make_request, outbox):
    other_group = make_user(blood_group='B+')
    blood_request = make_request()

    lifecycle.approve_request(blood_request.id)

    assert [n.user_id for n in Notification.query.all()] == [student.id]
    assert Notification.query.filter_by(user_id=other_group.id).count() == 0
    assert [message.recipients for message in outbox] == [[student.email]]


def test_inbox_endpoints(db, client, student, auth_headers):
    for title in ('First', 'Second', 'Third'):
        notification_service.create_notification(student.id, 'request_approved', title, f'{title} message')
    db.session.commit()
    headers = auth_headers(student)

    listed = client.get('/api/notifications?limit=2', headers=headers).get_json()['data']
    assert listed['total'] == 3
    assert len(listed['data']) == 2
    assert client.get('/api/notifications/unread-count', headers=headers).get_json()['data'] == {'count': 3}

    marked = client.put(f"/api/notifications/{listed['data'][0]['id']}/read", headers=headers)
    assert marked.get_json()['data']['read'] is True
    unread = client.get('/api/notifications?unreadOnly=true', headers=headers).get_json()['data']
    assert unread['total'] == 2

    all_read = client.put('/api/notifications/read-all', headers=headers)
    assert all_read.get_json()['data'] == {'updated': 2}
    assert client.get('/api/notifications/unread-count', headers=headers).get_json()['data'] == {'count': 0}


def test_cannot_read_someone_elses_notification(db, client, student, make_user, auth_headers):
    other = make_user()
    notification = notification_service.create_notification(other.id, 'request_approved', 'Hi', 'Hello')
    db.session.commit()

    response = client.put(f'/api/notifications/{notification.id}/read', headers=auth_headers(student))

    assert response.status_code == 404
    assert response.get_json()['message'] == 'Notification not found'
