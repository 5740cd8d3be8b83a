from datetime import datetime, timedelta

import pytest
from werkzeug.exceptions import BadRequest, NotFound

from bloodconnect.models import BloodRequest, StudentOptIn
from bloodconnect.services import lifecycle


def test_create_request_persists_pending_and_notifies_admins(db, admin, request_payload, outbox):
    blood_request = lifecycle.create_request(request_payload())

    assert db.session.get(BloodRequest, blood_request.id).status == 'pending'
    assert len(admin.notifications) == 1
    assert admin.notifications[0].type == 'request_created'
    subjects = sorted(message.subject for message in outbox)
    assert subjects == ['Blood Request Submitted Successfully', 'New Blood Request - O+ (HIGH)']


def test_approve_notifies_only_eligible_matching_students(make_user, make_request, outbox):
    eligible = make_user(blood_group='O+')
    make_user(blood_group='O+', last_donation_date=datetime.utcnow() - timedelta(days=30))
    make_user(blood_group='O+', availability_status=False)
    make_user(blood_group='A+')
    blood_request = make_request()

    approved, donors = lifecycle.approve_request(blood_request.id)

    assert approved.status == 'approved'
    assert donors == [eligible]
    assert [n.type for n in eligible.notifications] == ['request_approved']
    assert len(outbox) == 1
    assert outbox[0].recipients == [eligible.email]


@pytest.mark.parametrize('status', ['approved', 'rejected', 'fulfilled'])
def test_only_pending_requests_can_be_approved_or_rejected(make_request, status):
    blood_request = make_request(status=status)

    with pytest.raises(BadRequest, match='Request is not in pending status'):
        lifecycle.approve_request(blood_request.id)
    with pytest.raises(BadRequest, match='Request is not in pending status'):
        lifecycle.reject_request(blood_request.id)
    assert blood_request.status == status


def test_reject_uses_default_reason(make_request, outbox):
    blood_request = lifecycle.reject_request(make_request().id)

    assert blood_request.status == 'rejected'
    assert blood_request.rejection_reason == 'Request did not meet our criteria'
    assert outbox[0].recipients == ['ravi@example.com']


def test_missing_request_is_not_found(db):
    with pytest.raises(NotFound):
        lifecycle.approve_request('does-not-exist')


def test_opt_in_requires_approved_request(student, make_request):
    with pytest.raises(NotFound, match='not found or not approved'):
        lifecycle.opt_in(student, make_request(status='pending').id)


def test_opt_in_requires_matching_blood_group(student, make_request):
    with pytest.raises(BadRequest, match='blood group does not match'):
        lifecycle.opt_in(student, make_request(status='approved', blood_group='AB-').id)


def test_opt_in_requires_donation_eligibility(make_user, make_request):
    recent = make_user(last_donation_date=datetime(2026, 1, 10, 12, 0))

    with pytest.raises(BadRequest) as excinfo:
        lifecycle.opt_in(recent, make_request(status='approved').id, now=datetime(2026, 3, 1))

    assert excinfo.value.description == (
        'You are not eligible to donate yet. You can donate again after 2026-04-10'
    )


def test_duplicate_opt_in_is_rejected(db, student, admin, make_request):
    blood_request = make_request(status='approved')
    lifecycle.opt_in(student, blood_request.id)

    with pytest.raises(BadRequest, match='already opted in'):
        lifecycle.opt_in(student, blood_request.id)

    assert StudentOptIn.query.filter_by(request_id=blood_request.id).count() == 1
    assert [n.type for n in admin.notifications] == ['student_opted_in']


def test_fulfill_requires_an_opted_in_donor(student, make_request):
    blood_request = make_request(status='approved')

    with pytest.raises(BadRequest, match='Donor ID is required'):
        lifecycle.fulfill_request(blood_request.id, None)
    with pytest.raises(NotFound, match='Donor not found'):
        lifecycle.fulfill_request(blood_request.id, 'missing')
    with pytest.raises(BadRequest, match='has not opted in'):
        lifecycle.fulfill_request(blood_request.id, student.id)
    assert blood_request.status == 'approved'


def test_fulfill_records_the_donation(db, student, make_request, outbox):
    blood_request = make_request(status='approved')
    lifecycle.opt_in(student, blood_request.id)
    now = datetime(2026, 5, 31, 8, 30)

    lifecycle.fulfill_request(blood_request.id, student.id, now=now)

    db.session.refresh(student)
    assert blood_request.status == 'fulfilled'
    assert blood_request.assigned_donor_id == student.id
    assert student.availability_status is False
    assert student.last_donation_date == now
    assert [n.type for n in student.notifications] == ['donor_assigned']
    assert {message.subject for message in outbox} == {
        'Donor Assigned to Your Blood Request',
        'You Have Been Selected as a Blood Donor',
    }


def test_fulfilled_request_never_moves_back(student, make_request):
    blood_request = make_request(status='approved')
    lifecycle.opt_in(student, blood_request.id)
    lifecycle.fulfill_request(blood_request.id, student.id)

    for transition in (lifecycle.approve_request, lifecycle.reject_request):
        with pytest.raises(BadRequest):
            transition(blood_request.id)
    with pytest.raises(BadRequest, match='Request is not in approved status'):
        lifecycle.fulfill_request(blood_request.id, student.id)
    assert blood_request.status == 'fulfilled'


def test_availability_returns_after_three_calendar_months(db, student, make_request):
    blood_request = make_request(status='approved')
    lifecycle.opt_in(student, blood_request.id)
    donated = datetime(2025, 11, 30, 10, 0)
    lifecycle.fulfill_request(blood_request.id, student.id, now=donated)

    assert student.refresh_availability(datetime(2026, 2, 28, 9, 59)) is False
    assert student.availability_status is False
    assert student.refresh_availability(datetime(2026, 2, 28, 10, 0)) is True
    assert student.availability_status is True


def test_assign_donor_keeps_request_open(student, make_request):
    blood_request = make_request(status='approved')
    lifecycle.opt_in(student, blood_request.id)

    lifecycle.assign_donor(blood_request.id, student.id)

    assert blood_request.status == 'approved'
    assert blood_request.assigned_donor_id == student.id
    assert student.availability_status is True


def test_matching_requests_orders_by_urgency(student, make_request, make_user):
    low = make_request(status='approved', urgency='low')
    critical = make_request(status='approved', urgency='critical')
    make_request(status='approved', blood_group='B+')
    make_request(status='pending')
    make_request(status='approved', date_time=datetime.utcnow() - timedelta(hours=1))

    assert lifecycle.matching_requests(student) == [critical, low]

    resting = make_user(last_donation_date=datetime.utcnow() - timedelta(days=10))
    assert lifecycle.matching_requests(resting) == []


def test_search_requests_filters(make_request):
    make_request(requestor_name='Meera', hospital_name='Apollo')
    make_request(requestor_name='Arjun', status='approved')

    assert [r.requestor_name for r in lifecycle.search_requests(search='apol')] == ['Meera']
    assert [r.requestor_name for r in lifecycle.search_requests(status='approved')] == ['Arjun']
