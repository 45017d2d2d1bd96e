from datetime import date
from decimal import Decimal
import smtplib
from unittest import mock

import pytest
from django.core import mail
from rest_framework.test import APIClient

from members.snapshots import get_member_snapshot
from payments.models import Payment
from tests.conftest import make_member, make_owner

URL = '/api/payments/send-manual-receipt/'


@pytest.fixture
def receipt_payload():
    def _payload(**overrides):
        payload = {
            'member_name': 'Alice Menon',
            'member_email': 'alice@example.com',
            'amount': '750.00',
            'plan_type': 'Premium',
            'duration': 1,
            'period_start': '2024-05-01',
            'period_end': '2024-06-01',
            'notes': 'Paid at the desk',
        }
        payload.update(overrides)
        return payload
    return _payload


def test_manual_receipt_is_sent_and_recorded(owner, member, api_client, receipt_payload):
    response = api_client.post(URL, receipt_payload(member_email='ALICE@example.com'), format='json')

    assert response.status_code == 200, response.data
    assert response.data['message'] == 'Receipt successfully sent to ALICE@example.com.'

    assert len(mail.outbox) == 1
    receipt = mail.outbox[0]
    assert receipt.to == ['ALICE@example.com']
    assert receipt.subject == 'Payment receipt from Iron Temple'
    assert '₹750.00' in receipt.alternatives[0][0]
    assert receipt.attachments[0][2] == 'application/pdf'

    payment = Payment.objects.get()
    assert str(payment.pk) == response.data['payment']['id']
    assert payment.member == member
    assert payment.gym_owner == owner
    assert payment.member_snapshot == get_member_snapshot(member)
    assert payment.gym_snapshot['name'] == 'Ravi Kumar'
    assert payment.amount == Decimal('750.00')
    assert payment.plan_cost == Decimal('750.00')
    assert payment.trainer_cost == Decimal('0')
    assert payment.adjustment == Decimal('0')
    assert payment.payment_method == 'Cash'
    assert payment.payment_status == 'Completed'
    assert payment.transaction_id.startswith('MANUAL_')
    assert payment.notes == 'Manual receipt sent by Ravi Kumar. Paid at the desk'
    assert payment.period_start == date(2024, 5, 1)
    assert payment.period_end == date(2024, 6, 1)


def test_manual_receipt_leaves_member_window_alone(member, api_client, receipt_payload):
    api_client.post(URL, receipt_payload(), format='json')

    payment = Payment.objects.get()
    assert payment.member_synced_at is not None
    member.refresh_from_db()
    assert member.paid_amount == Decimal('0')
    assert member.membership_end_date is None


def test_manual_receipt_keeps_given_transaction_id(member, api_client, receipt_payload):
    response = api_client.post(
        URL, receipt_payload(transaction_id='UPI-889', payment_method='UPI', notes=''), format='json'
    )

    assert response.status_code == 200, response.data
    payment = Payment.objects.get()
    assert payment.transaction_id == 'UPI-889'
    assert payment.payment_method == 'Online'
    assert payment.notes == 'Manual receipt sent by Ravi Kumar.'
    assert 'UPI-889' in mail.outbox[0].alternatives[0][0]


def test_manual_receipt_for_unknown_email_is_sent_but_not_recorded(owner, api_client, receipt_payload):
    response = api_client.post(URL, receipt_payload(member_email='walkin@example.com'), format='json')

    assert response.status_code == 200, response.data
    assert response.data['payment'] is None
    assert mail.outbox[0].to == ['walkin@example.com']
    assert not Payment.objects.exists()


def test_manual_receipt_never_records_against_another_gyms_member(owner, other_owner, api_client, receipt_payload):
    make_member(other_owner, full_name='Bob Das', email='bob@example.com')

    response = api_client.post(
        URL, receipt_payload(member_name='Bob Das', member_email='bob@example.com'), format='json'
    )

    assert response.status_code == 200, response.data
    assert len(mail.outbox) == 1
    assert not Payment.objects.exists()


def test_manual_receipt_for_foreign_member_id_is_404(other_owner, api_client, receipt_payload):
    foreign = make_member(other_owner, full_name='Bob Das', email='bob@example.com')

    response = api_client.post(URL, receipt_payload(member_id=foreign.pk), format='json')

    assert response.status_code == 404
    assert len(mail.outbox) == 0
    assert not Payment.objects.exists()


@pytest.mark.parametrize('overrides, field', [
    ({'member_email': ''}, 'member_email'),
    ({'member_email': 'not-an-email'}, 'member_email'),
    ({'member_name': ''}, 'member_name'),
    ({'amount': '0'}, 'amount'),
    ({'plan_type': 'Platinum'}, 'plan_type'),
    ({'duration': 0}, 'duration'),
    ({'period_end': '2024-04-01'}, 'period_end'),
])
def test_manual_receipt_validation(member, api_client, receipt_payload, overrides, field):
    response = api_client.post(URL, receipt_payload(**overrides), format='json')

    assert response.status_code == 400
    assert field in response.data
    assert len(mail.outbox) == 0
    assert not Payment.objects.exists()


def test_manual_receipt_mail_failure_is_503(member, api_client, receipt_payload):
    with mock.patch(
        'django.core.mail.EmailMultiAlternatives.send',
        side_effect=smtplib.SMTPServerDisconnected('connection closed'),
    ):
        response = api_client.post(URL, receipt_payload(), format='json')

    assert response.status_code == 503
    assert not Payment.objects.exists()


def test_manual_receipt_names_gym_after_owner_without_gym_name(db, receipt_payload):
    owner = make_owner(email='solo@example.com', gym_name='')
    client = APIClient()
    client.force_authenticate(user=owner)

    response = client.post(URL, receipt_payload(member_email='walkin@example.com'), format='json')

    assert response.status_code == 200, response.data
    assert mail.outbox[0].subject == "Payment receipt from Ravi Kumar's Gym"


def test_members_for_receipt_lists_own_members(owner, other_owner, trainer, api_client):
    make_member(owner, full_name='Zara Khan', email='zara@example.com', assigned_trainer=trainer)
    make_member(owner, full_name='Alice Menon')
    make_member(other_owner, full_name='Bob Das', email='bob@example.com')

    response = api_client.get('/api/payments/members-for-receipt/')

    assert response.status_code == 200
    assert [m['full_name'] for m in response.data['members']] == ['Alice Menon', 'Zara Khan']
    zara = response.data['members'][1]
    assert zara['email'] == 'zara@example.com'
    assert zara['assigned_trainer_name'] == 'Coach Arjun'
    assert response.data['members'][0]['assigned_trainer_name'] is None


def test_members_for_receipt_needs_gym_owner(db):
    response = APIClient().get('/api/payments/members-for-receipt/')

    assert response.status_code in (401, 403)
