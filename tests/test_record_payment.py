from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
from django.core import mail
from django.db import DatabaseError
from rest_framework.exceptions import ValidationError

from gymcrm.exceptions import ConfigurationError, NotFoundError
from members.models import Member
from payments.models import Payment
from payments.services import record_payment
from tests.conftest import make_member, make_trainer


def test_record_payment_syncs_member_and_sends_receipt(
    owner, member, trainer, payment_payload, django_capture_on_commit_callbacks
):
    member.assigned_trainer = trainer
    member.save()

    with django_capture_on_commit_callbacks(execute=True):
        payment = record_payment(owner, member.pk, payment_payload(member, amount='1600.00'))

    payment.refresh_from_db()
    assert payment.amount == Decimal('1600.00')
    assert payment.payment_method == 'Cash'
    # No plan anywhere: default Basic price of 500/month
    assert payment.plan_cost == Decimal('1000')
    assert payment.trainer_cost == Decimal('600')
    assert payment.adjustment == Decimal('0')
    assert payment.period_start == date(2024, 1, 15)
    assert payment.period_end == date(2024, 3, 15)
    assert payment.member_snapshot == {
        'id': member.pk, 'name': 'Alice Menon', 'email': 'alice@example.com', 'phone': '9876543210',
    }
    assert payment.gym_snapshot == {'id': str(owner.pk), 'name': 'Ravi Kumar', 'email': 'owner@example.com'}
    assert payment.member_synced_at is not None

    member.refresh_from_db()
    assert member.membership_start_date == date(2024, 1, 15)
    assert member.membership_end_date == date(2024, 3, 15)
    assert member.membership_duration == '2'
    assert member.plan_type == 'Basic'
    assert member.membership_status == 'Active'
    assert member.payment_mode == 'cash'
    assert member.paid_amount == Decimal('1600.00')

    assert len(mail.outbox) == 1
    receipt = mail.outbox[0]
    assert receipt.to == ['alice@example.com']
    assert 'Iron Temple' in receipt.subject
    assert '₹1,600.00' in receipt.alternatives[0][0]


def test_discount_shows_as_negative_adjustment(owner, member, monthly_plan, payment_payload):
    payment = record_payment(
        owner, member.pk, payment_payload(member, amount='900', plan_id=str(monthly_plan.pk))
    )

    assert payment.plan == monthly_plan
    assert payment.plan_cost == Decimal('1000')
    assert payment.adjustment == Decimal('-100')


def test_member_plan_is_used_when_payment_names_none(owner, monthly_plan, payment_payload):
    member = make_member(owner, plan=monthly_plan)
    monthly_plan.price = Decimal('700')
    monthly_plan.save()

    payment = record_payment(owner, member.pk, payment_payload(member))

    assert payment.plan_cost == Decimal('1400')


def test_payment_method_defaults_to_online(owner, member, payment_payload):
    payload = payment_payload(member)
    del payload['payment_method']

    payment = record_payment(owner, member.pk, payload)

    assert payment.payment_method == 'Online'


def test_payment_survives_member_sync_failure(
    owner, member, payment_payload, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        payment = record_payment(owner, member.pk, payment_payload(member))

    with mock.patch.object(Member.objects, 'filter', side_effect=DatabaseError('member table locked')):
        for callback in callbacks:
            callback()

    payment.refresh_from_db()
    assert Payment.objects.filter(pk=payment.pk).exists()
    assert payment.member_synced_at is None

    member.refresh_from_db()
    assert member.paid_amount == Decimal('0')
    assert member.membership_end_date is None


def test_sync_runs_once_per_payment(owner, member, payment_payload, django_capture_on_commit_callbacks):
    from payments.tasks import sync_member_window

    with django_capture_on_commit_callbacks(execute=True):
        payment = record_payment(owner, member.pk, payment_payload(member, amount='500'))

    result = sync_member_window.delay(str(payment.pk)).get()

    assert result == {'status': 'skipped', 'reason': 'already-synced'}
    member.refresh_from_db()
    assert member.paid_amount == Decimal('500')


def test_sync_names_member_plan_after_explicit_plan(
    owner, member, monthly_plan, payment_payload, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        record_payment(owner, member.pk, payment_payload(member, plan_id=str(monthly_plan.pk)))

    member.refresh_from_db()
    assert member.plan == monthly_plan
    assert member.plan_type == 'Gold Monthly'
    assert member.membership_type == 'Basic'


def test_receipt_without_member_email_is_skipped(owner, payment_payload, django_capture_on_commit_callbacks):
    member = make_member(owner, email=None)

    with django_capture_on_commit_callbacks(execute=True):
        payment = record_payment(owner, member.pk, payment_payload(member))

    assert Payment.objects.filter(pk=payment.pk).exists()
    assert len(mail.outbox) == 0


def test_cannot_pay_for_another_owners_member(owner, other_owner, payment_payload):
    foreign_member = make_member(other_owner, full_name='Bob', email='bob@example.com')

    with pytest.raises(NotFoundError):
        record_payment(owner, foreign_member.pk, payment_payload(foreign_member))

    assert not Payment.objects.exists()


def test_unknown_member_is_not_found(owner, member, payment_payload):
    with pytest.raises(NotFoundError):
        record_payment(owner, 999999, payment_payload(member))


def test_plan_of_another_owner_is_not_found(owner, other_owner, member, payment_payload):
    from plans.models import GymOwnerPlan
    foreign_plan = GymOwnerPlan.objects.create(gym_owner=other_owner, name='Rival Plan', price=Decimal('100'))

    with pytest.raises(NotFoundError):
        record_payment(owner, member.pk, payment_payload(member, plan_id=str(foreign_plan.pk)))


def test_trainer_without_fee_blocks_payment(owner, payment_payload):
    trainer = make_trainer(owner, email='nofee@example.com', monthly_fee=None)
    member = make_member(owner, assigned_trainer=trainer)

    with pytest.raises(ConfigurationError):
        record_payment(owner, member.pk, payment_payload(member))

    assert not Payment.objects.exists()


@pytest.mark.parametrize('overrides', [
    {'amount': '0'},
    {'amount': '-10'},
    {'duration': 0},
    {'plan_type': 'Platinum'},
    {'membership_start_date': 'not-a-date'},
    {'membership_start_date': '2024-05-01', 'membership_end_date': '2024-04-01'},
])
def test_invalid_input_is_rejected(owner, member, payment_payload, overrides):
    with pytest.raises(ValidationError):
        record_payment(owner, member.pk, payment_payload(member, **overrides))

    assert not Payment.objects.exists()


def test_missing_member_id_is_rejected(owner, member, payment_payload):
    with pytest.raises(ValidationError):
        record_payment(owner, None, payment_payload(member))


def test_snapshot_is_not_rewritten_when_member_changes(owner, member, payment_payload):
    payment = record_payment(owner, member.pk, payment_payload(member))

    member.full_name = 'Alicia Menon'
    member.email = 'alicia@example.com'
    member.save()

    payment.refresh_from_db()
    assert payment.member_snapshot['name'] == 'Alice Menon'
    assert payment.member_snapshot['email'] == 'alice@example.com'
