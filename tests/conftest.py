from datetime import date
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from gymcrm import celery_app
from management.models import Trainer, User
from members.models import Member
from payments.models import Payment
from plans.models import BillingPeriod, GymOwnerPlan


@pytest.fixture(autouse=True)
def eager_celery():
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = True
    yield
    celery_app.conf.CELERY_TASK_ALWAYS_EAGER = False


@pytest.fixture(autouse=True)
def test_settings(settings):
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.DEFAULT_FROM_EMAIL = 'receipts@gymcrm.test'
    settings.WHATSAPP_ENABLED = False
    return settings


def make_owner(email='owner@example.com', gym_name='Iron Temple', **kwargs):
    return User.objects.create_user(
        username=email.split('@')[0],
        email=email,
        password='secret-pass-123',
        role=User.GYM_OWNER,
        gym_name=gym_name,
        first_name=kwargs.pop('first_name', 'Ravi'),
        last_name=kwargs.pop('last_name', 'Kumar'),
        **kwargs
    )


def make_trainer(owner, email='coach@example.com', monthly_fee=Decimal('300')):
    user = User.objects.create_user(
        username=email.split('@')[0],
        email=email,
        password='secret-pass-123',
        role=User.TRAINER,
        first_name='Coach',
        last_name='Arjun',
    )
    return Trainer.objects.create(user=user, gym_owner=owner, monthly_fee=monthly_fee)


def make_member(owner, **kwargs):
    fields = {
        'full_name': 'Alice Menon',
        'email': 'alice@example.com',
        'phone_number': '9876543210',
        'created_by': owner,
    }
    fields.update(kwargs)
    return Member.objects.create(**fields)


@pytest.fixture
def owner(db):
    return make_owner()


@pytest.fixture
def other_owner(db):
    return make_owner(email='rival@example.com', gym_name='Muscle Factory', first_name='Sara', last_name='Iyer')


def make_payment(owner, member=None, **kwargs):
    fields = {
        'member': member,
        'gym_owner': owner,
        'amount': Decimal('500'),
        'plan_type': 'Basic',
        'duration': 1,
        'payment_method': 'Online',
        'period_start': date(2024, 1, 1),
        'period_end': date(2024, 2, 1),
    }
    fields.update(kwargs)
    return Payment.objects.create(**fields)


@pytest.fixture
def super_admin(db):
    return User.objects.create_user(
        username='admin', email='admin@example.com', password='secret-pass-123', role=User.SUPER_ADMIN
    )


@pytest.fixture
def trainer(owner):
    return make_trainer(owner)


@pytest.fixture
def member(owner):
    return make_member(owner)


@pytest.fixture
def monthly_plan(owner):
    return GymOwnerPlan.objects.create(
        gym_owner=owner, name='Gold Monthly', price=Decimal('500'), billing_period=BillingPeriod.MONTHLY
    )


@pytest.fixture
def api_client(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    return client


@pytest.fixture
def payment_payload():
    def _payload(member, **overrides):
        payload = {
            'member_id': member.pk,
            'amount': '1000.00',
            'plan_type': 'Basic',
            'duration': 2,
            'payment_method': 'Cash',
            'membership_start_date': date(2024, 1, 15).isoformat(),
            'membership_end_date': date(2024, 3, 15).isoformat(),
        }
        payload.update(overrides)
        return payload
    return _payload
