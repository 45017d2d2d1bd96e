from datetime import date
from types import SimpleNamespace

import pytest

from gymcrm.dates import add_months
from members.models import Member
from members.status import derive_status, effective_end_date, reconcile_membership_statuses
from tests.conftest import make_member

TODAY = date(2024, 6, 15)


def member_like(**kwargs):
    fields = {
        'membership_status': '',
        'membership_start_date': None,
        'membership_end_date': None,
        'membership_duration': '',
        'created_at': None,
    }
    fields.update(kwargs)
    return SimpleNamespace(**fields)


@pytest.mark.parametrize('stored', ['Active', 'Pending', 'Inactive', '', 'garbage'])
def test_ended_window_is_expired_whatever_is_stored(stored):
    member = member_like(membership_status=stored, membership_end_date=date(2024, 6, 14))

    assert derive_status(member, today=TODAY) == 'Expired'


def test_window_ending_today_is_expired():
    member = member_like(membership_status='Active', membership_end_date=TODAY)

    assert derive_status(member, today=TODAY) == 'Expired'


def test_window_ending_tomorrow_is_still_active():
    member = member_like(membership_status='Active', membership_end_date=date(2024, 6, 16))

    assert derive_status(member, today=TODAY) == 'Active'


@pytest.mark.parametrize('stored, expected', [
    ('Inactive', 'Inactive'),
    ('pending', 'Pending'),
    ('EXPIRED', 'Expired'),
    ('Active', 'Active'),
    ('', 'Active'),
    ('unknown', 'Active'),
])
def test_stored_status_is_used_while_window_is_open(stored, expected):
    member = member_like(membership_status=stored, membership_end_date=date(2024, 12, 31))

    assert derive_status(member, today=TODAY) == expected


def test_end_date_is_derived_from_start_and_duration():
    member = member_like(membership_start_date=date(2024, 1, 31), membership_duration='1')

    assert effective_end_date(member) == date(2024, 2, 29)
    assert derive_status(member, today=TODAY) == 'Expired'


def test_created_at_is_used_when_start_date_is_missing():
    member = member_like(created_at='2024-05-20T10:00:00', membership_duration='2')

    assert effective_end_date(member) == date(2024, 7, 20)
    assert derive_status(member, today=TODAY) == 'Active'


def test_unparseable_dates_and_durations_are_ignored():
    member = member_like(membership_start_date='not-a-date', membership_duration='many')

    assert effective_end_date(member) is None
    assert derive_status(member, today=TODAY) == 'Active'


@pytest.mark.parametrize('start, months, expected', [
    (date(2024, 1, 31), 1, date(2024, 2, 29)),
    (date(2023, 1, 31), 1, date(2023, 2, 28)),
    (date(2024, 11, 15), 3, date(2025, 2, 15)),
    (date(2024, 3, 31), 12, date(2025, 3, 31)),
])
def test_add_months_clamps_to_month_end(start, months, expected):
    assert add_months(start, months) == expected


def test_reading_status_never_writes(owner):
    member = make_member(owner, membership_status='Active', membership_end_date=date(2020, 1, 1))

    assert derive_status(member) == 'Expired'
    member.refresh_from_db()
    assert member.membership_status == 'Active'


def test_reconcile_stores_expired_for_ended_windows(owner):
    ended = make_member(owner, membership_status='Active', membership_end_date=date(2024, 6, 1))
    running = make_member(
        owner, full_name='Still Going', email='going@example.com',
        membership_status='Active', membership_end_date=date(2024, 7, 1),
    )

    updated = reconcile_membership_statuses(today=TODAY)

    assert updated == 1
    assert Member.objects.get(pk=ended.pk).membership_status == 'Expired'
    assert Member.objects.get(pk=running.pk).membership_status == 'Active'
    assert reconcile_membership_statuses(today=TODAY) == 0
