"""
Membership status is always derived, never trusted from storage.

``derive_status`` is what every member listing shows. The stored
``membership_status`` column is only a hint, brought back in line by
``reconcile_membership_statuses`` which runs on a schedule, never from a
read request.
"""
import logging

from django.utils import timezone

from gymcrm.dates import add_months, as_date
from .models import Member, MembershipStatus

logger = logging.getLogger(__name__)

_EXPLICIT_STATUSES = {
    s.value.lower(): s.value
    for s in (MembershipStatus.INACTIVE, MembershipStatus.EXPIRED, MembershipStatus.PENDING)
}

STATUS_COLORS = {
    MembershipStatus.ACTIVE.value: 'green',
    MembershipStatus.PENDING.value: 'orange',
    MembershipStatus.EXPIRED.value: 'red',
    MembershipStatus.INACTIVE.value: 'gray',
}


def _safe_date(value):
    try:
        return as_date(value)
    except (TypeError, ValueError):
        return None


def _duration_months(value):
    if value is None or value == '':
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def effective_end_date(member):
    end = _safe_date(getattr(member, 'membership_end_date', None))
    if end is not None:
        return end

    start = _safe_date(getattr(member, 'membership_start_date', None)) or _safe_date(getattr(member, 'created_at', None))
    months = _duration_months(getattr(member, 'membership_duration', None))
    if start is not None and months is not None:
        return add_months(start, months)
    return None


def derive_status(member, today=None):
    """
    Effective status of a member: Expired from the end date onwards (the end
    date is the midnight the window closes), whatever is stored; else a
    recognised stored status, else Active.
    """
    today = today or timezone.localdate()
    explicit = (getattr(member, 'membership_status', None) or '').strip()

    end = effective_end_date(member)
    if end is not None and end <= today:
        return MembershipStatus.EXPIRED.value

    return _EXPLICIT_STATUSES.get(explicit.lower(), MembershipStatus.ACTIVE.value)


def status_color(status):
    return STATUS_COLORS.get(status, 'gray')


def reconcile_membership_statuses(today=None, batch_size=500):
    """Persist ``Expired`` for members whose window has ended. Returns the number updated."""
    today = today or timezone.localdate()
    stale_ids = []

    candidates = Member.objects.exclude(membership_status=MembershipStatus.EXPIRED).only(
        'id', 'membership_status', 'membership_start_date', 'membership_end_date',
        'membership_duration', 'created_at',
    )
    for member in candidates.iterator(chunk_size=batch_size):
        if derive_status(member, today=today) == MembershipStatus.EXPIRED:
            stale_ids.append(member.pk)

    updated = 0
    for i in range(0, len(stale_ids), batch_size):
        updated += Member.objects.filter(pk__in=stale_ids[i:i + batch_size]).update(
            membership_status=MembershipStatus.EXPIRED
        )

    logger.info(f"Membership status reconciliation: {updated} member(s) marked Expired")
    return updated
