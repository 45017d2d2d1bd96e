"""
Repair passes over the payment ledger.

``backfill_payments_from_members`` creates one payment for every member who
was marked as paid before payments were recorded individually.
``backfill_payment_snapshots`` fills snapshot fields that older payments left
empty. Both are safe to run repeatedly.
"""
from dataclasses import asdict, dataclass
from datetime import datetime, time
from decimal import Decimal, InvalidOperation
import logging

from django.db import transaction
from django.utils import timezone

from gymcrm.dates import add_months
from management.models import User
from members.models import Member
from members.snapshots import get_gym_snapshot, get_member_snapshot
from plans.models import PlanType
from .models import Payment, PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)

BACKFILL_NOTE = 'Backfilled from users.paidAmount'
UNKNOWN_MEMBER = 'Unknown'
UNKNOWN_GYM = 'Unknown Gym'


@dataclass
class BackfillResult:
    processed: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self):
        return asdict(self)


def _duration_months(raw):
    try:
        return max(1, int(str(raw).strip()))
    except (TypeError, ValueError):
        return 1


def _legacy_plan_type(member):
    raw = member.plan_type or member.membership_type
    if raw in PlanType.values:
        return raw
    return PlanType.BASIC.value


def _legacy_payment_date(member):
    if member.membership_start_date:
        return timezone.make_aware(datetime.combine(member.membership_start_date, time.min))
    return timezone.now()


def create_payment_from_member(member):
    """Returns the new Payment, or None when the member is skipped."""
    if Payment.objects.filter(member=member).exists():
        return None

    try:
        amount = Decimal(str(member.paid_amount or 0))
    except InvalidOperation:
        logger.warning(f"Member {member.pk} has an unreadable paid amount {member.paid_amount!r}; skipping")
        return None
    if amount <= 0:
        return None

    owner = member.created_by or member.legacy_gym
    if owner is None:
        logger.warning(f"Member {member.pk} has no gym owner; skipping")
        return None

    duration = _duration_months(member.membership_duration)
    start = member.membership_start_date or timezone.localdate()
    end = member.membership_end_date or add_months(start, duration)
    method = PaymentMethod.CASH if 'cash' in (member.payment_mode or '').lower() else PaymentMethod.ONLINE

    return Payment.objects.create(
        member=member,
        gym_owner=owner,
        plan=member.plan,
        member_snapshot=get_member_snapshot(member),
        gym_snapshot=get_gym_snapshot(owner),
        amount=amount,
        # No breakdown exists for legacy payments; the whole amount counts as plan cost
        plan_cost=amount,
        trainer_cost=0,
        adjustment=0,
        plan_type=_legacy_plan_type(member),
        duration=duration,
        payment_method=method,
        payment_status=PaymentStatus.COMPLETED,
        transaction_id=None,
        notes=BACKFILL_NOTE,
        period_start=start,
        period_end=end,
        payment_date=_legacy_payment_date(member),
        # The member already carries this amount
        member_synced_at=timezone.now(),
    )


def backfill_payments_from_members():
    result = BackfillResult()
    members = Member.objects.filter(paid_amount__gt=0).select_related('created_by', 'legacy_gym', 'plan')

    for member in members.iterator(chunk_size=500):
        result.processed += 1
        try:
            with transaction.atomic():
                payment = create_payment_from_member(member)
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to backfill payment for member {member.pk}: {e}", exc_info=True)
            continue

        if payment is None:
            result.skipped += 1
        else:
            result.created += 1
            logger.info(f"Backfilled payment {payment.pk} for member {member.pk}")

    logger.info(f"Payment backfill finished: {result.as_dict()}")
    return result


def _needs_snapshot(payment):
    member_snapshot = payment.member_snapshot or {}
    gym_snapshot = payment.gym_snapshot or {}
    return not member_snapshot.get('name') or not gym_snapshot.get('name')


def _fill_missing(snapshot, current):
    """Copy values from ``current`` into keys of ``snapshot`` that are empty. Never overwrites."""
    changed = False
    for key, value in current.items():
        if snapshot.get(key) in (None, '') and value not in (None, ''):
            snapshot[key] = value
            changed = True
    return changed


def fill_payment_snapshots(payment):
    """Returns True when the payment was updated."""
    member = Member.objects.filter(pk=payment.member_id).first() if payment.member_id else None
    owner = User.objects.filter(pk=payment.gym_owner_id).first()

    member_snapshot = dict(payment.member_snapshot or {})
    gym_snapshot = dict(payment.gym_snapshot or {})

    if member is not None:
        current_member = get_member_snapshot(member)
        current_member['name'] = current_member['name'] or UNKNOWN_MEMBER
    else:
        current_member = {'name': UNKNOWN_MEMBER}

    if owner is not None:
        current_gym = get_gym_snapshot(owner)
        current_gym['name'] = current_gym['name'] or UNKNOWN_GYM
    else:
        current_gym = {'name': UNKNOWN_GYM}

    member_changed = _fill_missing(member_snapshot, current_member)
    gym_changed = _fill_missing(gym_snapshot, current_gym)
    if not (member_changed or gym_changed):
        return False

    Payment.objects.filter(pk=payment.pk).update(member_snapshot=member_snapshot, gym_snapshot=gym_snapshot)
    return True


def backfill_payment_snapshots():
    result = BackfillResult()
    payments = Payment.objects.only('id', 'member', 'gym_owner', 'member_snapshot', 'gym_snapshot')

    for payment in payments.iterator(chunk_size=500):
        if not _needs_snapshot(payment):
            continue
        result.processed += 1
        try:
            with transaction.atomic():
                updated = fill_payment_snapshots(payment)
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to backfill snapshots for payment {payment.pk}: {e}", exc_info=True)
            continue

        if updated:
            result.updated += 1
        else:
            result.skipped += 1

    logger.info(f"Snapshot backfill finished: {result.as_dict()}")
    return result
