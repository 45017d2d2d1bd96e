from decimal import Decimal
import logging

from django.db import DatabaseError, transaction
from django.utils import timezone
from rest_framework import serializers

from gymcrm.exceptions import NotFoundError, ReceiptDeliveryError
from members.models import Member
from members.snapshots import get_gym_snapshot, get_member_snapshot
from plans.models import GymOwnerPlan
from .costs import compute_cost, default_plan_pricing, plan_pricing
from .models import Payment, PaymentStatus
from .receipts import build_manual_receipt_context, deliver_receipt
from .serializers import ManualReceiptSerializer, RecordPaymentSerializer

logger = logging.getLogger(__name__)


def resolve_plan_pricing(owner, member, plan_id=None, plan_type=None):
    """
    Pick the plan a payment is priced against: the plan named by the caller,
    then the member's own plan, then the default price list for ``plan_type``.
    Returns ``(plan_or_None, pricing)``.
    """
    if plan_id:
        try:
            plan = GymOwnerPlan.objects.get(pk=plan_id, gym_owner=owner)
        except GymOwnerPlan.DoesNotExist:
            raise NotFoundError("Plan not found")
        return plan, plan_pricing(plan)

    if member.plan_id and member.plan.gym_owner_id == owner.pk:
        return member.plan, plan_pricing(member.plan)

    return None, default_plan_pricing(plan_type)


def record_payment(owner, member_id, data):
    """
    Record a payment received by ``owner`` for one of their members.

    The Payment row is the only thing written synchronously. Updating the
    member's window and emailing the receipt are queued once the row is
    committed; neither can undo the payment.
    """
    if member_id in (None, ''):
        raise serializers.ValidationError({'member_id': ["This field is required."]})

    serializer = RecordPaymentSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    validated = serializer.validated_data

    try:
        member = Member.objects.select_related('plan', 'assigned_trainer__user').get(
            pk=member_id, created_by=owner
        )
    except (Member.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Member not found")

    plan, pricing = resolve_plan_pricing(owner, member, validated.get('plan_id'), validated['plan_type'])
    cost = compute_cost(pricing, validated['duration'], member.assigned_trainer)
    amount = validated['amount']

    with transaction.atomic():
        payment = Payment.objects.create(
            member=member,
            gym_owner=owner,
            plan=plan,
            member_snapshot=get_member_snapshot(member),
            gym_snapshot=get_gym_snapshot(owner),
            amount=amount,
            plan_cost=cost.plan_cost,
            trainer_cost=cost.trainer_cost,
            adjustment=amount - cost.total_cost,
            plan_type=validated['plan_type'],
            duration=validated['duration'],
            payment_method=validated['payment_method'],
            payment_status=PaymentStatus.COMPLETED,
            transaction_id=validated.get('transaction_id'),
            notes=validated.get('notes', ''),
            period_start=validated['membership_start_date'],
            period_end=validated['membership_end_date'],
        )
        transaction.on_commit(lambda: queue_payment_side_effects(payment.pk))

    logger.info(
        f"Recorded payment {payment.pk} of {amount} for member {member.pk} "
        f"(plan {pricing.name}, plan_cost={cost.plan_cost}, trainer_cost={cost.trainer_cost})"
    )
    return payment


def queue_payment_side_effects(payment_id):
    from .tasks import send_payment_receipt, sync_member_window

    # Member first so the receipt reflects the new window
    try:
        sync_member_window.delay(str(payment_id))
        logger.info(f"Member sync queued for payment {payment_id}")
    except Exception as task_error:
        logger.error(f"Failed to queue member sync for payment {payment_id}: {task_error}")

    try:
        send_payment_receipt.delay(str(payment_id))
        logger.info(f"Receipt email queued for payment {payment_id}")
    except Exception as task_error:
        logger.error(f"Failed to queue receipt email for payment {payment_id}: {task_error}")


def find_receipt_member(owner, receipt):
    """The owner's member a manual receipt is for: by id when given, else by email."""
    members = Member.objects.filter(created_by=owner)
    if receipt.get('member_id'):
        member = members.filter(pk=receipt['member_id']).first()
        if member is None:
            raise NotFoundError("Member not found")
        return member
    return members.filter(email__iexact=receipt['member_email']).order_by('pk').first()


def send_manual_receipt(owner, data):
    """
    Email a hand-written receipt, then log the money in the ledger when the
    recipient is one of the owner's members.

    Nothing is written unless the email went out. The member's window is left
    alone; the payment is marked synced so it never moves it later.
    Returns the recorded Payment, or None when no member matched.
    """
    serializer = ManualReceiptSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    receipt = serializer.validated_data

    member = find_receipt_member(owner, receipt)
    if member is not None and not receipt['member_phone']:
        receipt['member_phone'] = member.phone_number
    if not receipt['transaction_id']:
        receipt['transaction_id'] = f"MANUAL_{int(timezone.now().timestamp() * 1000)}"

    result = deliver_receipt(
        build_manual_receipt_context(owner, receipt),
        f"manual receipt {receipt['transaction_id']}",
    )
    if not result['sent']:
        raise ReceiptDeliveryError()

    if member is None:
        logger.info(f"Manual receipt sent to {receipt['member_email']}; no member of {owner.email} matches, nothing recorded")
        return None

    amount = receipt['amount']
    note = f"Manual receipt sent by {owner.display_name}."
    if receipt['notes']:
        note = f"{note} {receipt['notes']}"

    try:
        with transaction.atomic():
            payment = Payment.objects.create(
                member=member,
                gym_owner=owner,
                member_snapshot=get_member_snapshot(member),
                gym_snapshot=get_gym_snapshot(owner),
                amount=amount,
                plan_cost=amount,
                trainer_cost=Decimal('0'),
                adjustment=Decimal('0'),
                plan_type=receipt['plan_type'],
                duration=receipt['duration'],
                payment_method=receipt['payment_method'],
                payment_status=PaymentStatus.COMPLETED,
                transaction_id=receipt['transaction_id'],
                notes=note,
                period_start=receipt['period_start'],
                period_end=receipt['period_end'],
                member_synced_at=timezone.now(),
            )
    except DatabaseError as e:
        # The member already has the receipt
        logger.error(f"Manual receipt {receipt['transaction_id']} sent but not recorded: {e}", exc_info=True)
        return None

    logger.info(f"Recorded manual payment {payment.pk} of {amount} for member {member.pk}")
    return payment
