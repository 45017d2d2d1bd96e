from celery import shared_task
from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
import logging

from members.models import Member, MembershipStatus
from members.whatsapp import send_whatsapp_message
from .backfill import backfill_payment_snapshots, backfill_payments_from_members
from .models import Payment, PaymentMethod
from .receipts import format_inr, send_receipt_email

logger = logging.getLogger(__name__)


@shared_task(bind=True)
def sync_member_window(self, payment_id):
    """
    Project a recorded payment onto its member: plan, window, status and the
    running paid total. Runs once per payment; not retried so the paid total
    is never added twice.
    """
    task_id = self.request.id
    logger.info(f"[Task {task_id}] Syncing member window for payment {payment_id}")

    try:
        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment_id)

            if payment.member_synced_at is not None:
                logger.info(f"[Task {task_id}] Payment {payment_id} already synced")
                return {'status': 'skipped', 'reason': 'already-synced'}
            if payment.member_id is None:
                logger.warning(f"[Task {task_id}] Member for payment {payment_id} no longer exists")
                return {'status': 'skipped', 'reason': 'member-deleted'}

            changes = {
                'plan_type': payment.plan_type,
                'membership_type': payment.plan_type,
                'membership_start_date': payment.period_start,
                'membership_end_date': payment.period_end,
                'membership_duration': str(payment.duration),
                'membership_status': MembershipStatus.ACTIVE,
                'payment_mode': 'cash' if payment.payment_method == PaymentMethod.CASH else 'online',
                'paid_amount': F('paid_amount') + payment.amount,
                'updated_at': timezone.now(),
            }
            if payment.plan_id:
                # plan_type on a member is the display name of its plan
                changes['plan_id'] = payment.plan_id
                changes['plan_type'] = payment.plan.name

            Member.objects.filter(pk=payment.member_id).update(**changes)
            Payment.objects.filter(pk=payment.pk).update(member_synced_at=timezone.now())

    except Payment.DoesNotExist:
        logger.error(f"[Task {task_id}] Payment {payment_id} not found")
        return {'status': 'error', 'message': 'Payment not found'}
    except DatabaseError as e:
        # The payment itself is already committed; the member stays as it was
        logger.error(f"[Task {task_id}] Member sync failed for payment {payment_id}: {e}")
        return {'status': 'failed', 'message': str(e)}

    logger.info(f"[Task {task_id}] Member {payment.member_id} now runs {payment.period_start} to {payment.period_end}")
    return {'status': 'success', 'member_id': payment.member_id}


def build_whatsapp_receipt_message(payment, gym_name):
    return f"""Hi {payment.member_display_name},

We have received your payment of {format_inr(payment.amount)} at {gym_name}.

Plan: {payment.plan_type} ({payment.duration} month{'s' if payment.duration != 1 else ''})
Valid: {payment.period_start:%d %b %Y} to {payment.period_end:%d %b %Y}
Method: {payment.payment_method}

A receipt has been emailed to you. Thank you!"""


@shared_task(bind=True, max_retries=3)
def send_payment_receipt(self, payment_id):
    """
    Email the receipt for a payment, and send a WhatsApp confirmation when enabled
    """
    task_id = self.request.id
    logger.info(f"[Task {task_id}] Sending receipt for payment {payment_id}")

    try:
        payment = Payment.objects.select_related(
            'member__assigned_trainer__user', 'gym_owner'
        ).get(pk=payment_id)
    except Payment.DoesNotExist:
        logger.error(f"[Task {task_id}] Payment {payment_id} not found")
        return {'status': 'error', 'message': 'Payment not found'}

    result = send_receipt_email(payment)

    # WhatsApp goes out on the first attempt only, whatever happens to the email
    whatsapp_sid = None
    phone = (payment.member_snapshot or {}).get('phone')
    if settings.WHATSAPP_ENABLED and phone and self.request.retries == 0:
        gym_name = payment.gym_owner.gym_name or (payment.gym_snapshot or {}).get('name') or 'our gym'
        try:
            whatsapp_sid = send_whatsapp_message(phone, build_whatsapp_receipt_message(payment, gym_name))
        except Exception as whatsapp_error:
            logger.error(f"[Task {task_id}] WhatsApp confirmation failed for payment {payment_id}: {whatsapp_error}")

    if not result['sent']:
        if result.get('transient') and self.request.retries < self.max_retries:
            logger.info(f"[Task {task_id}] Retrying receipt for payment {payment_id} in 60 seconds")
            raise self.retry(countdown=60)
        logger.warning(f"[Task {task_id}] Receipt for payment {payment_id} not sent: {result['reason']}")

    return {
        'status': 'success' if result['sent'] else 'failed',
        'email': result,
        'whatsapp_sid': whatsapp_sid,
    }


@shared_task(bind=True)
def backfill_payments_task(self, members=True, snapshots=True):
    """
    Repair pass: create payments for members paid before the ledger existed, then fill empty snapshots
    """
    task_id = self.request.id
    summary = {}
    if members:
        logger.info(f"[Task {task_id}] Backfilling payments from member records")
        summary['members'] = backfill_payments_from_members().as_dict()
    if snapshots:
        logger.info(f"[Task {task_id}] Backfilling payment snapshots")
        summary['snapshots'] = backfill_payment_snapshots().as_dict()
    return {'status': 'success', **summary}
