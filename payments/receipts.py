from io import BytesIO
import logging
import smtplib

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags
from xhtml2pdf import pisa

logger = logging.getLogger(__name__)


def format_inr(amount):
    return f"₹{amount:,.2f}"


def format_figure(amount):
    # Helvetica has no rupee glyph; the PDF prints "Rs." before this
    return f"{amount:,.2f}"


def build_receipt_context(payment):
    member_snapshot = payment.member_snapshot or {}
    gym_snapshot = payment.gym_snapshot or {}
    member = payment.member
    owner = payment.gym_owner

    trainer_name = None
    if member is not None and member.assigned_trainer_id:
        trainer_name = member.assigned_trainer.name

    return {
        'receipt_number': str(payment.pk).split('-')[0].upper(),
        'payment': payment,
        'member_name': payment.member_display_name,
        'member_email': (member.email if member is not None else None) or member_snapshot.get('email'),
        'member_phone': (member.phone_number if member is not None else None) or member_snapshot.get('phone'),
        'gym_name': owner.gym_name or gym_snapshot.get('name') or 'Unknown Gym',
        'gym_owner_name': gym_snapshot.get('name') or owner.display_name,
        'gym_owner_email': gym_snapshot.get('email') or owner.email,
        'trainer_name': trainer_name,
        'amount': format_inr(payment.amount),
        'plan_cost': format_inr(payment.plan_cost),
        'trainer_cost': format_inr(payment.trainer_cost),
        'amount_figure': format_figure(payment.amount),
        'plan_cost_figure': format_figure(payment.plan_cost),
        'trainer_cost_figure': format_figure(payment.trainer_cost),
        'plan_type': payment.plan_type,
        'duration': payment.duration,
        'period_start': payment.period_start,
        'period_end': payment.period_end,
        'payment_method': payment.payment_method,
        'transaction_id': payment.transaction_id,
        'notes': payment.notes,
        'payment_date': payment.payment_date,
    }


def build_manual_receipt_context(owner, receipt):
    """
    Receipt context for a payment the owner typed in by hand. ``receipt`` is
    the validated ManualReceiptSerializer data; the whole amount is billed
    as plan charges.
    """
    amount = receipt['amount']
    paid_at = timezone.now()
    return {
        'receipt_number': receipt.get('transaction_id') or f"M{paid_at:%y%m%d%H%M%S}",
        'member_name': receipt['member_name'],
        'member_email': receipt['member_email'],
        'member_phone': receipt.get('member_phone') or None,
        'gym_name': owner.gym_name or f"{owner.display_name}'s Gym",
        'gym_owner_name': owner.display_name,
        'gym_owner_email': owner.email,
        'trainer_name': receipt.get('trainer_name') or None,
        'amount': format_inr(amount),
        'plan_cost': format_inr(amount),
        'trainer_cost': format_inr(0),
        'amount_figure': format_figure(amount),
        'plan_cost_figure': format_figure(amount),
        'trainer_cost_figure': format_figure(0),
        'plan_type': receipt['plan_type'],
        'duration': receipt['duration'],
        'period_start': receipt['period_start'],
        'period_end': receipt['period_end'],
        'payment_method': receipt['payment_method'],
        'transaction_id': receipt.get('transaction_id'),
        'notes': receipt.get('notes', ''),
        'payment_date': paid_at,
    }


def render_receipt_pdf(context):
    """Render the receipt PDF with xhtml2pdf; returns the PDF bytes."""
    html = render_to_string('payments/receipt_pdf.html', context)
    buffer = BytesIO()
    result = pisa.CreatePDF(src=html, dest=buffer, encoding='utf-8')
    if result.err:
        raise ValueError(f"PDF rendering failed with {result.err} error(s)")
    return buffer.getvalue()


def deliver_receipt(context, reference):
    """
    Email a rendered receipt. ``reference`` only labels the log lines.

    Returns ``{'sent': True}`` or ``{'sent': False, 'reason': ...}``. ``transient``
    is set when the mail server failed and a retry could succeed.
    """
    recipient = context['member_email']
    if not recipient:
        logger.warning(f"No email on file for {reference}; receipt not sent")
        return {'sent': False, 'reason': 'no-recipient'}

    subject = f"Payment receipt from {context['gym_name']}"
    html_body = render_to_string('payments/receipt_email.html', context)

    message = EmailMultiAlternatives(
        subject=subject,
        body=strip_tags(html_body),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
        reply_to=[context['gym_owner_email']] if context['gym_owner_email'] else None,
    )
    message.attach_alternative(html_body, 'text/html')

    try:
        pdf = render_receipt_pdf(context)
        message.attach(f"receipt-{context['receipt_number']}.pdf", pdf, 'application/pdf')
    except ValueError as e:
        # Receipt still goes out as HTML
        logger.error(f"Could not attach receipt PDF for {reference}: {e}")

    try:
        message.send(fail_silently=False)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send receipt for {reference} to {recipient}: {e}")
        return {'sent': False, 'reason': str(e), 'transient': True}

    logger.info(f"Receipt for {reference} sent to {recipient}")
    return {'sent': True}


def send_receipt_email(payment):
    """Email the receipt of a recorded payment to its member."""
    return deliver_receipt(build_receipt_context(payment), f"payment {payment.pk}")
