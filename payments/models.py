from django.conf import settings
from django.db import models
from django.utils import timezone
import uuid

from plans.models import PlanType


class PaymentMethod(models.TextChoices):
    CASH = 'Cash', 'Cash'
    ONLINE = 'Online', 'Online'


class PaymentStatus(models.TextChoices):
    COMPLETED = 'Completed', 'Completed'
    PENDING = 'Pending', 'Pending'
    FAILED = 'Failed', 'Failed'


class Payment(models.Model):
    """
    A membership payment received by a gym owner. This table is the ledger:
    amounts and snapshots are written once and never edited, except that
    snapshot fields left empty by older records may be filled in later.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    member = models.ForeignKey('members.Member', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    gym_owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_payments')
    plan = models.ForeignKey('plans.GymOwnerPlan', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')

    # Point-in-time identity copies
    member_snapshot = models.JSONField(default=dict, null=True, blank=True)
    gym_snapshot = models.JSONField(default=dict, null=True, blank=True)

    # Financials. ``amount`` is what was actually charged; the costs are a breakdown for reporting.
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    plan_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    trainer_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    adjustment = models.DecimalField(
        max_digits=12, decimal_places=2, default=0,
        help_text="amount - (plan_cost + trainer_cost); discounts show up here as negatives."
    )

    plan_type = models.CharField(max_length=20, choices=PlanType.choices, default=PlanType.BASIC)
    duration = models.PositiveIntegerField(help_text="Months covered by this payment.")
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, default=PaymentMethod.ONLINE)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.COMPLETED)
    transaction_id = models.CharField(max_length=255, blank=True, null=True)
    notes = models.TextField(blank=True)

    # Window this payment paid for (the member's current window may have moved on since)
    period_start = models.DateField()
    period_end = models.DateField()

    payment_date = models.DateTimeField(default=timezone.now, db_index=True)
    member_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def membership_period(self):
        return {'start_date': self.period_start, 'end_date': self.period_end}

    @property
    def member_display_name(self):
        if self.member is not None and self.member.full_name:
            return self.member.full_name
        return (self.member_snapshot or {}).get('name') or 'Unknown'

    def __str__(self):
        return f"{self.member_display_name} - {self.amount} {self.payment_method} ({self.payment_date:%Y-%m-%d})"

    class Meta:
        ordering = ['-payment_date', '-created_at']
        indexes = [
            models.Index(fields=['gym_owner', '-payment_date']),
            models.Index(fields=['member']),
        ]
