from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
import uuid


class PlanType(models.TextChoices):
    """Plan tiers recorded on payments. The first value is the fallback tier."""
    BASIC = 'Basic', 'Basic'
    STANDARD = 'Standard', 'Standard'
    PREMIUM = 'Premium', 'Premium'


class BillingPeriod(models.TextChoices):
    MONTHLY = 'monthly', 'Monthly'
    QUARTERLY = 'quarterly', 'Quarterly'
    YEARLY = 'yearly', 'Yearly'


class GymOwnerPlan(models.Model):
    """A plan a gym owner sells to their members; ``price`` is charged per billing period."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    gym_owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='plans')
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    billing_period = models.CharField(max_length=10, choices=BillingPeriod.choices, default=BillingPeriod.MONTHLY)
    max_members = models.PositiveIntegerField(default=0, help_text="0 = unlimited")
    max_trainers = models.PositiveIntegerField(default=0, help_text="0 = unlimited")
    description = models.TextField(blank=True)

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.get_billing_period_display()} @ {self.price})"

    class Meta:
        ordering = ['billing_period', 'price']
        constraints = [
            models.UniqueConstraint(fields=['gym_owner', 'name'], name='unique_plan_name_per_owner'),
        ]
