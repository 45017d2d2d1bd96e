"""
Cost breakdown for a membership payment.

A plan is priced per billing period, so a duration in months is first turned
into a number of billing periods. Trainer fees are always monthly.
"""
from collections import namedtuple
from decimal import Decimal
from math import ceil

from django.conf import settings

from gymcrm.exceptions import ConfigurationError
from plans.models import BillingPeriod, PlanType

CostBreakdown = namedtuple('CostBreakdown', ['plan_cost', 'trainer_cost', 'total_cost'])

PlanPricing = namedtuple('PlanPricing', ['name', 'price', 'billing_period', 'is_default'])


def _field(obj, *names):
    """Read the first present attribute (or mapping key) from ``names``."""
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return None


def _money(value):
    if value is None or value == '':
        return Decimal('0')
    return Decimal(str(value))


def billing_periods(billing_period, duration_months):
    duration_months = int(duration_months)
    if billing_period == BillingPeriod.QUARTERLY:
        return ceil(duration_months / 3)
    if billing_period == BillingPeriod.YEARLY:
        return ceil(duration_months / 12)
    return duration_months


def default_plan_pricing(plan_type):
    """Fallback pricing when a payment names no plan and the member has none."""
    prices = settings.DEFAULT_PLAN_MONTHLY_PRICES
    plan_type = str(plan_type) if plan_type else PlanType.BASIC.value
    price = prices.get(plan_type, prices[PlanType.BASIC.value])
    return PlanPricing(
        name=plan_type,
        price=price,
        billing_period=BillingPeriod.MONTHLY.value,
        is_default=True,
    )


def plan_pricing(plan):
    return PlanPricing(
        name=plan.name,
        price=plan.price,
        billing_period=plan.billing_period,
        is_default=False,
    )


def compute_cost(plan, duration_months, trainer=None):
    """
    Return the CostBreakdown for ``duration_months`` months of ``plan``,
    plus the trainer's monthly fee when a trainer is assigned.

    ``plan`` may be a GymOwnerPlan, a PlanPricing or a mapping with ``price``
    and ``billing_period`` (``duration`` is accepted as an alias).
    ``trainer`` may be a Trainer or a mapping with ``monthly_fee``.

    Raises ConfigurationError when the trainer has no usable monthly fee.
    """
    duration_months = int(duration_months)
    price = _money(_field(plan, 'price'))
    period = _field(plan, 'billing_period', 'duration') or BillingPeriod.MONTHLY

    plan_cost = price * billing_periods(period, duration_months)

    trainer_cost = Decimal('0')
    if trainer is not None:
        monthly_fee = _money(_field(trainer, 'monthly_fee', 'monthlyFee'))
        if monthly_fee <= 0:
            trainer_name = _field(trainer, 'name') or 'The assigned trainer'
            raise ConfigurationError(
                f"{trainer_name} has no monthly fee configured. "
                f"Set the trainer's monthly fee before recording payments for their members."
            )
        trainer_cost = monthly_fee * duration_months

    return CostBreakdown(plan_cost, trainer_cost, plan_cost + trainer_cost)
