from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import serializers

from gymcrm.dates import add_months
from plans.models import PlanType
from .models import Payment, PaymentMethod

METHOD_GROUPS = ('all', 'cash', 'online')


def _parse_bound(value, name, end_of_day=False):
    """
    Accept a plain date or an ISO datetime. A plain date used as an upper bound
    covers that whole day. Returns ``(bound, exclusive)``.
    """
    try:
        day = parse_date(value)
    except ValueError:
        raise serializers.ValidationError({name: [f"Invalid date: {value}"]})

    if day is not None:
        if end_of_day:
            return datetime.combine(day + timedelta(days=1), time.min, tzinfo=dt_timezone.utc), True
        return datetime.combine(day, time.min, tzinfo=dt_timezone.utc), False

    try:
        parsed = parse_datetime(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise serializers.ValidationError({name: [f"Invalid date: {value}"]})
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed, False


@dataclass
class PaymentFilter:
    """Date bounds are UTC; ``start`` is inclusive. ``end`` is inclusive unless ``end_exclusive``."""
    start: datetime = None
    end: datetime = None
    end_exclusive: bool = False
    plan_type: str = None
    method_group: str = 'all'
    member_name: str = None

    @classmethod
    def from_params(cls, params):
        filters = cls()

        start_date = params.get('start_date')
        end_date = params.get('end_date')
        month = params.get('month')
        year = params.get('year')

        if start_date or end_date:
            if start_date:
                filters.start, _ = _parse_bound(start_date, 'start_date')
            if end_date:
                filters.end, filters.end_exclusive = _parse_bound(end_date, 'end_date', end_of_day=True)
        elif month and year:
            try:
                month, year = int(month), int(year)
                filters.start = datetime(year, month, 1, tzinfo=dt_timezone.utc)
                filters.end = add_months(filters.start, 1)
            except ValueError:
                raise serializers.ValidationError({'month': ["month must be 1-12 and year a valid year."]})
            filters.end_exclusive = True

        plan_type = params.get('plan_type')
        if plan_type and plan_type.lower() != 'all':
            if plan_type not in PlanType.values:
                raise serializers.ValidationError({'plan_type': [f"Unknown plan type: {plan_type}"]})
            filters.plan_type = plan_type

        method_group = (params.get('method_group') or 'all').lower()
        if method_group not in METHOD_GROUPS:
            raise serializers.ValidationError({'method_group': ["Must be one of: all, cash, online."]})
        filters.method_group = method_group

        member_name = (params.get('member_name') or '').strip()
        filters.member_name = member_name or None
        return filters


def filtered_payments(owner, filters, include_member_name=True):
    """Payments received by ``owner`` matching ``filters``; never crosses tenants."""
    queryset = Payment.objects.filter(gym_owner=owner)

    if filters.start is not None:
        queryset = queryset.filter(payment_date__gte=filters.start)
    if filters.end is not None:
        if filters.end_exclusive:
            queryset = queryset.filter(payment_date__lt=filters.end)
        else:
            queryset = queryset.filter(payment_date__lte=filters.end)

    if filters.plan_type:
        queryset = queryset.filter(plan_type=filters.plan_type)

    if filters.method_group == 'cash':
        queryset = queryset.filter(payment_method=PaymentMethod.CASH)
    elif filters.method_group == 'online':
        queryset = queryset.filter(payment_method=PaymentMethod.ONLINE)

    if include_member_name and filters.member_name:
        queryset = queryset.filter(
            Q(member__full_name__icontains=filters.member_name) |
            Q(member_snapshot__name__icontains=filters.member_name)
        )
    return queryset


def list_payments(owner, filters):
    return filtered_payments(owner, filters).select_related('member').order_by('-payment_date', '-created_at')


def get_stats(owner, filters):
    """
    Revenue totals over the same filters as ``list_payments``, except the member name.
    """
    cash = Q(payment_method=PaymentMethod.CASH)
    online = Q(payment_method=PaymentMethod.ONLINE)

    totals = filtered_payments(owner, filters, include_member_name=False).aggregate(
        total_amount=Sum('amount'),
        total_payments=Count('id'),
        unique_members=Count('member', distinct=True),
        cash_total=Sum('amount', filter=cash),
        cash_count=Count('id', filter=cash),
        online_total=Sum('amount', filter=online),
        online_count=Count('id', filter=online),
    )

    for key in ('total_amount', 'cash_total', 'online_total'):
        if totals[key] is None:
            totals[key] = Decimal('0')
    return totals
