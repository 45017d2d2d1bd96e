from decimal import Decimal

import pytest

from gymcrm.exceptions import ConfigurationError
from payments.costs import billing_periods, compute_cost, default_plan_pricing


def test_monthly_plan_with_trainer():
    cost = compute_cost({'price': 500, 'duration': 'monthly'}, 3, {'monthly_fee': 300})

    assert cost.plan_cost == Decimal('1500')
    assert cost.trainer_cost == Decimal('900')
    assert cost.total_cost == Decimal('2400')


def test_quarterly_plan_rounds_up_partial_quarters():
    cost = compute_cost({'price': 1200, 'billing_period': 'quarterly'}, 4)

    assert cost.plan_cost == Decimal('2400')
    assert cost.trainer_cost == Decimal('0')
    assert cost.total_cost == Decimal('2400')


def test_yearly_plan_charges_one_year_for_any_part_of_it():
    cost = compute_cost({'price': 6000, 'billing_period': 'yearly'}, 5)
    assert cost.plan_cost == Decimal('6000')

    cost = compute_cost({'price': 6000, 'billing_period': 'yearly'}, 13)
    assert cost.plan_cost == Decimal('12000')


@pytest.mark.parametrize('period, months, expected', [
    ('monthly', 1, 1),
    ('monthly', 7, 7),
    ('quarterly', 3, 1),
    ('quarterly', 7, 3),
    ('yearly', 12, 1),
    ('yearly', 24, 2),
])
def test_billing_periods(period, months, expected):
    assert billing_periods(period, months) == expected


def test_trainer_fee_is_monthly_even_for_quarterly_plans():
    cost = compute_cost({'price': 1200, 'billing_period': 'quarterly'}, 4, {'monthly_fee': 100})

    assert cost.trainer_cost == Decimal('400')
    assert cost.total_cost == Decimal('2800')


@pytest.mark.parametrize('fee', [0, None, '0.00'])
def test_trainer_without_fee_is_a_configuration_error(fee):
    with pytest.raises(ConfigurationError) as excinfo:
        compute_cost({'price': 500, 'billing_period': 'monthly'}, 1, {'name': 'Coach Arjun', 'monthly_fee': fee})

    assert 'Coach Arjun' in str(excinfo.value.detail)


def test_accepts_model_instances(db, monthly_plan, trainer):
    cost = compute_cost(monthly_plan, 2, trainer)

    assert cost.plan_cost == Decimal('1000')
    assert cost.trainer_cost == Decimal('600')


def test_default_pricing_uses_configured_price_list(settings):
    settings.DEFAULT_PLAN_MONTHLY_PRICES = {
        'Basic': Decimal('400'), 'Standard': Decimal('900'), 'Premium': Decimal('1400'),
    }

    premium = default_plan_pricing('Premium')
    assert premium.price == Decimal('1400')
    assert premium.billing_period == 'monthly'
    assert premium.is_default is True

    assert default_plan_pricing('Mystery').price == Decimal('400')
    assert compute_cost(default_plan_pricing('Standard'), 3).plan_cost == Decimal('2700')
