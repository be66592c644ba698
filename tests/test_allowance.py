from datetime import date
from math import isclose

from mortgage_sim.allowance import (
    calculate_allowance,
    calculate_max_monthly_overpayment_for_year,
    calculate_yearly_overpayment_plans,
    format_policy_description,
    get_transaction_period_key,
    is_constant_allowance_policy,
)
from mortgage_sim.models import OverpaymentPolicy, ResolvedRatePeriod


def policy(allowance_type="percentage", basis="balance", value=10, **kwargs):
    return OverpaymentPolicy(
        id="policy",
        allowance_type=allowance_type,
        allowance_basis=basis,
        allowance_value=value,
        **kwargs,
    )


def fixed_period(start_month=1, duration=36, rate=3.5):
    return ResolvedRatePeriod(
        id="p1",
        rate_id="fixed-3yr",
        rate=rate,
        type="fixed",
        fixed_term=3,
        lender_id="aib",
        lender_name="AIB",
        rate_name="3 Year Fixed",
        start_month=start_month,
        duration_months=duration,
        overpayment_policy_id="policy",
        label="AIB 3-Year Fixed @ 3.5%",
    )


class TestCalculateAllowance:
    def test_no_policy_means_no_allowance(self):
        assert calculate_allowance(None, 1_000_000, 5_000, 0) == 0

    def test_percentage_of_balance(self):
        assert isclose(calculate_allowance(policy(), 1_000_000, 5_000, 20_000), 80_000)
        assert calculate_allowance(policy(), 1_000_000, 5_000, 150_000) == 0

    def test_percentage_of_monthly_payment(self):
        monthly = policy(basis="monthly")
        assert isclose(calculate_allowance(monthly, 1_000_000, 150_000, 0), 15_000)
        # Monthly allowances are not cumulative
        assert isclose(calculate_allowance(monthly, 1_000_000, 150_000, 999_999), 15_000)

    def test_monthly_minimum_amount(self):
        monthly = policy(basis="monthly", min_amount=6_500)
        assert calculate_allowance(monthly, 1_000_000, 50_000, 0) == 6_500
        assert isclose(calculate_allowance(monthly, 1_000_000, 150_000, 0), 15_000)

    def test_flat_allowance(self):
        flat = policy(allowance_type="flat", value=500_000)
        assert calculate_allowance(flat, 1_000_000, 5_000, 100_000) == 400_000
        assert calculate_allowance(flat, 1_000_000, 5_000, 600_000) == 0


class TestTransactionPeriodKey:
    def test_fixed_period(self):
        assert get_transaction_period_key("p1", 14, None, "fixed_period") == "p1"
        assert get_transaction_period_key("p1", 14, date(2025, 3, 15), "fixed_period") == "p1"

    def test_relative_periods(self):
        assert get_transaction_period_key("p1", 14, None, "month") == "p1-m14"
        assert get_transaction_period_key("p1", 14, None, "quarter") == "p1-q5"
        assert get_transaction_period_key("p1", 14, None, "year") == "p1-y2"
        assert get_transaction_period_key("p1", 12, None, "year") == "p1-y1"

    def test_calendar_periods(self):
        start = date(2025, 3, 15)
        # Month 11 falls in January 2026
        assert get_transaction_period_key("p1", 11, start, "month") == "p1-2026-1"
        assert get_transaction_period_key("p1", 11, start, "quarter") == "p1-2026-Q1"
        assert get_transaction_period_key("p1", 11, start, "year") == "p1-2026"
        assert get_transaction_period_key("p1", 10, start, "year") == "p1-2025"


class TestOverpaymentPlanner:
    def test_max_monthly_overpayment(self):
        assert calculate_max_monthly_overpayment_for_year(policy(), 30_000_000, 0) == 250_000
        assert calculate_max_monthly_overpayment_for_year(policy(basis="monthly"), 0, 50_000) == 5_000
        assert (
            calculate_max_monthly_overpayment_for_year(policy(basis="monthly", min_amount=6_500), 0, 50_000)
            == 6_500
        )
        flat = policy(allowance_type="flat", value=500_000)
        assert calculate_max_monthly_overpayment_for_year(flat, 0, 0) == 41_666

    def test_constant_policies(self):
        assert is_constant_allowance_policy(policy(allowance_type="flat", value=1))
        assert is_constant_allowance_policy(policy(basis="monthly"))
        assert not is_constant_allowance_policy(policy())

    def test_constant_policy_single_plan(self):
        flat = policy(allowance_type="flat", value=500_000)
        plans = calculate_yearly_overpayment_plans(flat, fixed_period(), 30_000_000, 360)
        assert len(plans) == 1
        assert plans[0].start_month == 1
        assert plans[0].end_month == 36
        assert plans[0].monthly_amount == 41_666

    def test_self_build_delays_start(self):
        flat = policy(allowance_type="flat", value=500_000)
        plans = calculate_yearly_overpayment_plans(
            flat, fixed_period(), 30_000_000, 360, construction_end_month=7
        )
        assert plans[0].start_month == 8

        plans = calculate_yearly_overpayment_plans(
            flat, fixed_period(duration=6), 30_000_000, 360, construction_end_month=7
        )
        assert plans == []

    def test_balance_policy_plans_per_mortgage_year(self):
        plans = calculate_yearly_overpayment_plans(policy(), fixed_period(), 30_000_000, 360)

        assert [(p.start_month, p.end_month) for p in plans] == [(1, 12), (13, 24), (25, 36)]
        assert [p.year for p in plans] == [1, 2, 3]
        assert plans[0].monthly_amount == 250_000
        assert plans[0].estimated_balance == 30_000_000
        # Overpaying shrinks the balance, and with it next year's allowance
        assert plans[1].estimated_balance < plans[0].estimated_balance
        assert plans[1].monthly_amount < plans[0].monthly_amount

    def test_balance_policy_plans_follow_calendar_years(self):
        plans = calculate_yearly_overpayment_plans(
            policy(), fixed_period(), 30_000_000, 360, start_date=date(2025, 3, 15)
        )
        assert [(p.start_month, p.end_month) for p in plans] == [(1, 10), (11, 22), (23, 34), (35, 36)]

    def test_until_end_period_runs_to_term(self):
        flat = policy(allowance_type="flat", value=500_000)
        plans = calculate_yearly_overpayment_plans(flat, fixed_period(start_month=37, duration=0), 30_000_000, 360)
        assert (plans[0].start_month, plans[0].end_month) == (37, 360)


def test_format_policy_description():
    assert format_policy_description(None) == "No allowance"
    assert format_policy_description(policy()) == "10% of balance per year"
    assert format_policy_description(policy(basis="monthly")) == "10% of monthly payment"
    assert format_policy_description(policy(allowance_type="flat", value=500_000)) == "5,000.00 per year"
