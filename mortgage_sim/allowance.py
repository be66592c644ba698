"""
Overpayment Allowance Calculations

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.

All money values are in cents. Flat allowances and minimum amounts are
expressed in cents as well.
"""

import math
from datetime import date

from .dates import get_calendar_date, get_calendar_quarter
from .models import (
    MaxTransactionsPeriod,
    OverpaymentPolicy,
    ResolvedRatePeriod,
    YearlyOverpaymentPlan,
)
from .payments import calculate_monthly_payment, monthly_rate


def calculate_allowance(
    policy: OverpaymentPolicy | None,
    balance: float,
    monthly_payment: float,
    already_paid_this_year: float,
) -> float:
    """Fee-free overpayment still available.

    - percentage/balance: yearly allowance of `balance * value%`, less what was already paid
    - percentage/monthly: per-month allowance of `monthly_payment * value%`, floored by min_amount
    - flat: yearly allowance of `value`, less what was already paid

    No policy means no free allowance.
    """
    if policy is None:
        return 0.0

    if policy.allowance_type == "flat":
        return max(0.0, policy.allowance_value - already_paid_this_year)

    if policy.allowance_basis == "monthly":
        allowance = monthly_payment * policy.allowance_value / 100
        if policy.min_amount is not None and policy.min_amount > 0:
            allowance = max(allowance, policy.min_amount)
        return allowance

    return max(0.0, balance * policy.allowance_value / 100 - already_paid_this_year)


def get_transaction_period_key(
    rate_period_id: str,
    month: int,
    start_date: date | None,
    period: MaxTransactionsPeriod,
) -> str:
    """Bucket key used to count overpayment transactions against a policy limit.

    Buckets follow the calendar when a start date is known, otherwise
    mortgage-relative months, quarters and years.
    """
    if period == "fixed_period":
        return rate_period_id

    if start_date is None:
        if period == "month":
            return f"{rate_period_id}-m{month}"
        if period == "quarter":
            return f"{rate_period_id}-q{math.ceil(month / 3)}"
        return f"{rate_period_id}-y{math.ceil(month / 12)}"

    current = get_calendar_date(start_date, month)
    if period == "month":
        return f"{rate_period_id}-{current.year}-{current.month}"
    if period == "quarter":
        return f"{rate_period_id}-{current.year}-Q{get_calendar_quarter(current)}"
    return f"{rate_period_id}-{current.year}"


# Fee-free overpayment planning
def calculate_max_monthly_overpayment_for_year(
    policy: OverpaymentPolicy, balance: float, monthly_payment: float
) -> float:
    """Largest whole-cent monthly overpayment that keeps a year within the allowance."""
    amount = 0.0
    if policy.allowance_type == "flat":
        amount = math.floor(policy.allowance_value / 12)
    elif policy.allowance_basis == "balance":
        amount = math.floor(balance * policy.allowance_value / 100 / 12)
    elif policy.allowance_basis == "monthly":
        amount = math.floor(monthly_payment * policy.allowance_value / 100)

    if policy.min_amount is not None and policy.min_amount > 0:
        amount = max(amount, policy.min_amount)
    return amount


def is_constant_allowance_policy(policy: OverpaymentPolicy) -> bool:
    """Flat and monthly-payment policies do not depend on the balance."""
    return policy.allowance_type == "flat" or policy.allowance_basis == "monthly"


def _year_boundaries(
    start_date: date | None, first_month: int, last_month: int
) -> list[tuple[int, int]]:
    """(start, end) mortgage months of each allowance year between two months.

    Years are calendar years when a start date is known, otherwise blocks of
    twelve months counted from `first_month`.
    """
    boundaries = []
    current = first_month
    while current <= last_month:
        if start_date is None:
            year_end = min(current + 11, last_month)
        else:
            months_until_december = 12 - get_calendar_date(start_date, current).month
            year_end = min(current + months_until_december, last_month)
        boundaries.append((current, year_end))
        current = year_end + 1
    return boundaries


def calculate_yearly_overpayment_plans(
    policy: OverpaymentPolicy,
    period: ResolvedRatePeriod,
    mortgage_amount: float,
    total_months: int,
    start_date: date | None = None,
    construction_end_month: int | None = None,
) -> list[YearlyOverpaymentPlan]:
    """Plan monthly overpayments that use up the fee-free allowance of a fixed period.

    Constant-allowance policies get a single plan for the whole period.
    Balance-based policies get one plan per year, each sized from the
    estimated balance at the start of that year. For self-build mortgages
    overpayments start after the final drawdown.
    """
    duration = period.duration_months or total_months - period.start_month + 1
    period_end = period.start_month + duration - 1

    effective_start = period.start_month
    if construction_end_month and period.start_month <= construction_end_month:
        effective_start = construction_end_month + 1

    if effective_start > period_end:
        return []

    # Same payment the amortization computes at the start of the period
    fixed_payment = calculate_monthly_payment(
        mortgage_amount, period.rate, total_months - period.start_month + 1
    )

    if is_constant_allowance_policy(policy):
        monthly_amount = calculate_max_monthly_overpayment_for_year(
            policy, mortgage_amount, fixed_payment
        )
        if monthly_amount <= 0:
            return []
        return [
            YearlyOverpaymentPlan(
                year=1,
                start_month=effective_start,
                end_month=period_end,
                monthly_amount=monthly_amount,
                estimated_balance=mortgage_amount,
            )
        ]

    plans = []
    estimated_balance = mortgage_amount
    rate = monthly_rate(period.rate)

    for index, (first, last) in enumerate(_year_boundaries(start_date, effective_start, period_end)):
        monthly_amount = calculate_max_monthly_overpayment_for_year(
            policy, estimated_balance, fixed_payment
        )
        if monthly_amount > 0:
            plans.append(
                YearlyOverpaymentPlan(
                    year=index + 1,
                    start_month=first,
                    end_month=last,
                    monthly_amount=monthly_amount,
                    estimated_balance=estimated_balance,
                )
            )

        for _ in range(last - first + 1):
            principal = fixed_payment - estimated_balance * rate
            estimated_balance = max(0.0, estimated_balance - principal - monthly_amount)

        if estimated_balance <= 0:
            break

    return plans


def format_policy_description(policy: OverpaymentPolicy | None) -> str:
    if policy is None:
        return "No allowance"
    if policy.allowance_type == "flat":
        return f"{policy.allowance_value / 100:,.2f} per year"
    if policy.allowance_basis == "balance":
        return f"{policy.allowance_value:g}% of balance per year"
    return f"{policy.allowance_value:g}% of monthly payment"
