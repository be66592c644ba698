"""
Overpayment Application

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

from collections.abc import Iterable, Sequence
from typing import NamedTuple

from .allowance import calculate_allowance
from .models import AppliedOverpayment, OverpaymentConfig, OverpaymentPolicy, ResolvedRatePeriod


class OverpaymentResult(NamedTuple):
    amount: float
    applied: list[AppliedOverpayment]
    exceeded_allowance: bool
    excess_amount: float


def overpayment_applies(config: OverpaymentConfig, month: int) -> bool:
    """Whether `config` fires in `month` (ignores the enabled flag)."""
    if config.type == "one_time":
        return config.start_month == month

    if month < config.start_month:
        return False
    if config.end_month is not None and month > config.end_month:
        return False

    months_since_start = month - config.start_month
    if config.frequency == "quarterly":
        return months_since_start % 3 == 0
    if config.frequency == "yearly":
        return months_since_start % 12 == 0
    return True


def get_overpayment_for_month(
    month: int,
    configs: Sequence[OverpaymentConfig],
    max_amount: float,
    rate_period: ResolvedRatePeriod,
    policies: Sequence[OverpaymentPolicy],
    yearly_so_far: float,
    current_balance: float,
    current_payment: float,
    year_start_balance: float,
) -> OverpaymentResult:
    """Collect the overpayments due in `month`.

    Parameters:
    - max_amount: most that can be overpaid this month (balance left after the scheduled principal)
    - yearly_so_far: overpaid so far in the current (rate period, year) bucket
    - year_start_balance: balance when that bucket opened, used for balance-based allowances

    Configs are applied in order and each is clipped to the room left by the
    ones before it. Overpayments above the fee-free allowance of a fixed period
    are still applied in full, flagged with the excess.
    """
    applied: list[AppliedOverpayment] = []
    total = 0.0

    policy = None
    if rate_period.overpayment_policy_id:
        policy = next((p for p in policies if p.id == rate_period.overpayment_policy_id), None)

    for config in configs:
        if not config.enabled or not overpayment_applies(config, month):
            continue

        amount = min(config.amount, max_amount - total)
        if amount <= 0:
            continue

        excess = 0.0
        if rate_period.type == "fixed":
            if policy is not None and policy.allowance_basis == "monthly" and policy.allowance_type == "percentage":
                allowance = calculate_allowance(policy, current_balance, current_payment, 0)
                remaining = max(0.0, allowance - total)
            else:
                # Yearly allowances are fixed by the balance when the year opened
                remaining = calculate_allowance(
                    policy, year_start_balance, current_payment, yearly_so_far + total
                )
            if amount > remaining:
                excess = amount - remaining

        applied.append(
            AppliedOverpayment(
                month=month,
                amount=amount,
                config_id=config.id,
                is_recurring=config.type == "recurring",
                within_allowance=excess == 0,
                excess_amount=excess,
            )
        )
        total += amount

    return OverpaymentResult(
        amount=total,
        applied=applied,
        exceeded_allowance=any(not a.within_allowance for a in applied),
        excess_amount=sum(a.excess_amount for a in applied),
    )


def split_overpayments_by_type(
    applied: Iterable[AppliedOverpayment],
) -> tuple[dict[int, float], dict[int, float]]:
    """Sum applied overpayments per month, as (one_time_by_month, recurring_by_month)."""
    one_time: dict[int, float] = {}
    recurring: dict[int, float] = {}
    for overpayment in applied:
        target = recurring if overpayment.is_recurring else one_time
        target[overpayment.month] = target.get(overpayment.month, 0.0) + overpayment.amount
    return one_time, recurring
