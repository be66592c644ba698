"""
Rate Period Resolution

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.

Rate periods form a stack: each period starts the month after the previous one
ends, and a zero-duration period runs until the end of the mortgage.
"""

import logging
import uuid
from collections.abc import Callable, Sequence

from .constants import BTL_BUYER_TYPES, VARIABLE_BUFFER_MONTHS
from .models import CustomRate, Lender, MortgageRate, RatePeriod, ResolvedRatePeriod
from .payments import calculate_remaining_balance

logger = logging.getLogger(__name__)

LabelFormatter = Callable[[str, MortgageRate], str]


def generate_rate_label(
    lender_name: str, rate: MortgageRate, cycle: int | None = None, is_buffer: bool = False
) -> str:
    """Build a display label such as "AIB 3-Year Fixed @ 3.45%".

    With a cycle number the label is suffixed with "(Cycle n)", or
    "(Variable Buffer, Cycle n)" for buffer periods.
    """
    if rate.type == "fixed" and rate.fixed_term:
        label = f"{lender_name} {rate.fixed_term}-Year Fixed @ {rate.rate:g}%"
    else:
        label = f"{lender_name} Variable @ {rate.rate:g}%"

    if cycle is not None:
        suffix = f"Variable Buffer, Cycle {cycle}" if is_buffer else f"Cycle {cycle}"
        label = f"{label} ({suffix})"
    return label


def generate_variable_buffer_label(lender_name: str, rate: MortgageRate) -> str:
    return f"{generate_rate_label(lender_name, rate)} (Variable Buffer)"


def find_rate_period_for_month(
    periods: Sequence[RatePeriod], month: int
) -> tuple[RatePeriod, int] | None:
    """Return the period covering `month` together with its start month, or None."""
    current_start = 1
    for period in periods:
        if period.is_until_end:
            if month >= current_start:
                return period, current_start
        elif current_start <= month <= current_start + period.duration_months - 1:
            return period, current_start
        current_start += period.duration_months
    return None


def resolve_rate_period(
    period: RatePeriod,
    start_month: int,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate],
    lenders: Sequence[Lender],
    label_formatter: LabelFormatter = generate_rate_label,
) -> ResolvedRatePeriod | None:
    """Join a rate period with its rate and lender.

    Custom rates are looked up by id alone, catalogue rates by id and lender.
    Returns None when the referenced rate does not exist.
    """
    lender = next((item for item in lenders if item.id == period.lender_id), None)

    if period.is_custom:
        rate = next((r for r in custom_rates if r.id == period.rate_id), None)
        lender_name = (rate.custom_lender_name if rate else None) or "Custom"
    else:
        rate = next(
            (r for r in rates if r.id == period.rate_id and r.lender_id == period.lender_id), None
        )
        lender_name = lender.name if lender and lender.name else "Unknown"

    if rate is None:
        return None

    # Overpayment allowances only apply while a rate is fixed
    policy_id = lender.overpayment_policy if rate.type == "fixed" and lender else None

    return ResolvedRatePeriod(
        id=period.id,
        rate_id=period.rate_id,
        rate=rate.rate,
        type=rate.type,
        fixed_term=rate.fixed_term,
        lender_id=period.lender_id,
        lender_name=lender_name,
        rate_name=rate.name,
        start_month=start_month,
        duration_months=period.duration_months,
        overpayment_policy_id=policy_id,
        label=period.label or label_formatter(lender_name, rate),
        is_custom=period.is_custom,
    )


def resolve_rate_periods(
    periods: Sequence[RatePeriod],
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate],
    lenders: Sequence[Lender],
    label_formatter: LabelFormatter = generate_rate_label,
) -> list[ResolvedRatePeriod]:
    """Resolve the whole stack in order, skipping periods whose rate is missing."""
    resolved = []
    current_start = 1
    for period in periods:
        item = resolve_rate_period(
            period, current_start, rates, custom_rates, lenders, label_formatter
        )
        if item is None:
            logger.debug("Rate %s for period %s not found, period skipped", period.rate_id, period.id)
        else:
            resolved.append(item)
        current_start += period.duration_months
    return resolved


def is_btl_rate(rate: MortgageRate) -> bool:
    return any(bt in BTL_BUYER_TYPES for bt in rate.buyer_types)


def is_valid_follow_on_rate(
    fixed_rate: MortgageRate, variable_rate: MortgageRate, exact_ltv: float | None = None
) -> bool:
    """Check whether `variable_rate` can follow `fixed_rate` when its term ends.

    With `exact_ltv` the LTV must fall inside the variable rate's band,
    otherwise the two LTV bands must overlap.
    """
    if variable_rate.type != "variable" or variable_rate.lender_id != fixed_rate.lender_id:
        return False

    # BTL rates only follow BTL rates
    if is_btl_rate(fixed_rate) != is_btl_rate(variable_rate):
        return False

    if exact_ltv is not None:
        return variable_rate.min_ltv <= exact_ltv <= variable_rate.max_ltv

    return not (
        fixed_rate.max_ltv <= variable_rate.min_ltv or fixed_rate.min_ltv >= variable_rate.max_ltv
    )


def find_variable_rate(
    fixed_rate: MortgageRate,
    rates: Sequence[MortgageRate],
    ltv: float | None = None,
    ber: str | None = None,
) -> MortgageRate | None:
    """Find the follow-on variable rate for a fixed rate.

    Existing-customer rates (new_business is False) are preferred over
    new-business rates.
    """
    candidates = [
        r
        for r in rates
        if is_valid_follow_on_rate(fixed_rate, r, ltv)
        and (ber is None or r.ber_eligible is None or ber in r.ber_eligible)
    ]
    if not candidates:
        return None

    for candidate in candidates:
        if candidate.new_business is False:
            return candidate
    return candidates[0]


def can_rate_be_repeated(rate: MortgageRate | None) -> bool:
    """Only fixed rates open to existing customers can be taken again."""
    if rate is None or rate.type != "fixed":
        return False
    return rate.new_business is not True


def is_rate_eligible_for_balance(
    rate: MortgageRate, current_balance: float, property_value: float
) -> bool:
    """Check LTV band and minimum loan (min_loan is in euros, balance in cents)."""
    if property_value <= 0:
        return False
    current_ltv = current_balance / property_value * 100
    if current_ltv < rate.min_ltv or current_ltv > rate.max_ltv:
        return False
    if rate.min_loan is not None and current_balance < rate.min_loan * 100:
        return False
    return True


def _lender_name(lenders: Sequence[Lender], lender_id: str) -> str:
    return next((item.name for item in lenders if item.id == lender_id), lender_id)


def _variable_period(
    rate: MortgageRate, lenders: Sequence[Lender], duration_months: int, cycle: int | None = None
) -> RatePeriod:
    lender_name = _lender_name(lenders, rate.lender_id)
    if duration_months == 0:
        label = generate_variable_buffer_label(lender_name, rate)
    else:
        label = generate_rate_label(lender_name, rate, cycle=cycle or 1, is_buffer=True)
    return RatePeriod(
        id=str(uuid.uuid4()),
        lender_id=rate.lender_id,
        rate_id=rate.id,
        is_custom=False,
        duration_months=duration_months,
        label=label,
    )


def generate_repeating_rate_periods(
    fixed_rate: MortgageRate,
    fixed_lender_id: str,
    fixed_rate_id: str,
    fixed_is_custom: bool,
    rates: Sequence[MortgageRate],
    lenders: Sequence[Lender],
    mortgage_amount: float,
    property_value: float,
    mortgage_term_months: int,
    period_start_month: int = 1,
    ber: str | None = None,
    include_buffers: bool = True,
) -> list[RatePeriod]:
    """Build a Fixed -> Variable buffer -> Fixed ... stack that covers the remaining term.

    The balance is projected forward with scheduled payments only. Generation
    stops when the fixed rate is no longer eligible at the projected balance,
    or when there is no room left for a full fixed term, in which case the
    stack ends with an until-end variable period.
    """
    if not fixed_rate.fixed_term:
        return []

    months_remaining = mortgage_term_months - period_start_month + 1
    if months_remaining <= 0:
        return []

    fixed_lender_name = _lender_name(lenders, fixed_lender_id)
    fixed_duration = fixed_rate.fixed_term * 12
    balance = mortgage_amount
    months_elapsed = period_start_month - 1
    cycle = 1
    periods: list[RatePeriod] = []

    def follow_on() -> MortgageRate | None:
        ltv = balance / property_value * 100 if property_value > 0 else None
        return find_variable_rate(fixed_rate, rates, ltv, ber)

    while months_remaining > 0:
        if not is_rate_eligible_for_balance(fixed_rate, balance, property_value):
            logger.debug("Fixed rate %s no longer eligible after cycle %d", fixed_rate.id, cycle - 1)
            if include_buffers:
                variable = follow_on()
                if variable is not None:
                    periods.append(_variable_period(variable, lenders, 0))
            break

        if months_remaining < fixed_duration:
            variable = follow_on()
            if variable is not None:
                periods.append(_variable_period(variable, lenders, 0))
            break

        periods.append(
            RatePeriod(
                id=str(uuid.uuid4()),
                lender_id=fixed_lender_id,
                rate_id=fixed_rate_id,
                is_custom=fixed_is_custom,
                duration_months=fixed_duration,
                label=generate_rate_label(fixed_lender_name, fixed_rate, cycle=cycle),
            )
        )
        balance = calculate_remaining_balance(
            balance, fixed_rate.rate, mortgage_term_months - months_elapsed, fixed_duration
        )
        months_elapsed += fixed_duration
        months_remaining -= fixed_duration

        if months_remaining <= 0:
            break

        if include_buffers:
            variable = follow_on()
            if variable is None:
                break

            # A buffer with no room for another fixed term after it runs to the end
            if months_remaining - VARIABLE_BUFFER_MONTHS < fixed_duration:
                periods.append(_variable_period(variable, lenders, 0))
                break

            periods.append(_variable_period(variable, lenders, VARIABLE_BUFFER_MONTHS, cycle))
            balance = calculate_remaining_balance(
                balance, variable.rate, mortgage_term_months - months_elapsed, VARIABLE_BUFFER_MONTHS
            )
            months_elapsed += VARIABLE_BUFFER_MONTHS
            months_remaining -= VARIABLE_BUFFER_MONTHS

        cycle += 1

    return periods
