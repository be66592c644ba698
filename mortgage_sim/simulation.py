"""
Mortgage Amortization Simulation

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

import logging
from collections.abc import Sequence

from .allowance import get_transaction_period_key
from .constants import PAID_OFF_TOLERANCE, TRANSACTION_PERIOD_LABELS
from .dates import get_calendar_year_for_month, month_date_string, mortgage_year
from .models import (
    AmortizationMonth,
    AmortizationResult,
    AppliedOverpayment,
    CustomRate,
    Lender,
    MortgageRate,
    OverpaymentConfig,
    OverpaymentPolicy,
    SimulationState,
    SimulationWarning,
)
from .overpayments import get_overpayment_for_month
from .payments import calculate_interest_only_payment, calculate_monthly_payment, monthly_rate
from .rate_periods import find_rate_period_for_month, resolve_rate_period
from .self_build import (
    determine_phase,
    get_drawdown_for_month,
    is_interest_only_month,
    is_self_build_active,
)

logger = logging.getLogger(__name__)


def overpayment_label(config: OverpaymentConfig | None) -> str:
    if config is not None and config.label:
        return config.label
    if config is not None and config.type == "one_time":
        return "One-time"
    return "Recurring"


def _allowance_warning(
    applied: AppliedOverpayment,
    config: OverpaymentConfig | None,
    policy: OverpaymentPolicy | None,
) -> SimulationWarning:
    policy_label = policy.label if policy is not None and policy.label else "free allowance"
    return SimulationWarning(
        type="allowance_exceeded",
        month=applied.month,
        message=f"Exceeds {policy_label} allowance by {applied.excess_amount / 100:,.2f}",
        severity="warning",
        config_id=applied.config_id,
        overpayment_label=overpayment_label(config),
    )


def calculate_amortization(
    state: SimulationState,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate] = (),
    lenders: Sequence[Lender] = (),
    policies: Sequence[OverpaymentPolicy] = (),
) -> AmortizationResult:
    """Simulate the mortgage month by month.

    Months with no resolvable rate period are skipped without touching the
    balance, so an incomplete rate stack yields a shorter ledger. Degenerate
    input (non-positive amount or term, no rate periods) yields an empty result.
    """
    inputs = state.input
    configs = state.overpayment_configs
    self_build = state.self_build_config

    months: list[AmortizationMonth] = []
    applied_overpayments: list[AppliedOverpayment] = []
    warnings: list[SimulationWarning] = []

    if inputs.mortgage_amount <= 0 or inputs.mortgage_term_months <= 0 or not state.rate_periods:
        logger.debug("Nothing to simulate: amount, term or rate periods missing")
        return AmortizationResult()

    term = inputs.mortgage_term_months
    is_self_build = is_self_build_active(self_build)
    configs_by_id = {c.id: c for c in configs}
    policies_by_id = {p.id: p for p in policies}

    # Resolve every period once; start months accumulate over the whole stack
    resolved_by_id = {}
    start = 1
    for period in state.rate_periods:
        resolved = resolve_rate_period(period, start, rates, custom_rates, lenders)
        if resolved is not None:
            resolved_by_id[period.id] = resolved
        start += period.duration_months

    # Self-build balance starts at the first month's drawdown
    if is_self_build:
        balance = get_drawdown_for_month(1, self_build.drawdown_stages)
        cumulative_drawn = balance
    else:
        balance = inputs.mortgage_amount
        cumulative_drawn = 0.0

    cumulative_interest = 0.0
    cumulative_principal = 0.0
    cumulative_overpayments = 0.0
    cumulative_reduce_term = 0.0

    current_payment: float | None = None
    last_period_id: str | None = None
    previous_phase = None

    # Bookkeeping scoped to this run
    yearly_overpayments: dict[str, float] = {}
    year_start_balances: dict[str, float] = {}
    transaction_counts: dict[str, int] = {}

    month = 1
    while month <= term and (
        balance > PAID_OFF_TOLERANCE or (is_self_build and cumulative_drawn < inputs.mortgage_amount)
    ):
        found = find_rate_period_for_month(state.rate_periods, month)
        resolved = resolved_by_id.get(found[0].id) if found else None
        if resolved is None:
            logger.debug("Month %d has no rate period, skipped", month)
            month += 1
            continue

        period, period_start = found

        drawdown = 0.0
        phase = None
        interest_only = False

        if is_self_build:
            drawdown = get_drawdown_for_month(month, self_build.drawdown_stages)
            # Month 1's drawdown is already in the opening balance
            if month > 1 and drawdown > 0:
                balance += drawdown
                cumulative_drawn += drawdown

            phase = determine_phase(month, self_build)
            interest_only = is_interest_only_month(month, self_build)

            if phase != previous_phase:
                logger.debug("Month %d: self-build phase %s -> %s", month, previous_phase, phase)
            if previous_phase != "repayment" and phase == "repayment":
                current_payment = calculate_monthly_payment(balance, resolved.rate, term - month + 1)
            previous_phase = phase

        # Allowance buckets are per rate period and calendar (or mortgage) year
        calendar_year = get_calendar_year_for_month(inputs.start_date, month)
        year_key = calendar_year if calendar_year is not None else mortgage_year(month)
        bucket = f"{period.id}-{year_key}"
        if bucket not in yearly_overpayments:
            yearly_overpayments[bucket] = 0.0
            year_start_balances[bucket] = balance

        if not interest_only and (
            period.id != last_period_id or current_payment is None or drawdown > 0
        ):
            if period.id != last_period_id:
                logger.debug("Month %d: rate period %s at %.2f%%", month, period.id, resolved.rate)
            # Reduce-term overpayments keep the installment as if they never happened
            current_payment = calculate_monthly_payment(
                balance + cumulative_reduce_term, resolved.rate, term - month + 1
            )
            last_period_id = period.id
            logger.debug("Month %d: payment recalculated to %.2f", month, current_payment)

        if interest_only:
            interest = calculate_interest_only_payment(balance, resolved.rate)
            principal = 0.0
            payment = interest
        else:
            payment = current_payment
            interest = balance * monthly_rate(resolved.rate)
            principal = min(payment - interest, balance)

        result = get_overpayment_for_month(
            month,
            configs,
            balance - principal,
            resolved,
            policies,
            yearly_overpayments[bucket],
            balance,
            payment,
            year_start_balances[bucket],
        )
        overpayment = result.amount
        applied_overpayments.extend(result.applied)
        yearly_overpayments[bucket] += overpayment

        reduce_payment_amount = 0.0
        for applied in result.applied:
            config = configs_by_id.get(applied.config_id)
            if config is not None and config.effect == "reduce_payment":
                reduce_payment_amount += applied.amount
            else:
                cumulative_reduce_term += applied.amount

        policy = policies_by_id.get(resolved.overpayment_policy_id) if resolved.overpayment_policy_id else None
        for applied in result.applied:
            if not applied.within_allowance:
                warnings.append(_allowance_warning(applied, configs_by_id.get(applied.config_id), policy))

        if result.applied and policy is not None and policy.max_transactions and policy.max_transactions_period:
            key = get_transaction_period_key(
                period.id, month, inputs.start_date, policy.max_transactions_period
            )
            period_label = TRANSACTION_PERIOD_LABELS[policy.max_transactions_period]
            for applied in result.applied:
                transaction_counts[key] = transaction_counts.get(key, 0) + 1
                if transaction_counts[key] > policy.max_transactions:
                    warnings.append(
                        SimulationWarning(
                            type="transaction_limit_exceeded",
                            month=month,
                            message=f"Exceeds {policy.max_transactions} overpayments per {period_label} limit",
                            severity="warning",
                            config_id=applied.config_id,
                            overpayment_label=overpayment_label(configs_by_id.get(applied.config_id)),
                        )
                    )

        closing_balance = max(0.0, balance - principal - overpayment)

        # A balance that never had anything drawn has not been paid off
        drawdowns_outstanding = is_self_build and cumulative_drawn < inputs.mortgage_amount
        if (
            closing_balance <= 0
            and balance > PAID_OFF_TOLERANCE
            and not drawdowns_outstanding
            and resolved.type == "fixed"
            and not period.is_until_end
        ):
            period_end = period_start + period.duration_months - 1
            if month < period_end:
                warnings.append(
                    SimulationWarning(
                        type="early_redemption",
                        month=month,
                        message=(
                            f"Mortgage paid off {period_end - month} months before fixed period ends. "
                            "Early redemption fees may apply."
                        ),
                        severity="error",
                    )
                )

        cumulative_interest += interest
        cumulative_principal += principal + overpayment
        cumulative_overpayments += overpayment

        months.append(
            AmortizationMonth(
                month=month,
                year=mortgage_year(month),
                month_of_year=(month - 1) % 12 + 1,
                date=month_date_string(inputs.start_date, month),
                opening_balance=balance,
                closing_balance=closing_balance,
                scheduled_payment=payment,
                interest_portion=interest,
                principal_portion=principal,
                overpayment=overpayment,
                total_payment=payment + overpayment,
                rate=resolved.rate,
                rate_period_id=period.id,
                cumulative_interest=cumulative_interest,
                cumulative_principal=cumulative_principal,
                cumulative_overpayments=cumulative_overpayments,
                cumulative_total=cumulative_interest + cumulative_principal,
                drawdown_this_month=drawdown if is_self_build else None,
                cumulative_drawn=cumulative_drawn if is_self_build else None,
                phase=phase,
                is_interest_only=interest_only if is_self_build else None,
            )
        )

        # Only the reduce_payment share of an overpayment lowers later installments
        if overpayment > 0 and resolved.type == "variable" and reduce_payment_amount > 0:
            if closing_balance + reduce_payment_amount > 0:
                current_payment = payment * closing_balance / (closing_balance + reduce_payment_amount)

        balance = closing_balance
        month += 1

    logger.debug(
        "Simulation finished after %d months, %d overpayments, %d warnings",
        len(months),
        len(applied_overpayments),
        len(warnings),
    )
    return AmortizationResult(
        months=months, applied_overpayments=applied_overpayments, warnings=warnings
    )
