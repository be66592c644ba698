"""
Amortization Schedule Analysis

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.

Post-processing of a simulated ledger: yearly totals, baselines, milestones,
buffer suggestions and the run summary.
"""

import logging
from collections.abc import Sequence
from datetime import date

from .constants import EXTRA_INTEREST_THRESHOLD, MILESTONE_LABELS, PAID_OFF_TOLERANCE
from .models import (
    AmortizationMonth,
    AmortizationYear,
    BufferSuggestion,
    CustomRate,
    Lender,
    Milestone,
    MilestoneType,
    MortgageRate,
    OverpaymentPolicy,
    ResolvedRatePeriod,
    SelfBuildConfig,
    SimulationCompleteness,
    SimulationState,
    SimulationSummary,
    SimulationWarning,
)
from .rate_periods import find_variable_rate
from .self_build import (
    get_construction_end_month,
    get_initial_self_build_balance,
    get_interest_only_end_month,
    is_self_build_active,
    validate_drawdown_total,
)
from .simulation import calculate_amortization

logger = logging.getLogger(__name__)


def aggregate_by_year(
    months: Sequence[AmortizationMonth], warnings: Sequence[SimulationWarning] = ()
) -> list[AmortizationYear]:
    """Group months by calendar year when the ledger has dates, else by mortgage year."""
    if not months:
        return []

    has_dates = bool(months[0].date)
    groups: dict[int, list[AmortizationMonth]] = {}
    for m in months:
        key = int(m.date[:4]) if has_dates else m.year
        groups.setdefault(key, []).append(m)

    warning_months = {w.month for w in warnings}
    years = []
    for year, year_months in sorted(groups.items()):
        first, last = year_months[0], year_months[-1]
        rate_changes: list[str] = []
        for m in year_months:
            if m.rate_period_id not in rate_changes:
                rate_changes.append(m.rate_period_id)

        years.append(
            AmortizationYear(
                year=year,
                opening_balance=first.opening_balance,
                closing_balance=last.closing_balance,
                total_interest=sum(m.interest_portion for m in year_months),
                total_principal=sum(m.principal_portion for m in year_months),
                total_overpayments=sum(m.overpayment for m in year_months),
                total_payments=sum(m.total_payment for m in year_months),
                cumulative_interest=last.cumulative_interest,
                cumulative_principal=last.cumulative_principal,
                cumulative_total=last.cumulative_total,
                months=year_months,
                has_warnings=any(m.month in warning_months for m in year_months),
                rate_changes=rate_changes,
            )
        )
    return years


# Baselines
def calculate_baseline_interest(
    state: SimulationState,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate] = (),
    lenders: Sequence[Lender] = (),
    policies: Sequence[OverpaymentPolicy] = (),
) -> float:
    """Total interest of the same mortgage without any overpayments."""
    baseline = state.model_copy(update={"overpayment_configs": []})
    result = calculate_amortization(baseline, rates, custom_rates, lenders, policies)
    return result.months[-1].cumulative_interest if result.months else 0.0


def calculate_interest_and_capital_baseline(
    state: SimulationState,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate] = (),
    lenders: Sequence[Lender] = (),
    policies: Sequence[OverpaymentPolicy] = (),
) -> float | None:
    """Baseline interest when capital is also repaid during construction.

    Returns None for mortgages that are not self-build.
    """
    if not is_self_build_active(state.self_build_config):
        return None
    config = state.self_build_config.model_copy(
        update={"construction_repayment_type": "interest_and_capital"}
    )
    return calculate_baseline_interest(
        state.model_copy(update={"self_build_config": config}),
        rates,
        custom_rates,
        lenders,
        policies,
    )


# Summary
def calculate_summary(
    months: Sequence[AmortizationMonth],
    baseline_interest: float,
    mortgage_term_months: int,
    interest_and_capital_baseline: float | None = None,
) -> SimulationSummary:
    if not months:
        return SimulationSummary()

    last = months[-1]
    actual_term = len(months)

    extra_interest = None
    if interest_and_capital_baseline is not None:
        diff = baseline_interest - interest_and_capital_baseline
        if abs(diff) > EXTRA_INTEREST_THRESHOLD:
            extra_interest = diff

    # An incomplete run has not saved any months
    paid_off = last.closing_balance <= PAID_OFF_TOLERANCE

    return SimulationSummary(
        total_interest=last.cumulative_interest,
        total_paid=last.cumulative_total,
        actual_term_months=actual_term,
        interest_saved=max(0.0, baseline_interest - last.cumulative_interest),
        months_saved=mortgage_term_months - actual_term if paid_off else 0,
        extra_interest_from_self_build=extra_interest,
    )


def calculate_simulation_completeness(
    months: Sequence[AmortizationMonth], mortgage_amount: float, mortgage_term_months: int
) -> SimulationCompleteness:
    if not months:
        return SimulationCompleteness(
            is_complete=False,
            remaining_balance=mortgage_amount,
            covered_months=0,
            total_months=mortgage_term_months,
            missing_months=max(0, mortgage_term_months),
        )

    remaining = months[-1].closing_balance
    return SimulationCompleteness(
        is_complete=remaining <= PAID_OFF_TOLERANCE,
        remaining_balance=remaining,
        covered_months=len(months),
        total_months=mortgage_term_months,
        missing_months=max(0, mortgage_term_months - len(months)),
    )


# Milestones
def calculate_milestones(
    months: Sequence[AmortizationMonth],
    mortgage_amount: float,
    property_value: float,
    start_date: date | None,
    self_build_config: SelfBuildConfig | None = None,
) -> list[Milestone]:
    """Scan the ledger once and record each milestone the first time it is reached.

    For self-build mortgages the construction and principal milestones only
    appear once the drawdowns add up to the mortgage amount, and principal
    milestones wait until full repayments have started.
    """
    if not months:
        return []

    is_self_build = is_self_build_active(self_build_config)
    construction_end = get_construction_end_month(self_build_config) if is_self_build else 0
    interest_only_end = get_interest_only_end_month(self_build_config) if is_self_build else 0
    drawdown_complete = (
        not is_self_build or validate_drawdown_total(self_build_config, mortgage_amount)["is_valid"]
    )

    reached: set[str] = set()
    milestones: list[Milestone] = []

    def add(kind: MilestoneType, month: AmortizationMonth, value: float) -> None:
        milestones.append(
            Milestone(
                type=kind,
                month=month.month,
                date=month.date,
                label=MILESTONE_LABELS[kind],
                value=value,
            )
        )
        reached.add(kind)

    milestones.append(
        Milestone(
            type="mortgage_start",
            month=1,
            date=start_date.isoformat() if start_date else "",
            label=MILESTONE_LABELS["mortgage_start"],
            value=get_initial_self_build_balance(self_build_config) if is_self_build else mortgage_amount,
        )
    )
    reached.add("mortgage_start")

    # Closing balances at which each share of the principal is repaid
    principal_thresholds = (
        ("principal_25_percent", mortgage_amount * 0.75),
        ("principal_50_percent", mortgage_amount * 0.5),
        ("principal_75_percent", mortgage_amount * 0.25),
    )
    ltv_80_threshold = property_value * 0.8

    for m in months:
        if is_self_build and drawdown_complete:
            if "construction_complete" not in reached and m.month == construction_end:
                add("construction_complete", m, m.closing_balance)
            if (
                "full_payments_start" not in reached
                and interest_only_end > construction_end
                and m.month == interest_only_end + 1
            ):
                add("full_payments_start", m, m.opening_balance)

        can_check_principal = not is_self_build or (drawdown_complete and m.month > interest_only_end)
        if can_check_principal:
            for kind, threshold in principal_thresholds:
                if kind not in reached and m.closing_balance <= threshold:
                    add(kind, m, m.closing_balance)

            # Only meaningful when the mortgage started above 80% LTV
            if (
                "ltv_80_percent" not in reached
                and mortgage_amount > ltv_80_threshold
                and m.closing_balance <= ltv_80_threshold
            ):
                add("ltv_80_percent", m, m.closing_balance)

        # Before the last drawdown a zero balance means nothing is drawn yet
        if drawdown_complete and m.month >= construction_end and m.closing_balance <= PAID_OFF_TOLERANCE:
            add("mortgage_complete", m, 0.0)
            break

    return milestones


# Buffer suggestions
def _find_period_rate(
    period: ResolvedRatePeriod, rates: Sequence[MortgageRate], custom_rates: Sequence[CustomRate]
) -> MortgageRate | None:
    source = custom_rates if period.is_custom else rates
    return next((r for r in source if r.id == period.rate_id), None)


def calculate_buffer_suggestions(
    state: SimulationState,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate],
    resolved_periods: Sequence[ResolvedRatePeriod],
    months: Sequence[AmortizationMonth],
) -> list[BufferSuggestion]:
    """Find fixed periods not followed by their lender's natural follow-on rate.

    Moving to the follow-on variable rate for a month before switching keeps
    the customer an existing customer, so these transitions get a suggestion.
    A bounded fixed period at the end of the stack gets a trailing suggestion.
    """
    property_value = state.input.property_value
    if not resolved_periods or property_value <= 0:
        return []

    closing_by_month = {m.month: m.closing_balance for m in months}

    def follow_on_at_end(period: ResolvedRatePeriod) -> tuple[MortgageRate, MortgageRate, float] | None:
        fixed_rate = _find_period_rate(period, rates, custom_rates)
        if fixed_rate is None:
            return None
        end_month = period.start_month + period.duration_months - 1
        balance_at_end = closing_by_month.get(end_month, state.input.mortgage_amount)
        ltv_at_end = balance_at_end / property_value * 100
        natural = find_variable_rate(fixed_rate, rates, ltv_at_end, state.input.ber)
        if natural is None:
            return None
        return fixed_rate, natural, ltv_at_end

    suggestions = []
    for index, (current, following) in enumerate(zip(resolved_periods, resolved_periods[1:])):
        if current.type != "fixed":
            continue
        match = follow_on_at_end(current)
        if match is None:
            continue
        fixed_rate, natural, ltv_at_end = match
        is_natural = (
            following.rate_id == natural.id
            and following.lender_id == natural.lender_id
            and not following.is_custom
        )
        if not is_natural:
            suggestions.append(
                BufferSuggestion(
                    after_index=index,
                    fixed_rate=fixed_rate,
                    suggested_rate=natural,
                    ltv_at_end=ltv_at_end,
                    lender_name=current.lender_name,
                )
            )

    last = resolved_periods[-1]
    if last.type == "fixed" and not last.is_until_end:
        match = follow_on_at_end(last)
        if match is not None:
            fixed_rate, natural, ltv_at_end = match
            suggestions.append(
                BufferSuggestion(
                    after_index=len(resolved_periods) - 1,
                    fixed_rate=fixed_rate,
                    suggested_rate=natural,
                    ltv_at_end=ltv_at_end,
                    lender_name=last.lender_name,
                    is_trailing=True,
                )
            )

    logger.debug("%d buffer suggestions", len(suggestions))
    return suggestions
