"""
Mortgage Simulation Engine

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

import logging
from collections.abc import Sequence

from .analysis import (
    aggregate_by_year,
    calculate_baseline_interest,
    calculate_buffer_suggestions,
    calculate_interest_and_capital_baseline,
    calculate_milestones,
    calculate_simulation_completeness,
    calculate_summary,
)
from .constants import MAX_COMPARE_SIMULATIONS
from .models import (
    CustomRate,
    Lender,
    MortgageRate,
    OverpaymentPolicy,
    SimulationResult,
    SimulationState,
)
from .rate_periods import resolve_rate_periods
from .simulation import calculate_amortization

logger = logging.getLogger(__name__)


def simulate(
    state: SimulationState,
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate] = (),
    lenders: Sequence[Lender] = (),
    policies: Sequence[OverpaymentPolicy] = (),
) -> SimulationResult:
    """Run a simulation and every analysis derived from its ledger."""
    inputs = state.input
    amortization = calculate_amortization(state, rates, custom_rates, lenders, policies)
    resolved = resolve_rate_periods(state.rate_periods, rates, custom_rates, lenders)

    baseline_interest = calculate_baseline_interest(state, rates, custom_rates, lenders, policies)
    interest_and_capital = calculate_interest_and_capital_baseline(
        state, rates, custom_rates, lenders, policies
    )

    return SimulationResult(
        months=amortization.months,
        applied_overpayments=amortization.applied_overpayments,
        warnings=amortization.warnings,
        resolved_rate_periods=resolved,
        yearly_schedule=aggregate_by_year(amortization.months, amortization.warnings),
        summary=calculate_summary(
            amortization.months,
            baseline_interest,
            inputs.mortgage_term_months,
            interest_and_capital,
        ),
        milestones=calculate_milestones(
            amortization.months,
            inputs.mortgage_amount,
            inputs.property_value,
            inputs.start_date,
            state.self_build_config,
        ),
        completeness=calculate_simulation_completeness(
            amortization.months, inputs.mortgage_amount, inputs.mortgage_term_months
        ),
        buffer_suggestions=calculate_buffer_suggestions(
            state, rates, custom_rates, resolved, amortization.months
        ),
    )


def compare_simulations(
    states: Sequence[SimulationState],
    rates: Sequence[MortgageRate],
    custom_rates: Sequence[CustomRate] = (),
    lenders: Sequence[Lender] = (),
    policies: Sequence[OverpaymentPolicy] = (),
) -> list[SimulationResult]:
    """Simulate several independent scenarios side by side."""
    if len(states) > MAX_COMPARE_SIMULATIONS:
        raise ValueError(
            f"At most {MAX_COMPARE_SIMULATIONS} simulations can be compared, got {len(states)}"
        )
    logger.debug("Comparing %d simulations", len(states))
    return [simulate(state, rates, custom_rates, lenders, policies) for state in states]
