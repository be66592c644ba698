"""
Mortgage Amortization Simulation

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

from .analysis import (
    aggregate_by_year,
    calculate_baseline_interest,
    calculate_buffer_suggestions,
    calculate_interest_and_capital_baseline,
    calculate_milestones,
    calculate_simulation_completeness,
    calculate_summary,
)
from .engine import compare_simulations, simulate
from .models import (
    AmortizationMonth,
    AmortizationResult,
    AmortizationYear,
    AppliedOverpayment,
    BufferSuggestion,
    CustomRate,
    DrawdownStage,
    Lender,
    Milestone,
    MortgageRate,
    OverpaymentConfig,
    OverpaymentPolicy,
    RatePeriod,
    ResolvedRatePeriod,
    SelfBuildConfig,
    SimulateInputValues,
    SimulationCompleteness,
    SimulationResult,
    SimulationState,
    SimulationSummary,
    SimulationWarning,
    YearlyOverpaymentPlan,
)
from .simulation import calculate_amortization

__version__ = "1.0.0"
