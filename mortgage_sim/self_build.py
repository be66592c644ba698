"""
Self-Build Mortgage Helpers

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.

Self-build mortgages release funds in stages during construction. While the
house is being built only interest is paid on the amount drawn so far, and
full amortization starts once construction (and any extra interest-only
period) is over.
"""

from collections.abc import Sequence
from typing import Any

from .constants import DRAWDOWN_TOLERANCE
from .models import DrawdownStage, SelfBuildConfig, SelfBuildPhase
from .payments import calculate_interest_only_payment

__all__ = [
    "calculate_interest_only_payment",
    "determine_phase",
    "get_construction_end_month",
    "get_cumulative_drawn",
    "get_drawdown_for_month",
    "get_drawdown_stages_with_cumulative",
    "get_initial_self_build_balance",
    "get_interest_only_end_month",
    "is_interest_only_month",
    "is_self_build_active",
    "validate_drawdown_total",
]


def is_self_build_active(config: SelfBuildConfig | None) -> bool:
    return config is not None and config.enabled and len(config.drawdown_stages) > 0


def get_drawdown_for_month(month: int, stages: Sequence[DrawdownStage]) -> float:
    """Total drawn in `month`; stages scheduled in the same month add up."""
    return sum((s.amount for s in stages if s.month == month), 0.0)


def get_cumulative_drawn(month: int, stages: Sequence[DrawdownStage]) -> float:
    """Total drawn up to and including `month`."""
    return sum((s.amount for s in stages if s.month <= month), 0.0)


def get_construction_end_month(config: SelfBuildConfig) -> int:
    """Month of the final drawdown, 0 when no stages are configured."""
    return max((s.month for s in config.drawdown_stages), default=0)


def get_interest_only_end_month(config: SelfBuildConfig) -> int:
    return get_construction_end_month(config) + config.interest_only_months


def determine_phase(month: int, config: SelfBuildConfig) -> SelfBuildPhase:
    """
    - construction: up to and including the final drawdown month
    - interest_only: after construction, through the interest-only months
    - repayment: full amortization
    """
    if month <= get_construction_end_month(config):
        return "construction"
    if month <= get_interest_only_end_month(config):
        return "interest_only"
    return "repayment"


def is_interest_only_month(month: int, config: SelfBuildConfig) -> bool:
    """Whether no principal is repaid in `month`.

    With interest_and_capital repayments, construction months amortize and
    only the explicit post-construction interest-only window is interest-only.
    """
    phase = determine_phase(month, config)
    if config.construction_repayment_type == "interest_and_capital":
        return phase == "interest_only"
    return phase in ("construction", "interest_only")


def validate_drawdown_total(config: SelfBuildConfig, mortgage_amount: float) -> dict[str, Any]:
    """Check that drawdowns add up to the mortgage amount.

    Returns:
    - is_valid: totals match to within one cent
    - total_drawn: sum of all stages
    - difference: positive when under-drawn, negative when over-drawn
    """
    total_drawn = sum((s.amount for s in config.drawdown_stages), 0.0)
    difference = mortgage_amount - total_drawn
    return {
        "is_valid": abs(difference) < DRAWDOWN_TOLERANCE,
        "total_drawn": total_drawn,
        "difference": difference,
    }


def get_initial_self_build_balance(config: SelfBuildConfig) -> float:
    """Amount of the earliest drawdown stage."""
    if not config.drawdown_stages:
        return 0.0
    first = min(config.drawdown_stages, key=lambda s: s.month)
    return first.amount


def get_drawdown_stages_with_cumulative(stages: Sequence[DrawdownStage]) -> list[dict[str, Any]]:
    """Stages sorted by month, each with cumulative_drawn, remaining_to_draw and total_approved."""
    ordered = sorted(stages, key=lambda s: s.month)
    total = sum((s.amount for s in ordered), 0.0)

    result = []
    cumulative = 0.0
    for stage in ordered:
        cumulative += stage.amount
        result.append(
            {
                **stage.model_dump(),
                "cumulative_drawn": cumulative,
                "remaining_to_draw": total - cumulative,
                "total_approved": total,
            }
        )
    return result
