"""
Mortgage Simulation Command Line

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

import argparse
import json
import logging
import sys
from typing import Any, List

from pydantic import Field, ValidationError

from .engine import simulate
from .models import (
    CustomRate,
    Lender,
    MortgageRate,
    OverpaymentPolicy,
    SimulationModel,
    SimulationResult,
    SimulationState,
)

logger = logging.getLogger(__name__)


class Scenario(SimulationModel):
    """Simulation state plus the catalogues it refers to"""
    state: SimulationState
    rates: List[MortgageRate] = Field(default_factory=list)
    custom_rates: List[CustomRate] = Field(default_factory=list)
    lenders: List[Lender] = Field(default_factory=list)
    policies: List[OverpaymentPolicy] = Field(default_factory=list)


def load_scenario(path: str) -> Scenario:
    """Read a JSON scenario file. Raises OSError or pydantic.ValidationError."""
    with open(path, encoding="utf-8") as f:
        return Scenario.model_validate_json(f.read())


def build_output(
    result: SimulationResult, yearly: bool = False, milestones: bool = False
) -> dict[str, Any]:
    """Select the parts of a result to print; money values stay in cents."""
    include = {"summary", "completeness", "warnings", "buffer_suggestions", "resolved_rate_periods"}
    include.add("yearly_schedule" if yearly else "months")
    if milestones:
        include.add("milestones")
    return result.model_dump(mode="json", by_alias=True, include=include)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="mortgage_sim", description="Mortgage amortization simulator"
    )
    parser.add_argument(
        "scenario",
        help="JSON file with a simulation state and optional rates, customRates, lenders and policies",
    )
    parser.add_argument(
        "--yearly",
        action="store_true",
        help="Print the schedule aggregated by year instead of month by month",
    )
    parser.add_argument(
        "--milestones", action="store_true", help="Include mortgage milestones in the output"
    )
    parser.add_argument(
        "--indent", type=int, default=2, help="JSON indentation (default: 2)"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output including debug information.",
    )
    args = parser.parse_args(argv)
    if args.indent < 0:
        parser.error("--indent cannot be negative")
    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        scenario = load_scenario(args.scenario)
    except OSError as e:
        print(f"Error reading scenario file: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Invalid scenario file {args.scenario}:\n{e}", file=sys.stderr)
        return 1

    result = simulate(
        scenario.state,
        scenario.rates,
        scenario.custom_rates,
        scenario.lenders,
        scenario.policies,
    )
    if not result.completeness.is_complete:
        logger.warning(
            "Rate periods cover %d of %d months, %.2f left outstanding",
            result.completeness.covered_months,
            result.completeness.total_months,
            result.completeness.remaining_balance / 100,
        )

    json.dump(build_output(result, args.yearly, args.milestones), sys.stdout, indent=args.indent)
    sys.stdout.write("\n")
    return 0
