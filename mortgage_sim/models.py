"""
Mortgage Simulation Models

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import BER_RATINGS, DEFAULT_BER


RateType = Literal["fixed", "variable"]
OverpaymentType = Literal["one_time", "recurring"]
OverpaymentFrequency = Literal["monthly", "quarterly", "yearly"]
OverpaymentEffect = Literal["reduce_term", "reduce_payment"]
AllowanceType = Literal["percentage", "flat"]
AllowanceBasis = Literal["balance", "monthly"]
MaxTransactionsPeriod = Literal["month", "quarter", "year", "fixed_period"]
ConstructionRepaymentType = Literal["interest_only", "interest_and_capital"]
SelfBuildPhase = Literal["construction", "interest_only", "repayment"]
WarningType = Literal["allowance_exceeded", "transaction_limit_exceeded", "early_redemption"]
WarningSeverity = Literal["warning", "error", "info"]
MilestoneType = Literal[
    "mortgage_start",
    "construction_complete",
    "full_payments_start",
    "principal_25_percent",
    "principal_50_percent",
    "principal_75_percent",
    "ltv_80_percent",
    "mortgage_complete",
]


class SimulationModel(BaseModel):
    """Immutable value snapshot, accepts camelCase or snake_case keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# Catalogue models
class MortgageRate(SimulationModel):
    """A lender's advertised mortgage rate"""
    id: str
    name: str = Field("", description="Human-readable rate name")
    lender_id: str
    type: RateType
    rate: float = Field(..., description="Annual rate as percentage (e.g., 3.45)")
    apr: Optional[float] = None
    fixed_term: Optional[int] = Field(None, description="Fixed term in years, fixed rates only")
    min_ltv: float = Field(0.0, ge=0, le=100)
    max_ltv: float = Field(100.0, ge=0, le=100)
    min_loan: Optional[float] = Field(None, description="Minimum loan in euros (e.g., HVM products)")
    buyer_types: List[str] = Field(default_factory=list)
    ber_eligible: Optional[List[str]] = Field(None, description="None means every BER rating is eligible")
    new_business: Optional[bool] = Field(
        None, description="True = new business only, False = existing customers only, None = both"
    )


class CustomRate(MortgageRate):
    """A user-entered rate, looked up by id alone"""
    custom_lender_name: Optional[str] = None


class Lender(SimulationModel):
    id: str
    name: str
    overpayment_policy: Optional[str] = Field(None, description="Id of the lender's overpayment policy")
    allows_self_build: bool = True


class OverpaymentPolicy(SimulationModel):
    """Fee-free overpayment rules applied during fixed periods"""
    id: str
    label: Optional[str] = None
    description: Optional[str] = None
    allowance_type: AllowanceType
    allowance_basis: AllowanceBasis = "balance"
    allowance_value: float = Field(
        ..., description="Percentage for percentage policies, yearly cents for flat policies"
    )
    min_amount: Optional[float] = Field(None, description="Monthly minimum allowance in cents")
    max_transactions: Optional[int] = Field(None, gt=0)
    max_transactions_period: Optional[MaxTransactionsPeriod] = None


# Simulation input models
class RatePeriod(SimulationModel):
    """One entry of the sequential rate-period stack"""
    id: str
    lender_id: str
    rate_id: str
    is_custom: bool = False
    duration_months: int = Field(..., ge=0, description="0 means until the end of the mortgage")
    label: Optional[str] = None

    @property
    def is_until_end(self) -> bool:
        return self.duration_months == 0


class ResolvedRatePeriod(SimulationModel):
    """A rate period joined with its rate, lender and computed start month"""
    id: str
    rate_id: str
    rate: float
    type: RateType
    fixed_term: Optional[int] = None
    lender_id: str
    lender_name: str
    rate_name: str
    start_month: int
    duration_months: int
    overpayment_policy_id: Optional[str] = None
    label: str
    is_custom: bool = False

    @property
    def is_until_end(self) -> bool:
        return self.duration_months == 0

    @property
    def end_month(self) -> Optional[int]:
        """Last month covered, or None for an until-end period"""
        if self.is_until_end:
            return None
        return self.start_month + self.duration_months - 1


class OverpaymentConfig(SimulationModel):
    """User-configured one-time or recurring overpayment"""
    id: str
    rate_period_id: Optional[str] = None
    type: OverpaymentType
    frequency: OverpaymentFrequency = "monthly"
    amount: float = Field(..., description="Amount in cents")
    start_month: int = Field(..., ge=1)
    end_month: Optional[int] = Field(None, ge=1, description="Inclusive, recurring only")
    effect: OverpaymentEffect = "reduce_term"
    label: Optional[str] = None
    enabled: bool = True


class DrawdownStage(SimulationModel):
    id: Optional[str] = None
    month: int = Field(..., ge=1)
    amount: float = Field(..., description="Amount drawn in cents")
    label: Optional[str] = None


class SelfBuildConfig(SimulationModel):
    """Staged drawdown configuration for self-build mortgages"""
    enabled: bool = False
    construction_repayment_type: ConstructionRepaymentType = "interest_only"
    interest_only_months: int = Field(0, ge=0, description="Interest-only months after the final drawdown")
    drawdown_stages: List[DrawdownStage] = Field(default_factory=list)


class SimulateInputValues(SimulationModel):
    """Mortgage inputs; degenerate values are allowed and yield an empty schedule"""
    mortgage_amount: float = Field(..., description="Principal in cents")
    mortgage_term_months: int
    property_value: float = Field(0.0, description="Property value in cents")
    start_date: Optional[date] = Field(None, description="None runs the schedule in relative months")
    ber: str = DEFAULT_BER

    @field_validator("ber")
    @classmethod
    def validate_ber(cls, ber: str) -> str:
        if ber not in BER_RATINGS:
            raise ValueError(f"Unknown BER rating: {ber}")
        return ber


class SimulationState(SimulationModel):
    """Complete simulation input owned by the caller"""
    input: SimulateInputValues
    rate_periods: List[RatePeriod] = Field(default_factory=list)
    overpayment_configs: List[OverpaymentConfig] = Field(default_factory=list)
    self_build_config: Optional[SelfBuildConfig] = None

    @field_validator("rate_periods")
    @classmethod
    def validate_rate_period_stack(cls, periods: List[RatePeriod]) -> List[RatePeriod]:
        """At most one until-end period, and only in last position"""
        until_end = [i for i, p in enumerate(periods) if p.is_until_end]
        if len(until_end) > 1:
            raise ValueError("Only one rate period may run until the end of the mortgage")
        if until_end and until_end[0] != len(periods) - 1:
            raise ValueError("The until-end rate period must be the last period")
        return periods


# Simulation output models
class AmortizationMonth(SimulationModel):
    """One row of the amortization ledger"""
    month: int = Field(..., description="1-based month of the mortgage")
    year: int = Field(..., description="Mortgage year (1, 2, 3...)")
    month_of_year: int
    date: str = Field("", description="ISO date, empty in relative mode")
    opening_balance: float
    closing_balance: float
    scheduled_payment: float
    interest_portion: float
    principal_portion: float
    overpayment: float
    total_payment: float
    rate: float
    rate_period_id: str
    cumulative_interest: float
    cumulative_principal: float
    cumulative_overpayments: float
    cumulative_total: float
    drawdown_this_month: Optional[float] = None
    cumulative_drawn: Optional[float] = None
    phase: Optional[SelfBuildPhase] = None
    is_interest_only: Optional[bool] = None


class AppliedOverpayment(SimulationModel):
    month: int
    amount: float
    config_id: str
    is_recurring: bool
    within_allowance: bool
    excess_amount: float


class SimulationWarning(SimulationModel):
    type: WarningType
    month: int
    message: str
    severity: WarningSeverity
    config_id: Optional[str] = None
    overpayment_label: Optional[str] = None


class AmortizationResult(SimulationModel):
    months: List[AmortizationMonth] = Field(default_factory=list)
    applied_overpayments: List[AppliedOverpayment] = Field(default_factory=list)
    warnings: List[SimulationWarning] = Field(default_factory=list)


class AmortizationYear(SimulationModel):
    """Calendar or mortgage year aggregated from ledger months"""
    year: int
    opening_balance: float
    closing_balance: float
    total_interest: float
    total_principal: float
    total_overpayments: float
    total_payments: float
    cumulative_interest: float
    cumulative_principal: float
    cumulative_total: float
    months: List[AmortizationMonth]
    has_warnings: bool = False
    rate_changes: List[str] = Field(default_factory=list, description="Rate period ids active this year")


class Milestone(SimulationModel):
    type: MilestoneType
    month: int
    date: str = ""
    label: str
    value: Optional[float] = None


class SimulationSummary(SimulationModel):
    total_interest: float = 0.0
    total_paid: float = 0.0
    actual_term_months: int = 0
    interest_saved: float = 0.0
    months_saved: int = 0
    extra_interest_from_self_build: Optional[float] = None


class SimulationCompleteness(SimulationModel):
    is_complete: bool
    remaining_balance: float
    covered_months: int
    total_months: int
    missing_months: int


class BufferSuggestion(SimulationModel):
    """A fixed-period end where a short variable buffer is recommended"""
    after_index: int = Field(..., description="Index into the resolved rate periods")
    fixed_rate: MortgageRate
    suggested_rate: MortgageRate
    ltv_at_end: float
    lender_name: str
    is_trailing: bool = False


class YearlyOverpaymentPlan(SimulationModel):
    year: int
    start_month: int
    end_month: int
    monthly_amount: float
    estimated_balance: float


class SimulationResult(SimulationModel):
    """Everything a single simulation run produces"""
    months: List[AmortizationMonth] = Field(default_factory=list)
    applied_overpayments: List[AppliedOverpayment] = Field(default_factory=list)
    warnings: List[SimulationWarning] = Field(default_factory=list)
    resolved_rate_periods: List[ResolvedRatePeriod] = Field(default_factory=list)
    yearly_schedule: List[AmortizationYear] = Field(default_factory=list)
    summary: SimulationSummary = Field(default_factory=SimulationSummary)
    milestones: List[Milestone] = Field(default_factory=list)
    completeness: SimulationCompleteness
    buffer_suggestions: List[BufferSuggestion] = Field(default_factory=list)
