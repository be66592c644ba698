import pytest

from mortgage_sim.models import (
    Lender,
    MortgageRate,
    OverpaymentPolicy,
    RatePeriod,
    SimulateInputValues,
    SimulationState,
)


FIXED_3YR = MortgageRate(
    id="fixed-3yr",
    name="3 Year Fixed",
    lender_id="aib",
    type="fixed",
    rate=3.5,
    fixed_term=3,
    min_ltv=0,
    max_ltv=90,
    buyer_types=["ftb", "mover"],
)

VARIABLE = MortgageRate(
    id="variable",
    name="Variable Rate",
    lender_id="aib",
    type="variable",
    rate=4.5,
    min_ltv=0,
    max_ltv=90,
    buyer_types=["ftb", "mover"],
    new_business=False,
)

VARIABLE_NEW_BUSINESS = MortgageRate(
    id="variable-nb",
    name="Variable Rate (New Business)",
    lender_id="aib",
    type="variable",
    rate=4.2,
    min_ltv=0,
    max_ltv=90,
    buyer_types=["ftb", "mover"],
    new_business=True,
)

TEN_PERCENT = OverpaymentPolicy(
    id="ten-percent",
    label="10% of balance",
    allowance_type="percentage",
    allowance_basis="balance",
    allowance_value=10,
)


@pytest.fixture
def rates():
    return [FIXED_3YR, VARIABLE, VARIABLE_NEW_BUSINESS]


@pytest.fixture
def lenders():
    return [
        Lender(id="aib", name="AIB", overpayment_policy="ten-percent"),
        Lender(id="plain", name="Plain Bank"),
    ]


@pytest.fixture
def policies():
    return [TEN_PERCENT]


@pytest.fixture
def make_state():
    """Factory for simulation states; periods are (id, rate_id, duration) tuples on lender aib."""

    def _make(
        amount=30_000_000,
        term=360,
        periods=(("p1", "fixed-3yr", 36), ("p2", "variable", 0)),
        configs=(),
        self_build=None,
        start_date=None,
        property_value=40_000_000,
        lender_id="aib",
    ):
        return SimulationState(
            input=SimulateInputValues(
                mortgage_amount=amount,
                mortgage_term_months=term,
                property_value=property_value,
                start_date=start_date,
            ),
            rate_periods=[
                RatePeriod(id=pid, lender_id=lender_id, rate_id=rate_id, duration_months=duration)
                for pid, rate_id, duration in periods
            ],
            overpayment_configs=list(configs),
            self_build_config=self_build,
        )

    return _make
