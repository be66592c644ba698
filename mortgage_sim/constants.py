"""
Mortgage Simulation Constants

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""

# Balance at or below this (in cents) counts as paid off
PAID_OFF_TOLERANCE = 0.01

# Drawdown stages may differ from the mortgage amount by less than one cent
DRAWDOWN_TOLERANCE = 1

# Extra self-build interest below one euro is not reported
EXTRA_INTEREST_THRESHOLD = 100

# Side-by-side comparisons are capped
MAX_COMPARE_SIMULATIONS = 5

# Length of the variable buffer inserted between repeated fixed periods
VARIABLE_BUFFER_MONTHS = 1

BTL_BUYER_TYPES = ("btl", "switcher-btl")

BER_RATINGS = (
    "A1", "A2", "A3",
    "B1", "B2", "B3",
    "C1", "C2", "C3",
    "D1", "D2",
    "E1", "E2",
    "F", "G",
    "Exempt",
)
DEFAULT_BER = "C1"

MILESTONE_LABELS = {
    "mortgage_start": "Mortgage Starts",
    "construction_complete": "Construction Complete",
    "full_payments_start": "Full Payments Start",
    "principal_25_percent": "25% Paid Off",
    "principal_50_percent": "50% Paid Off",
    "principal_75_percent": "75% Paid Off",
    "ltv_80_percent": "LTV Below 80%",
    "mortgage_complete": "Mortgage Complete",
}

TRANSACTION_PERIOD_LABELS = {
    "month": "month",
    "quarter": "quarter",
    "year": "year",
    "fixed_period": "fixed period",
}
