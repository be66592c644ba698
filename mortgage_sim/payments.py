"""
Mortgage Payment Calculations

Copyright (c) 2024 Romain Bossut. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, distribution,
or use of this software is strictly prohibited.
"""


def monthly_rate(annual_rate: float) -> float:
    """Convert an annual percentage rate (e.g., 3.5) to a monthly decimal rate."""
    return annual_rate / 100.0 / 12.0


def calculate_monthly_payment(principal: float, annual_interest_rate: float, months: int) -> float:
    """Calculate the monthly mortgage payment for a given principal, annual interest rate, and term in months.

    Uses the standard amortization formula:
      P = (r * PV) / (1 - (1+r)^(-n))

    Where:
      P = monthly payment
      r = monthly interest rate (annual_interest_rate/12)
      PV = present value (principal)
      n = number of months

    Note: annual_interest_rate should be in percentage (e.g., 3.45 for 3.45%)
    """
    if months <= 0:
        return principal  # If no term left, just return what's due.

    rate = monthly_rate(annual_interest_rate)

    if rate == 0:
        # No interest scenario
        return principal / months

    return rate * principal / (1 - (1 + rate) ** (-months))


def calculate_remaining_balance(
    principal: float, annual_interest_rate: float, total_months: int, paid_months: int
) -> float:
    """Balance left on an annuity of `total_months` after `paid_months` scheduled payments."""
    if paid_months >= total_months:
        return 0.0
    if annual_interest_rate == 0:
        return principal * (1 - paid_months / total_months)

    rate = monthly_rate(annual_interest_rate)
    payment = calculate_monthly_payment(principal, annual_interest_rate, total_months)
    growth = (1 + rate) ** paid_months
    return principal * growth - payment * (growth - 1) / rate


def calculate_interest_only_payment(balance: float, annual_rate: float) -> float:
    """Interest due for one month on `balance`; no principal is repaid."""
    return balance * monthly_rate(annual_rate)
