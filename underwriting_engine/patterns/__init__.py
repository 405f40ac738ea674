"""
Transaction Pattern Definitions for the Underwriting Scorer.

Contains the category sets and regex patterns used to classify transactions as:
- Income and payroll
- Delinquency events (late fees, charge-offs, repossessions, bankruptcies)
- Housing payments (rent, mortgage)
- Discretionary spending
"""

from .transaction_patterns import (
    INCOME_PATTERNS,
    PAYROLL_PATTERNS,
    DELINQUENCY_PATTERNS,
    HOUSING_PATTERNS,
    SPENDING_PATTERNS,
)

__all__ = [
    "INCOME_PATTERNS",
    "PAYROLL_PATTERNS",
    "DELINQUENCY_PATTERNS",
    "HOUSING_PATTERNS",
    "SPENDING_PATTERNS",
]
