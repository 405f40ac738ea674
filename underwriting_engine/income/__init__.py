"""
Income Detection Module for the Underwriting Scorer.

Detects income through recurring amount/cadence patterns and estimates monthly income.
"""

from .income_detector import (
    Frequency,
    RecurringPattern,
    IncomeDetector,
    identify_recurring_patterns,
    compute_average_monthly_income,
    compute_simple_monthly_income,
)

__all__ = [
    "Frequency",
    "RecurringPattern",
    "IncomeDetector",
    "identify_recurring_patterns",
    "compute_average_monthly_income",
    "compute_simple_monthly_income",
]
