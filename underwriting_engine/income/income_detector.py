"""
Recurring Income Detection Module for the Underwriting Scorer.

Detects recurring income by bucketing credits by amount and analysing the
cadence of each bucket. Accepted patterns drive the monthly income estimate;
a simple total-income / elapsed-months average is only used as a fallback.
"""

import logging
import math
import statistics
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..cache.memo import memoized
from ..config.scoring_config import SCORING_CONFIG
from ..normalisation.normaliser import IncomeTransaction, normalize_transactions
from ..normalisation.preprocess import parse_date, to_float, to_text

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class Frequency(str, Enum):
    """Recurrence frequency of an income pattern."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"
    IRREGULAR = "irregular"


@dataclass(frozen=True)
class RecurringPattern:
    """A detected recurring income stream."""
    frequency: Frequency
    average_amount: float
    occurrence_count: int = 0
    average_interval_days: float = 0.0
    coefficient_of_variation: float = 0.0  # inf when the mean gap is zero

    def to_dict(self) -> Dict:
        cv = self.coefficient_of_variation
        return {
            "frequency": self.frequency.value,
            "averageAmount": self.average_amount,
            "occurrenceCount": self.occurrence_count,
            "averageIntervalDays": self.average_interval_days,
            "coefficientOfVariation": cv if math.isfinite(cv) else None,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class IncomeDetector:
    """Detects recurring income patterns and estimates monthly income."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or SCORING_CONFIG
        recurrence = config["recurrence"]
        income = config["income"]

        self.amount_bucket = recurrence["amount_bucket"]
        self.min_bucket_size = recurrence["min_bucket_size"]
        self.max_cv = recurrence["max_coefficient_of_variation"]
        self.min_occurrences_override = recurrence["min_occurrences_override"]
        self.frequency_bands = [
            (Frequency(name), low, high) for name, low, high in recurrence["frequency_bands"]
        ]

        self.periods_per_month = {
            Frequency(name): multiplier for name, multiplier in income["periods_per_month"].items()
        }
        self.days_per_month = income["days_per_month"]
        self.min_months_for_average = income["min_months_for_average"]
        self.simple_income_months = income["simple_income_months"]

    # ----------------------------
    # Frequency classification
    # ----------------------------
    def classify_frequency(self, average_interval: float) -> Frequency:
        """
        Map an average gap in days to a frequency.

        Bands overlap (semimonthly 12-16 sits inside biweekly 10-18); they
        are checked in configured order so semimonthly wins the overlap.
        """
        for frequency, low, high in self.frequency_bands:
            if low <= average_interval <= high:
                return frequency
        return Frequency.IRREGULAR

    # ----------------------------
    # Recurring detection
    # ----------------------------
    def _bucket_key(self, amount: float) -> int:
        return round_half_up(amount / self.amount_bucket) * self.amount_bucket

    def find_recurring_patterns(self, transactions: Iterable[IncomeTransaction]) -> List[RecurringPattern]:
        transactions = list(transactions)
        if len(transactions) < self.min_bucket_size:
            return []

        buckets: "OrderedDict[int, List[IncomeTransaction]]" = OrderedDict()
        for txn in transactions:
            buckets.setdefault(self._bucket_key(txn.amount), []).append(txn)

        patterns: List[RecurringPattern] = []

        for bucket, group in buckets.items():
            if len(group) < self.min_bucket_size:
                continue

            # Unparsable dates stay in the amount average but not in interval math
            dates = sorted(t.date for t in group if t.date is not None)
            intervals = [
                round_half_up((dates[i] - dates[i - 1]).total_seconds() / SECONDS_PER_DAY)
                for i in range(1, len(dates))
            ]
            if not intervals:
                logger.debug("Bucket %s has no datable interval, skipped", bucket)
                continue

            avg_interval = sum(intervals) / len(intervals)
            frequency = self.classify_frequency(avg_interval)

            std_dev = statistics.pstdev(intervals) if len(intervals) > 1 else 0.0
            cv = std_dev / avg_interval if avg_interval > 0 else math.inf

            if not (cv < self.max_cv or len(group) >= self.min_occurrences_override):
                logger.debug(
                    "Bucket %s rejected: cv=%.3f over %d occurrences", bucket, cv, len(group)
                )
                continue

            patterns.append(RecurringPattern(
                frequency=frequency,
                average_amount=sum(t.amount for t in group) / len(group),
                occurrence_count=len(group),
                average_interval_days=avg_interval,
                coefficient_of_variation=cv,
            ))

        return patterns

    # ----------------------------
    # Monthly income
    # ----------------------------
    def monthly_from_patterns(self, patterns: Iterable[RecurringPattern]) -> float:
        return sum(p.average_amount * self.periods_per_month.get(p.frequency, 1) for p in patterns)

    def estimate_monthly_income(
        self,
        income_transactions: Iterable[IncomeTransaction],
        all_dates: Iterable[datetime],
        patterns: Optional[List[RecurringPattern]] = None,
    ) -> float:
        """
        Estimate monthly income.

        Args:
            income_transactions: Income credits (positive amounts)
            all_dates: Dates of every transaction, used for the elapsed span
            patterns: Pre-computed recurring patterns (detected if omitted)

        Returns:
            Pattern-based estimate when any pattern exists, otherwise a simple
            average over the elapsed months when at least two months of
            history exist, otherwise 0.
        """
        income_transactions = list(income_transactions)
        all_dates = sorted(all_dates)
        if len(all_dates) < 2:
            return 0.0

        if patterns is None:
            patterns = self.find_recurring_patterns(income_transactions)

        pattern_total = self.monthly_from_patterns(patterns)
        if pattern_total > 0:
            return pattern_total

        months_span = (all_dates[-1] - all_dates[0]).total_seconds() / (
            self.days_per_month * SECONDS_PER_DAY
        )
        if months_span >= self.min_months_for_average:
            total_income = sum(t.amount for t in income_transactions)
            return total_income / months_span

        return 0.0

    def simple_monthly_income(self, income_transactions: Iterable[IncomeTransaction]) -> float:
        """Naive average: total income / 24 regardless of history length."""
        return sum(t.amount for t in income_transactions) / self.simple_income_months


_default_detector = IncomeDetector()


def _coerce_income(txn: Any) -> IncomeTransaction:
    if isinstance(txn, IncomeTransaction):
        return txn
    if isinstance(txn, dict):
        return IncomeTransaction(
            date=parse_date(txn.get("date")),
            amount=abs(to_float(txn.get("amount"))),
            description=to_text(txn.get("description")) or "Unknown",
        )
    raise TypeError(f"Unsupported income transaction: {type(txn).__name__}")


@memoized
def identify_recurring_patterns(transactions: Iterable[Any]) -> Tuple[RecurringPattern, ...]:
    """
    Detect recurring income patterns.

    Args:
        transactions: IncomeTransaction objects or {"date", "amount"} dicts

    Returns:
        Tuple of accepted RecurringPattern (possibly empty)
    """
    income = [_coerce_income(t) for t in transactions]
    return tuple(_default_detector.find_recurring_patterns(income))


@memoized
def compute_average_monthly_income(plaid: Any) -> float:
    """Heuristic monthly income for a PLAID document."""
    normalized = normalize_transactions(plaid)
    patterns = list(identify_recurring_patterns(normalized.income_transactions))
    return _default_detector.estimate_monthly_income(
        normalized.income_transactions,
        normalized.dates,
        patterns=patterns,
    )


@memoized
def compute_simple_monthly_income(plaid: Any) -> float:
    normalized = normalize_transactions(plaid)
    return _default_detector.simple_monthly_income(normalized.income_transactions)
