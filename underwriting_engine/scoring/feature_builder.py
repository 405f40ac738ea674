"""
Raw Metric Extractors for the Underwriting Scorer.
Derives credit, DTI, delinquency, employment, housing, income and spending signals.

Every extractor is a pure function of the prefi and/or PLAID documents and is
memoized independently. Absent data resolves to the most conservative,
lowest-information default; nothing here raises on malformed input.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ..cache.memo import memoized
from ..config.scoring_config import DAYS_PER_YEAR, SCORING_CONFIG
from ..income.income_detector import (
    RecurringPattern,
    compute_average_monthly_income,
    compute_simple_monthly_income,
    identify_recurring_patterns,
)
from ..normalisation.normaliser import normalize_transactions
from ..normalisation.preprocess import (
    as_list,
    get_path,
    resolve_as_of,
    to_float,
    to_number,
    to_text,
)
from ..patterns.transaction_patterns import (
    DELINQUENCY_PATTERNS,
    HOUSING_PATTERNS,
    PAYROLL_PATTERNS,
    SPENDING_PATTERNS,
)

# Initialize logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DelinquencyInfo:
    """Late-payment and major-derogatory history."""
    years_since_last_late: float = math.inf  # inf when no late event exists
    has_major_delinquency: bool = False
    late_count_last_2_years: int = 0
    multiple_recent_lates: bool = False
    one_major_delinquency: bool = False


@dataclass(frozen=True)
class Identity:
    """Applicant identity fields from the bureau record."""
    name: str = ""
    emails: List = field(default_factory=list)
    phones: List = field(default_factory=list)


@dataclass
class UnderwritingMetrics:
    """All raw metrics feeding the sub-score ladders."""
    credit_score: float = 0
    dti: float = 0.0
    delinquency: DelinquencyInfo = field(default_factory=DelinquencyInfo)
    employment_years: float = 0.0
    is_self_employed: bool = False
    is_retired: bool = False
    housing_gaps: Optional[int] = None  # None when no rent / mortgage signal
    heuristic_monthly_income: float = 0.0
    static_annual_income: float = 0.0
    monthly_income: float = 0.0  # max(heuristic, static / 12)
    simple_monthly_income: float = 0.0
    spending_ratio: float = 0.0
    behavioral_waste_count: int = 0
    recurring_patterns: List[RecurringPattern] = field(default_factory=list)
    identity: Identity = field(default_factory=Identity)


# ----------------------------
# Bureau (prefi) metrics
# ----------------------------
@memoized
def get_credit_score(prefi: Any) -> float:
    """Highest numeric offer score, or 0 when no offer carries one."""
    scores = [
        to_number(get_path(offer, "Score"))
        for offer in as_list(get_path(prefi, "Offers"))
    ]
    scores = [s for s in scores if s is not None]
    if not scores:
        return 0

    best = max(scores)
    return int(best) if best.is_integer() else best


@memoized
def get_dti(prefi: Any) -> float:
    return to_float(get_path(prefi, "DataEnhance", "DebtToIncome"))


@memoized
def get_static_annual_income(prefi: Any) -> float:
    """Declared personal annual income."""
    return to_float(get_path(prefi, "DataPerfection", "Income", "Personal"))


@memoized
def get_identity(prefi: Any) -> Identity:
    return Identity(
        name=to_text(get_path(prefi, "DataPerfection", "Name", "Full")),
        emails=as_list(get_path(prefi, "DataPerfection", "Emails")),
        phones=as_list(get_path(prefi, "DataPerfection", "Phones")),
    )


# ----------------------------
# Transaction metrics
# ----------------------------
def get_delinquency_info(plaid: Any, as_of: Any = None) -> DelinquencyInfo:
    """
    Scan all transactions for late and major delinquency events.

    Args:
        plaid: PLAID document
        as_of: Reference date (defaults to today, midnight UTC)

    Returns:
        DelinquencyInfo
    """
    return _delinquency_info(plaid, resolve_as_of(as_of))


@memoized
def _delinquency_info(plaid: Any, as_of: datetime) -> DelinquencyInfo:
    late_rule = DELINQUENCY_PATTERNS["late"]
    major_rule = DELINQUENCY_PATTERNS["major"]
    lookback_years = SCORING_CONFIG["delinquency"]["lookback_years"]
    multiple_threshold = SCORING_CONFIG["adverse_history"]["multiple_recent_threshold"]

    late_dates: List[datetime] = []
    major = False

    for txn in normalize_transactions(plaid).transactions:
        if (any(c in late_rule["categories"] for c in txn.category)
                or late_rule["merchant_regex"].search(txn.merchant_name)):
            if txn.date is not None:
                late_dates.append(txn.date)

        # Major events also count as late events
        if major_rule["description_regex"].search(txn.original_description):
            major = True
            if txn.date is not None:
                late_dates.append(txn.date)

    if late_dates:
        latest = max(late_dates)
        years_since = (as_of - latest) / timedelta(days=DAYS_PER_YEAR)
    else:
        years_since = math.inf

    window_start = as_of - timedelta(days=lookback_years * DAYS_PER_YEAR)
    recent_count = sum(1 for d in late_dates if d >= window_start)

    return DelinquencyInfo(
        years_since_last_late=years_since,
        has_major_delinquency=major,
        late_count_last_2_years=recent_count,
        multiple_recent_lates=recent_count > multiple_threshold,
        one_major_delinquency=major,
    )


def _is_payroll(txn) -> bool:
    return (PAYROLL_PATTERNS["category"] in txn.category
            or bool(PAYROLL_PATTERNS["detailed_regex"].search(txn.detailed_category)))


@memoized
def estimate_employment_years(plaid: Any) -> float:
    """Span in years between the first and last payroll deposit (0 with < 2)."""
    dates = sorted(
        txn.date for txn in normalize_transactions(plaid).transactions
        if txn.date is not None and _is_payroll(txn)
    )
    if len(dates) < 2:
        return 0.0
    return (dates[-1] - dates[0]) / timedelta(days=DAYS_PER_YEAR)


@memoized
def is_self_employed(plaid: Any) -> bool:
    """Income-labelled credits that are not payroll suggest self-employment."""
    income_category = PAYROLL_PATTERNS["primary_income_category"]
    return any(
        txn.primary_category == income_category
        and PAYROLL_PATTERNS["category"] not in txn.category
        for txn in normalize_transactions(plaid).transactions
    )


@memoized
def is_retired(prefi: Any, plaid: Any) -> bool:
    """Retirement assets on file and no income-labelled transactions."""
    assets = to_float(get_path(prefi, "DataPerfection", "Assets", "Retirement"))
    income_category = PAYROLL_PATTERNS["primary_income_category"]
    has_income = any(
        txn.primary_category == income_category
        for txn in normalize_transactions(plaid).transactions
    )
    return assets > 0 and not has_income


@memoized
def count_housing_gaps(plaid: Any) -> Optional[int]:
    """
    Count gaps longer than the allowed interval between housing payments.

    Returns:
        None when no rent / mortgage transaction exists, else the gap count
    """
    max_gap = timedelta(days=SCORING_CONFIG["housing"]["max_gap_days"])
    housing = [
        txn for txn in normalize_transactions(plaid).transactions
        if any(c in HOUSING_PATTERNS["categories"] for c in txn.category)
    ]
    if not housing:
        return None

    dates = sorted(txn.date for txn in housing if txn.date is not None)
    return sum(1 for i in range(1, len(dates)) if dates[i] - dates[i - 1] > max_gap)


@memoized
def compute_spending_ratio(plaid: Any) -> float:
    """Share of outflow value spent in discretionary categories."""
    discretionary = SPENDING_PATTERNS["discretionary_categories"]
    total = 0.0
    discretionary_total = 0.0

    for txn in normalize_transactions(plaid).transactions:
        if txn.amount > 0:
            total += txn.amount
            if txn.primary_category in discretionary:
                discretionary_total += txn.amount

    return discretionary_total / total if total else 0.0


@memoized
def count_behavioral_waste(plaid: Any) -> int:
    """Outflows larger than a fixed fraction of average monthly income."""
    average_income = compute_average_monthly_income(plaid)
    if not average_income:
        return 0

    limit = average_income * SCORING_CONFIG["behavioral"]["waste_income_fraction"]
    return sum(1 for txn in normalize_transactions(plaid).transactions if txn.amount > limit)


def get_monthly_income(prefi: Any, plaid: Any) -> float:
    """Scoring income: the larger of the heuristic and declared monthly income."""
    return max(compute_average_monthly_income(plaid), get_static_annual_income(prefi) / 12)


class MetricsCalculator:
    """Calculates every raw underwriting metric for a document pair."""

    def __init__(self, as_of: Any = None):
        """
        Args:
            as_of: Reference date for recency metrics (defaults to today, midnight UTC)
        """
        self.as_of = resolve_as_of(as_of)

    def calculate_all_metrics(self, prefi: Any, plaid: Any) -> UnderwritingMetrics:
        normalized = normalize_transactions(plaid)
        heuristic = compute_average_monthly_income(plaid)
        static_annual = get_static_annual_income(prefi)

        metrics = UnderwritingMetrics(
            credit_score=get_credit_score(prefi),
            dti=get_dti(prefi),
            delinquency=get_delinquency_info(plaid, as_of=self.as_of),
            employment_years=estimate_employment_years(plaid),
            is_self_employed=is_self_employed(plaid),
            is_retired=is_retired(prefi, plaid),
            housing_gaps=count_housing_gaps(plaid),
            heuristic_monthly_income=heuristic,
            static_annual_income=static_annual,
            monthly_income=max(heuristic, static_annual / 12),
            simple_monthly_income=compute_simple_monthly_income(plaid),
            spending_ratio=compute_spending_ratio(plaid),
            behavioral_waste_count=count_behavioral_waste(plaid),
            recurring_patterns=list(identify_recurring_patterns(normalized.income_transactions)),
            identity=get_identity(prefi),
        )

        logger.debug(
            "[METRICS] credit=%s dti=%.3f employment=%.2fy housing_gaps=%s "
            "monthly_income=%.2f lates_2y=%d",
            metrics.credit_score, metrics.dti, metrics.employment_years,
            metrics.housing_gaps, metrics.monthly_income,
            metrics.delinquency.late_count_last_2_years,
        )
        return metrics
