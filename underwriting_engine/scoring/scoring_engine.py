"""
Underwriting Scoring Engine.
Maps raw metrics to 1-5 sub-scores through ordered threshold ladders and
aggregates them into core, bayesian and total scores.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..cache.memo import memoized
from ..config.scoring_config import SCORING_CONFIG
from .feature_builder import (
    MetricsCalculator,
    UnderwritingMetrics,
    compute_spending_ratio,
    count_behavioral_waste,
    count_housing_gaps,
    estimate_employment_years,
    get_credit_score,
    get_delinquency_info,
    get_dti,
    get_monthly_income,
    is_retired,
    is_self_employed,
    DelinquencyInfo,
)

logger = logging.getLogger(__name__)

LADDERS = SCORING_CONFIG["ladders"]


def apply_ladder(value: float, ladder: List[Dict]) -> int:
    """
    Evaluate a threshold ladder top-down and return the first matching points.

    Args:
        value: Raw metric
        ladder: Entries with one of "min" (>=), "below" (<), "max" (<=) or
            no bound (always matches)

    Returns:
        Points of the first matching entry
    """
    for step in ladder:
        if "min" in step:
            hit = value >= step["min"]
        elif "below" in step:
            hit = value < step["below"]
        elif "max" in step:
            hit = value <= step["max"]
        else:
            hit = True
        if hit:
            return step["points"]

    raise ValueError(f"Ladder has no floor entry for value {value!r}")


# ----------------------------
# Sub-score mappers (raw metric -> 1..5)
# ----------------------------
def map_credit_score(credit_score: float) -> int:
    return apply_ladder(credit_score, LADDERS["credit_score"])


def map_dti(dti: float) -> int:
    return apply_ladder(dti, LADDERS["dti"])


def map_adverse_history(info: DelinquencyInfo) -> int:
    """
    Adverse-history ladder, evaluated exactly in this order.

    Both top rows require no major delinquency, so a major event caps the
    score at 3 however old it is.
    """
    rules = SCORING_CONFIG["adverse_history"]

    if info.years_since_last_late >= rules["clean_years"] and not info.has_major_delinquency:
        return 5
    if not info.has_major_delinquency and info.years_since_last_late >= rules["recent_clean_years"]:
        return 4
    if info.late_count_last_2_years <= rules["max_recent_lates"]:
        return 3
    if info.multiple_recent_lates or info.one_major_delinquency:
        return 2
    return 1


def map_employment(employment_years: float, self_employed: bool, retired: bool) -> int:
    rules = SCORING_CONFIG["employment"]

    if employment_years >= rules["long_tenure_years"]:
        return 5
    if employment_years >= rules["min_tenure_years"]:
        return 4
    if self_employed:
        return rules["self_employed_points"]
    if retired:
        return rules["retired_points"]
    return rules["default_points"]


def map_housing(housing_gaps: Optional[int]) -> int:
    if housing_gaps is None:
        return SCORING_CONFIG["housing"]["neutral_points"]
    return apply_ladder(housing_gaps, LADDERS["housing_gaps"])


def map_income(monthly_income: float) -> int:
    return apply_ladder(monthly_income, LADDERS["income"])


def map_spending(spending_ratio: float) -> int:
    return apply_ladder(spending_ratio, LADDERS["spending_ratio"])


def map_repayment(late_count: int) -> int:
    return apply_ladder(late_count, LADDERS["repayment_lates"])


def map_behavioral(waste_count: int) -> int:
    return apply_ladder(waste_count, LADDERS["behavioral_waste"])


# ----------------------------
# Document-level sub-scores
# ----------------------------
@memoized
def score_credit_score(prefi: Any) -> int:
    return map_credit_score(get_credit_score(prefi))


@memoized
def score_dti(prefi: Any) -> int:
    return map_dti(get_dti(prefi))


def score_adverse_history(plaid: Any, as_of: Any = None) -> int:
    return map_adverse_history(get_delinquency_info(plaid, as_of=as_of))


@memoized
def score_employment_history(prefi: Any, plaid: Any) -> int:
    return map_employment(
        estimate_employment_years(plaid),
        is_self_employed(plaid),
        is_retired(prefi, plaid),
    )


@memoized
def score_housing_status(plaid: Any) -> int:
    return map_housing(count_housing_gaps(plaid))


@memoized
def score_income(prefi: Any, plaid: Any) -> int:
    return map_income(get_monthly_income(prefi, plaid))


@memoized
def score_spending_behavior(plaid: Any) -> int:
    return map_spending(compute_spending_ratio(plaid))


def score_repayment_behavior(plaid: Any, as_of: Any = None) -> int:
    return map_repayment(get_delinquency_info(plaid, as_of=as_of).late_count_last_2_years)


@memoized
def score_behavioral_indicators(plaid: Any) -> int:
    return map_behavioral(count_behavioral_waste(plaid))


@dataclass
class ScoreBreakdown:
    """The nine sub-scores (each 1-5)."""
    credit_score: int = 1
    income_score: int = 1
    employment_score: int = 1
    dti_score: int = 1
    adverse_score: int = 1
    housing_score: int = 1
    spending_score: int = 1
    repayment_score: int = 1
    behavioral_score: int = 1

    @property
    def core_score(self) -> int:
        return (self.credit_score + self.income_score + self.employment_score
                + self.dti_score + self.adverse_score + self.housing_score)

    @property
    def bayesian_score(self) -> int:
        return self.spending_score + self.repayment_score + self.behavioral_score

    @property
    def total_score(self) -> int:
        return self.core_score + self.bayesian_score


@dataclass
class ScoreResult:
    """Complete scoring result for a document pair."""
    core_score: int = 6
    bayesian_score: int = 3
    total_score: int = 9
    simple_monthly_income: float = 0.0
    name: str = ""
    emails: List = field(default_factory=list)
    phones: List = field(default_factory=list)
    details: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        """JSON-ready payload."""
        return {
            "coreScore": self.core_score,
            "bayesianScore": self.bayesian_score,
            "totalScore": self.total_score,
            "simpleMonthlyIncome": self.simple_monthly_income,
            "name": self.name,
            "emails": list(self.emails),
            "phones": list(self.phones),
            "details": dict(self.details),
        }


class ScoringEngine:
    """Underwriting scoring engine."""

    def __init__(self, as_of: Any = None):
        """
        Args:
            as_of: Reference date for recency metrics (defaults to today, midnight UTC)
        """
        self.metrics_calculator = MetricsCalculator(as_of=as_of)

    def score_breakdown(self, metrics: UnderwritingMetrics) -> ScoreBreakdown:
        return ScoreBreakdown(
            credit_score=map_credit_score(metrics.credit_score),
            income_score=map_income(metrics.monthly_income),
            employment_score=map_employment(
                metrics.employment_years, metrics.is_self_employed, metrics.is_retired
            ),
            dti_score=map_dti(metrics.dti),
            adverse_score=map_adverse_history(metrics.delinquency),
            housing_score=map_housing(metrics.housing_gaps),
            spending_score=map_spending(metrics.spending_ratio),
            repayment_score=map_repayment(metrics.delinquency.late_count_last_2_years),
            behavioral_score=map_behavioral(metrics.behavioral_waste_count),
        )

    def score_application(self, prefi: Any, plaid: Any) -> ScoreResult:
        """
        Score a prefi / PLAID document pair.

        Args:
            prefi: Parsed bureau document
            plaid: Parsed PLAID document

        Returns:
            ScoreResult with summary scores and a details map of every raw
            metric and sub-score
        """
        metrics = self.metrics_calculator.calculate_all_metrics(prefi, plaid)
        breakdown = self.score_breakdown(metrics)

        result = ScoreResult(
            core_score=breakdown.core_score,
            bayesian_score=breakdown.bayesian_score,
            total_score=breakdown.total_score,
            simple_monthly_income=metrics.simple_monthly_income,
            name=metrics.identity.name,
            emails=list(metrics.identity.emails),
            phones=list(metrics.identity.phones),
            details=self._build_details(metrics, breakdown),
        )

        logger.debug(
            "Scored application: core=%d bayesian=%d total=%d",
            result.core_score, result.bayesian_score, result.total_score
        )
        return result

    def _build_details(self, metrics: UnderwritingMetrics, breakdown: ScoreBreakdown) -> Dict:
        years_since = metrics.delinquency.years_since_last_late

        return {
            "rawCreditScore": metrics.credit_score,
            "dti": metrics.dti,
            "employmentYears": metrics.employment_years,
            "lateCountLast2Years": metrics.delinquency.late_count_last_2_years,
            "hasMajorDelinquency": metrics.delinquency.has_major_delinquency,
            "yearsSinceLastLate": years_since if math.isfinite(years_since) else None,
            "isSelfEmployed": metrics.is_self_employed,
            "isRetired": metrics.is_retired,
            "housingGaps": metrics.housing_gaps,
            "spendingRatio": metrics.spending_ratio,
            "behavioralWasteCount": metrics.behavioral_waste_count,
            "recurringPatterns": [p.to_dict() for p in metrics.recurring_patterns],

            # Sub-scores
            "creditScore": breakdown.credit_score,
            "incomeScore": breakdown.income_score,
            "employmentScore": breakdown.employment_score,
            "dtiScore": breakdown.dti_score,
            "adverseScore": breakdown.adverse_score,
            "housingScore": breakdown.housing_score,
            "spendingScore": breakdown.spending_score,
            "repaymentScore": breakdown.repayment_score,
            "behavioralScore": breakdown.behavioral_score,

            # Income details
            "monthlyIncome": metrics.monthly_income,
            "staticAnnual": metrics.static_annual_income,
            "heuristicMonthlyIncome": metrics.heuristic_monthly_income,
        }


def calculate_scores(prefi: Any, plaid: Any, as_of: Any = None) -> ScoreResult:
    """
    Main entry point: score a prefi / PLAID document pair.

    Args:
        prefi: Parsed bureau document
        plaid: Parsed PLAID document
        as_of: Reference date for recency metrics (defaults to today, midnight UTC)

    Returns:
        ScoreResult
    """
    return ScoringEngine(as_of=as_of).score_application(prefi, plaid)
