"""
Scoring Module for Underwriting Applications.

Contains raw metric extraction from the documents and the sub-score / aggregation logic.
"""

# Import from feature_builder (metric extractors)
from .feature_builder import (
    DelinquencyInfo,
    Identity,
    UnderwritingMetrics,
    MetricsCalculator,
    get_credit_score,
    get_dti,
    get_static_annual_income,
    get_identity,
    get_delinquency_info,
    estimate_employment_years,
    is_self_employed,
    is_retired,
    count_housing_gaps,
    compute_spending_ratio,
    count_behavioral_waste,
    get_monthly_income,
)

# Import from scoring_engine
from .scoring_engine import (
    apply_ladder,
    map_credit_score,
    map_dti,
    map_adverse_history,
    map_employment,
    map_housing,
    map_income,
    map_spending,
    map_repayment,
    map_behavioral,
    score_credit_score,
    score_dti,
    score_adverse_history,
    score_employment_history,
    score_housing_status,
    score_income,
    score_spending_behavior,
    score_repayment_behavior,
    score_behavioral_indicators,
    ScoreBreakdown,
    ScoreResult,
    ScoringEngine,
    calculate_scores,
)

__all__ = [
    # Feature builder exports
    "DelinquencyInfo",
    "Identity",
    "UnderwritingMetrics",
    "MetricsCalculator",
    "get_credit_score",
    "get_dti",
    "get_static_annual_income",
    "get_identity",
    "get_delinquency_info",
    "estimate_employment_years",
    "is_self_employed",
    "is_retired",
    "count_housing_gaps",
    "compute_spending_ratio",
    "count_behavioral_waste",
    "get_monthly_income",
    # Scoring engine exports
    "apply_ladder",
    "map_credit_score",
    "map_dti",
    "map_adverse_history",
    "map_employment",
    "map_housing",
    "map_income",
    "map_spending",
    "map_repayment",
    "map_behavioral",
    "score_credit_score",
    "score_dti",
    "score_adverse_history",
    "score_employment_history",
    "score_housing_status",
    "score_income",
    "score_spending_behavior",
    "score_repayment_behavior",
    "score_behavioral_indicators",
    "ScoreBreakdown",
    "ScoreResult",
    "ScoringEngine",
    "calculate_scores",
]
