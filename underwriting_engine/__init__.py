"""
Underwriting Engine - Prefi / PLAID Underwriting Scorer.

Derives an underwriting score from a credit-bureau record ("prefi") and a
bank-transaction-aggregator record ("plaid"): nine 1-5 sub-scores combined
into a core score, a bayesian behavioural score and a total score.

Main Components:
    - normalisation: Flattening PLAID documents into uniform transactions
    - income: Recurring income detection and monthly income estimation
    - patterns: Category sets and regexes encoding the business rules
    - scoring: Raw metric extraction, sub-score ladders and aggregation
    - config: Scoring ladders and cache configuration
    - cache: Content-hash memoization of extractors
"""

from typing import Any, Dict

# Normalisation
from .normalisation.normaliser import (
    Transaction,
    IncomeTransaction,
    Account,
    NormalizedTransactions,
    DebitEntry,
    DebitReport,
    normalize_transactions,
    get_account_transaction_log,
    get_debits_and_total,
)

# Income detection
from .income.income_detector import (
    Frequency,
    RecurringPattern,
    IncomeDetector,
    identify_recurring_patterns,
    compute_average_monthly_income,
    compute_simple_monthly_income,
)

# Scoring components
from .scoring.feature_builder import (
    DelinquencyInfo,
    Identity,
    UnderwritingMetrics,
    MetricsCalculator,
    get_credit_score,
    get_dti,
    get_delinquency_info,
    estimate_employment_years,
    is_self_employed,
    is_retired,
    count_housing_gaps,
    compute_spending_ratio,
    count_behavioral_waste,
)

from .scoring.scoring_engine import (
    ScoreBreakdown,
    ScoreResult,
    ScoringEngine,
    calculate_scores,
    score_credit_score,
    score_dti,
    score_adverse_history,
    score_employment_history,
    score_housing_status,
    score_income,
    score_spending_behavior,
    score_repayment_behavior,
    score_behavioral_indicators,
)

# Configuration
from .config.scoring_config import (
    SCORING_CONFIG,
    CACHE_CONFIG,
)

# Memoization
from .cache.memo import (
    ResultCache,
    UnboundedCache,
    LRUCache,
    build_cache,
    set_cache,
    clear_cache,
)

# Boundary validation
from .validation import DocumentValidationError, validate_documents


__version__ = "1.0.0"
__all__ = [
    # Normalisation
    "Transaction",
    "IncomeTransaction",
    "Account",
    "NormalizedTransactions",
    "DebitEntry",
    "DebitReport",
    "normalize_transactions",
    "get_account_transaction_log",
    "get_debits_and_total",
    # Income detection
    "Frequency",
    "RecurringPattern",
    "IncomeDetector",
    "identify_recurring_patterns",
    "compute_average_monthly_income",
    "compute_simple_monthly_income",
    # Metrics
    "DelinquencyInfo",
    "Identity",
    "UnderwritingMetrics",
    "MetricsCalculator",
    "get_credit_score",
    "get_dti",
    "get_delinquency_info",
    "estimate_employment_years",
    "is_self_employed",
    "is_retired",
    "count_housing_gaps",
    "compute_spending_ratio",
    "count_behavioral_waste",
    # Scoring
    "ScoreBreakdown",
    "ScoreResult",
    "ScoringEngine",
    "calculate_scores",
    "score_credit_score",
    "score_dti",
    "score_adverse_history",
    "score_employment_history",
    "score_housing_status",
    "score_income",
    "score_spending_behavior",
    "score_repayment_behavior",
    "score_behavioral_indicators",
    # Configuration
    "SCORING_CONFIG",
    "CACHE_CONFIG",
    # Memoization
    "ResultCache",
    "UnboundedCache",
    "LRUCache",
    "build_cache",
    "set_cache",
    "clear_cache",
    # Validation
    "DocumentValidationError",
    "validate_documents",
    # Main function
    "run_underwriting_scoring",
]


def run_underwriting_scoring(prefi: Any, plaid: Any, as_of: Any = None) -> Dict:
    """
    Main entry point for underwriting scoring.

    This function orchestrates the complete scoring pipeline:
    1. Normalise the PLAID transactions
    2. Extract raw metrics from both documents
    3. Map metrics to sub-scores and aggregate them
    4. Return the JSON-ready result

    Args:
        prefi: Parsed bureau document with optional keys:
            - Offers: [{"Score": ...}]
            - DataEnhance: {"DebtToIncome": ...}
            - DataPerfection: {"Name": {"Full"}, "Emails", "Phones",
              "Income": {"Personal"}, "Assets": {"Retirement"}}
        plaid: Parsed PLAID document with "report.items" or "items", each
            holding "accounts" with nested "transactions"
        as_of: Reference date for recency metrics (default today)

    Returns:
        Dictionary containing:
            - coreScore: Sum of six core sub-scores (6-30)
            - bayesianScore: Sum of three behavioural sub-scores (3-15)
            - totalScore: coreScore + bayesianScore (9-45)
            - simpleMonthlyIncome: Total income / 24
            - name, emails, phones: Identity fields from prefi
            - details: Every raw metric and sub-score

    Example:
        >>> result = run_underwriting_scoring(
        ...     prefi={"Offers": [{"Score": "810"}]},
        ...     plaid={"items": []},
        ... )
        >>> result["details"]["creditScore"]
        5
    """
    return calculate_scores(prefi, plaid, as_of=as_of).to_dict()
