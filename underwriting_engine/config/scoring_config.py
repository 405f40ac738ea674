"""
Scoring configuration for the underwriting scorer.
Contains sub-score ladders, recurrence bands, income heuristics and cache settings.
"""

# Days per year used for every tenure / recency calculation
DAYS_PER_YEAR = 365.25

# Scoring Configuration
# Ladder entries are evaluated top-down and the first match wins:
#   "min"   -> value >= bound
#   "below" -> value <  bound
#   "max"   -> value <= bound
#   no bound -> always matches (floor)
SCORING_CONFIG = {
    "ladders": {
        "credit_score": [
            {"min": 800, "points": 5},
            {"min": 720, "points": 4},
            {"min": 650, "points": 3},
            {"min": 600, "points": 2},
            {"points": 1},
        ],
        "dti": [
            {"below": 0.15, "points": 5},
            {"below": 0.20, "points": 4},
            {"max": 0.35, "points": 3},
            {"max": 0.45, "points": 2},
            {"points": 1},
        ],
        # Monthly income, expressed as annual salary bands / 12
        "income": [
            {"min": 100000 / 12, "points": 5},
            {"min": 75000 / 12, "points": 4},
            {"min": 50000 / 12, "points": 3},
            {"min": 35000 / 12, "points": 2},
            {"points": 1},
        ],
        "housing_gaps": [
            {"max": 0, "points": 5},
            {"max": 1, "points": 3},
            {"points": 1},
        ],
        "spending_ratio": [
            {"below": 0.2, "points": 5},
            {"below": 0.4, "points": 4},
            {"below": 0.6, "points": 3},
            {"below": 0.8, "points": 2},
            {"points": 1},
        ],
        "repayment_lates": [
            {"max": 0, "points": 5},
            {"max": 2, "points": 4},
            {"max": 4, "points": 3},
            {"max": 6, "points": 2},
            {"points": 1},
        ],
        "behavioral_waste": [
            {"max": 0, "points": 5},
            {"max": 2, "points": 3},
            {"points": 1},
        ],
    },

    # Multi-condition ladders (evaluated in code, in this order)
    "adverse_history": {
        "clean_years": 5,  # >= 5 years since last late and no major -> 5
        "recent_clean_years": 2,  # >= 2 years and no major -> 4
        "max_recent_lates": 2,  # <= 2 lates in window -> 3
        "multiple_recent_threshold": 2,  # > 2 lates in window -> "multiple recent"
    },
    "employment": {
        "long_tenure_years": 4,  # -> 5
        "min_tenure_years": 1,  # -> 4
        "self_employed_points": 3,
        "retired_points": 2,
        "default_points": 1,
    },
    "housing": {
        "neutral_points": 3,  # No rent / mortgage signal
        "max_gap_days": 35,
    },

    "delinquency": {
        "lookback_years": 2,
    },

    # Recurring income detection
    "recurrence": {
        "amount_bucket": 10,  # Tolerates +/- 5 noise in recurring amounts
        "min_bucket_size": 2,
        "max_coefficient_of_variation": 0.25,
        "min_occurrences_override": 3,  # Accept noisy buckets with this many members
        # Checked in order; semimonthly must precede biweekly
        "frequency_bands": [
            ("monthly", 25, 35),
            ("semimonthly", 12, 16),
            ("biweekly", 10, 18),
            ("weekly", 5, 9),
        ],
    },

    "income": {
        "periods_per_month": {
            "weekly": 4.33,
            "biweekly": 2.17,
            "semimonthly": 2,
            "monthly": 1,
            "irregular": 1,
        },
        "days_per_month": 30,
        "min_months_for_average": 2,
        "simple_income_months": 24,  # Naive 24-month deposit average
    },

    "behavioral": {
        "waste_income_fraction": 0.2,
    },
}

# Memoization strategy
CACHE_CONFIG = {
    "strategy": "unbounded",  # "unbounded" or "lru"
    "max_entries": 4096,  # Only used by "lru"
}
