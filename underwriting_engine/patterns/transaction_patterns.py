"""
Transaction pattern definitions for the underwriting scorer.
Category sets and free-text regexes used to classify PLAID transactions.
Categories are compared lowercased.
"""

import re

# Income classification (credits or income-labelled debits)
INCOME_PATTERNS = {
    "categories": {"income", "payroll"},
    "detailed_regex": re.compile(r"salary|income", re.IGNORECASE),
}

# Payroll evidence used for employment tenure and self-employment checks
PAYROLL_PATTERNS = {
    "category": "payroll",
    "detailed_regex": re.compile(r"salary", re.IGNORECASE),
    "primary_income_category": "income",
}

# Delinquency evidence
DELINQUENCY_PATTERNS = {
    "late": {
        "categories": {"bank fees"},
        "merchant_regex": re.compile(r"late fee", re.IGNORECASE),
    },
    "major": {
        "description_regex": re.compile(r"charge[- ]off|repossession|bankruptcy", re.IGNORECASE),
    },
}

# Housing payments
HOUSING_PATTERNS = {
    "categories": {"rent", "mortgage"},
}

# Discretionary spend (primary credit category)
SPENDING_PATTERNS = {
    "discretionary_categories": {"travel", "shops", "entertainment"},
}
