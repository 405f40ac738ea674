"""
Normalisation Module for the Underwriting Scorer.

Turns raw PLAID documents into uniform transaction records:
- Preprocessing (resilient field access, numeric coercion, date parsing)
- Flattening items -> accounts -> transactions
- Income vs spend classification
- Account income log and debit report
"""

from .normaliser import (
    Transaction,
    IncomeTransaction,
    Account,
    NormalizedTransactions,
    DebitEntry,
    DebitReport,
    normalize_transaction,
    normalize_transactions,
    get_account_transaction_log,
    get_debits_and_total,
)
from .preprocess import (
    get_path,
    as_list,
    to_number,
    to_float,
    to_text,
    parse_date,
    lower_categories,
    get_plaid_items,
    resolve_as_of,
)

__all__ = [
    # Normaliser
    "Transaction",
    "IncomeTransaction",
    "Account",
    "NormalizedTransactions",
    "DebitEntry",
    "DebitReport",
    "normalize_transaction",
    "normalize_transactions",
    "get_account_transaction_log",
    "get_debits_and_total",
    # Preprocessing utilities
    "get_path",
    "as_list",
    "to_number",
    "to_float",
    "to_text",
    "parse_date",
    "lower_categories",
    "get_plaid_items",
    "resolve_as_of",
]
