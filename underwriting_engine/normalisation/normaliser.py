"""
Transaction Normaliser for the Underwriting Scorer.

Flattens a PLAID document (items -> accounts -> transactions) into one
uniform, read-only transaction list and classifies each transaction as
income or spend. Every level of the document is optional: missing or
malformed containers are treated as empty, never as errors.

Sign convention follows PLAID: positive amounts are outflows (debits),
negative amounts are inflows (credits).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..cache.memo import memoized
from ..patterns.transaction_patterns import INCOME_PATTERNS
from .preprocess import (
    as_list,
    get_path,
    get_plaid_items,
    lower_categories,
    parse_date,
    to_float,
    to_text,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """A single normalised PLAID transaction."""
    date: Optional[datetime]  # None when the source date is unparsable
    amount: float  # Positive = outflow, negative = inflow
    category: Tuple[str, ...] = ()
    primary_category: str = ""  # credit_category.primary, lowercased
    detailed_category: str = ""  # credit_category.detailed, lowercased
    merchant_name: str = ""
    name: str = ""
    original_description: str = ""
    account_id: str = ""

    @property
    def description(self) -> str:
        return self.name or self.original_description or self.merchant_name or "Unknown"

    @property
    def is_income(self) -> bool:
        if self.amount < 0:
            return True
        if any(c in INCOME_PATTERNS["categories"] for c in self.category):
            return True
        return bool(INCOME_PATTERNS["detailed_regex"].search(self.detailed_category))


@dataclass(frozen=True)
class IncomeTransaction:
    """An income credit, recorded with a positive amount."""
    date: Optional[datetime]
    amount: float
    description: str
    account_id: str = ""

    def to_dict(self) -> Dict:
        return {
            "date": self.date.isoformat() if self.date else None,
            "amount": self.amount,
            "description": self.description,
        }


@dataclass(frozen=True)
class Account:
    """An account and its transactions in source order."""
    id: str
    name: str
    transactions: Tuple[Transaction, ...] = ()


@dataclass(frozen=True)
class NormalizedTransactions:
    """Output of the normaliser shared by every downstream extractor."""
    transactions: Tuple[Transaction, ...] = ()
    accounts: Tuple[Account, ...] = ()
    income_transactions: Tuple[IncomeTransaction, ...] = ()
    dates: Tuple[datetime, ...] = ()

    @property
    def total_income(self) -> float:
        return sum(t.amount for t in self.income_transactions)


@dataclass(frozen=True)
class DebitEntry:
    date: Optional[datetime]
    account: str
    description: str
    amount: float

    def to_dict(self) -> Dict:
        return {
            "date": self.date.isoformat() if self.date else None,
            "account": self.account,
            "description": self.description,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class DebitReport:
    """Outflows sorted by amount (largest first) and their total."""
    all_debits: Tuple[DebitEntry, ...] = ()
    total_debits: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "allDebits": [d.to_dict() for d in self.all_debits],
            "totalDebits": self.total_debits,
        }


def normalize_transaction(raw: Any, account_id: str = "") -> Transaction:
    """
    Build a Transaction from a raw PLAID transaction object.

    Args:
        raw: Transaction dictionary (anything else yields an empty transaction)
        account_id: Owning account identifier

    Returns:
        Normalised Transaction
    """
    if not isinstance(raw, dict):
        raw = {}

    return Transaction(
        date=parse_date(raw.get("date")),
        amount=to_float(raw.get("amount")),
        category=lower_categories(raw.get("category")),
        primary_category=to_text(get_path(raw, "credit_category", "primary")).lower(),
        detailed_category=to_text(get_path(raw, "credit_category", "detailed")).lower(),
        merchant_name=to_text(raw.get("merchant_name")),
        name=to_text(raw.get("name")),
        original_description=to_text(raw.get("original_description")),
        account_id=account_id,
    )


def _account_identity(raw_account: Dict, item_index: int, account_index: int) -> Tuple[str, str]:
    account_id = to_text(raw_account.get("account_id") or raw_account.get("id"))
    if not account_id:
        account_id = f"Account-{item_index}-{account_index}"

    name = to_text(
        raw_account.get("name")
        or raw_account.get("official_name")
        or raw_account.get("mask")
    )
    return account_id, name


@memoized
def normalize_transactions(plaid: Any) -> NormalizedTransactions:
    """
    Flatten every transaction of a PLAID document.

    Traversal order is items -> accounts -> transactions, so transactions
    keep their source order within each account.

    Args:
        plaid: Parsed PLAID document ("report.items" or "items")

    Returns:
        NormalizedTransactions with the flat list, accounts, income log and dates
    """
    transactions: List[Transaction] = []
    accounts: List[Account] = []
    income: List[IncomeTransaction] = []
    dates: List[datetime] = []

    for item_index, item in enumerate(get_plaid_items(plaid)):
        for account_index, raw_account in enumerate(as_list(get_path(item, "accounts"))):
            if not isinstance(raw_account, dict):
                continue

            account_id, account_name = _account_identity(raw_account, item_index, account_index)
            account_transactions = []

            for raw_txn in as_list(raw_account.get("transactions")):
                txn = normalize_transaction(raw_txn, account_id)
                account_transactions.append(txn)

                if txn.date is not None:
                    dates.append(txn.date)

                if txn.is_income:
                    income.append(IncomeTransaction(
                        date=txn.date,
                        amount=abs(txn.amount),
                        description=txn.description,
                        account_id=account_id,
                    ))

            transactions.extend(account_transactions)
            accounts.append(Account(
                id=account_id,
                name=account_name,
                transactions=tuple(account_transactions),
            ))

    logger.debug(
        "Normalised %d transactions across %d accounts (%d income)",
        len(transactions), len(accounts), len(income)
    )

    return NormalizedTransactions(
        transactions=tuple(transactions),
        accounts=tuple(accounts),
        income_transactions=tuple(income),
        dates=tuple(dates),
    )


@memoized
def get_account_transaction_log(plaid: Any) -> Dict[str, Dict]:
    """
    Per-account income log keyed by account id.

    Returns:
        {account_id: {"name": str, "income_transactions": [ {date, amount, description} ]}}
    """
    normalized = normalize_transactions(plaid)
    log: Dict[str, Dict] = {}

    for account in normalized.accounts:
        log[account.id] = {
            "name": account.name or account.id,
            "income_transactions": [
                t.to_dict() for t in normalized.income_transactions
                if t.account_id == account.id
            ],
        }

    return log


@memoized
def get_debits_and_total(plaid: Any) -> DebitReport:
    """
    Report every outflow (positive amount), largest first, with the total.

    Used for the debit summary view only; scoring never reads it.
    """
    normalized = normalize_transactions(plaid)
    debits: List[DebitEntry] = []
    total = 0.0

    for account in normalized.accounts:
        account_name = account.name or "Unknown Account"
        for txn in account.transactions:
            if txn.amount > 0:
                debits.append(DebitEntry(
                    date=txn.date,
                    account=account_name,
                    description=txn.description,
                    amount=txn.amount,
                ))
                total += txn.amount

    debits.sort(key=lambda d: d.amount, reverse=True)
    return DebitReport(all_debits=tuple(debits), total_debits=total)
