"""
Structural prerequisite checks run by callers before scoring.

The scoring core itself never raises on sparse documents; these checks
exist so the boundary layers can reject obviously wrong uploads.
"""

import logging
from typing import Any

from .normalisation.preprocess import get_path

logger = logging.getLogger(__name__)

PREFI_SIGNAL_KEYS = ("DataPerfection", "DataEnhance", "Offers")


class DocumentValidationError(ValueError):
    """Raised when a document lacks the structure needed for scoring."""

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error
        self.message = message

    def to_dict(self):
        return {"error": self.error, "message": self.message}


def validate_prefi(prefi: Any) -> None:
    if not isinstance(prefi, dict):
        raise DocumentValidationError("Missing data", "Both prefi and plaid data are required")

    if all(prefi.get(key) is None for key in PREFI_SIGNAL_KEYS):
        raise DocumentValidationError(
            "Invalid prefi data",
            "The prefi data appears to be missing required fields "
            "(DataPerfection, DataEnhance, or Offers)",
        )


def validate_plaid(plaid: Any) -> None:
    if not isinstance(plaid, dict):
        raise DocumentValidationError("Missing data", "Both prefi and plaid data are required")

    items = get_path(plaid, "report", "items")
    if items is None:
        items = plaid.get("items")

    if not isinstance(items, list) or len(items) == 0:
        raise DocumentValidationError(
            "Invalid plaid data",
            "The plaid data appears to be missing required fields (items or report.items)",
        )


def validate_documents(prefi: Any, plaid: Any) -> None:
    """
    Check both documents before they reach the scoring core.

    Raises:
        DocumentValidationError: when a document is missing, prefi carries no
            bureau or income signal, or plaid has no item list
    """
    try:
        validate_prefi(prefi)
        validate_plaid(plaid)
    except DocumentValidationError as e:
        logger.warning("Document validation failed: %s - %s", e.error, e.message)
        raise
