"""
Underwriting Batch Processor for scoring many prefi / PLAID document pairs.
Handles JSON files and ZIP archives, records per-application errors and
exports results as pandas DataFrames.
"""

import io
import json
import logging
import os
import re
import traceback
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from underwriting_engine import (
    DocumentValidationError,
    ScoreResult,
    ScoringEngine,
    validate_documents,
)

logger = logging.getLogger(__name__)

# "<ref>_prefi.json" / "<ref>_plaid.json"
DOCUMENT_FILENAME = re.compile(r"^(?P<ref>.+)_(?P<kind>prefi|plaid)\.json$", re.IGNORECASE)


class MissingDocumentError(Exception):
    """Raised when one document of an application pair is absent."""
    pass


@dataclass
class ProcessingError:
    """Details of a processing error."""
    application_ref: str
    error_type: str
    error_message: str
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class ApplicationScore:
    """Scoring result for one application."""
    application_ref: str
    result: ScoreResult


@dataclass
class BatchStats:
    """Statistics for batch processing."""
    total_applications: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0

    # Total score statistics
    score_sum: int = 0
    min_score: int = 0
    max_score: int = 0

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def average_score(self) -> float:
        if self.successful == 0:
            return 0.0
        return self.score_sum / self.successful

    @property
    def processing_time(self) -> float:
        """Total processing time in seconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    @property
    def success_rate(self) -> float:
        """Success rate as percentage."""
        if self.total_applications == 0:
            return 0.0
        return (self.successful / self.total_applications) * 100


@dataclass
class BatchResult:
    """Complete result of batch processing."""
    stats: BatchStats
    results: List[ApplicationScore]
    errors: List[ProcessingError]
    error_summary: Dict[str, int] = field(default_factory=dict)


def _decode_json(content: Any) -> Any:
    """Parse raw file content; already-parsed documents pass through."""
    if not isinstance(content, (bytes, str)):
        return content
    if isinstance(content, str):
        return json.loads(content)

    try:
        return json.loads(content.decode("utf-8"))
    except UnicodeDecodeError:
        # Windows-encoded exports (e.g. byte 0x9c)
        return json.loads(content.decode("cp1252", errors="replace"))


class BatchProcessor:
    """Batch processor for underwriting applications."""

    def __init__(self, as_of: Any = None):
        """
        Initialize the batch processor.

        Args:
            as_of: Reference date shared by every application in the batch
                (defaults to today, midnight UTC)
        """
        self.scoring_engine = ScoringEngine(as_of=as_of)
        logger.info(
            f"Initialized batch processor: as_of={self.scoring_engine.metrics_calculator.as_of.date()}"
        )

    def process_batch(
        self,
        pairs: List[Tuple[str, Any, Any]],
        progress_callback: Optional[Callable[[int, int, str], None]] = None
    ) -> BatchResult:
        """
        Score a batch of applications.

        Args:
            pairs: (application_ref, prefi, plaid) tuples; documents may be
                parsed objects, raw JSON bytes/str, or None when missing
            progress_callback: Optional callback(current, total, message)

        Returns:
            BatchResult with all processing results
        """
        stats = BatchStats(total_applications=len(pairs), start_time=datetime.now())
        results: List[ApplicationScore] = []
        errors: List[ProcessingError] = []
        error_types: Dict[str, int] = {}

        logger.info(f"Starting batch processing of {len(pairs)} applications")

        for idx, (ref, prefi, plaid) in enumerate(pairs):
            if progress_callback:
                progress_callback(idx + 1, len(pairs), f"Processing: {ref}")

            stats.processed += 1
            try:
                result = self._process_single_application(prefi, plaid)
            except Exception as e:
                error = self._classify_error(ref, e)
                errors.append(error)
                stats.failed += 1
                error_types[error.error_type] = error_types.get(error.error_type, 0) + 1
                continue

            results.append(ApplicationScore(application_ref=ref, result=result))
            if stats.successful == 0:
                stats.min_score = stats.max_score = result.total_score
            else:
                stats.min_score = min(stats.min_score, result.total_score)
                stats.max_score = max(stats.max_score, result.total_score)
            stats.successful += 1
            stats.score_sum += result.total_score

        stats.end_time = datetime.now()

        logger.info(
            f"Batch processing complete: {stats.successful}/{stats.total_applications} successful, "
            f"avg total score: {stats.average_score:.1f}, time: {stats.processing_time:.1f}s"
        )

        return BatchResult(
            stats=stats,
            results=results,
            errors=errors,
            error_summary=error_types
        )

    def _process_single_application(self, prefi: Any, plaid: Any) -> ScoreResult:
        if prefi is None or plaid is None:
            missing = "prefi" if prefi is None else "plaid"
            raise MissingDocumentError(f"No {missing} document supplied")

        prefi = _decode_json(prefi)
        plaid = _decode_json(plaid)
        validate_documents(prefi, plaid)

        return self.scoring_engine.score_application(prefi, plaid)

    def _classify_error(self, ref: str, error: Exception) -> ProcessingError:
        if isinstance(error, json.JSONDecodeError):
            error_type, message = "JSON_PARSE_ERROR", f"Invalid JSON: {error}"
            logger.error(f"JSON parse error in {ref}: {error}")
        elif isinstance(error, MissingDocumentError):
            error_type, message = "MISSING_DOCUMENT", str(error)
            logger.error(f"Missing document for {ref}: {error}")
        elif isinstance(error, DocumentValidationError):
            error_type, message = "VALIDATION_ERROR", f"{error.error}: {error.message}"
            logger.error(f"Validation error in {ref}: {error.error}")
        else:
            error_type, message = "PROCESSING_ERROR", f"{type(error).__name__}: {error}"
            logger.error(f"Processing error in {ref}: {traceback.format_exc()}")

        return ProcessingError(application_ref=ref, error_type=error_type, error_message=message)

    def load_pairs_from_files(
        self,
        files: List[Tuple[str, bytes]]
    ) -> List[Tuple[str, Optional[bytes], Optional[bytes]]]:
        """
        Group uploaded files into application pairs.
        ZIP archives are expanded; files are paired by their "<ref>_" prefix.

        Args:
            files: List of (filename, content) tuples

        Returns:
            (application_ref, prefi_bytes, plaid_bytes) tuples sorted by
            reference; a side is None when its file was not supplied
        """
        documents: List[Tuple[str, bytes]] = []
        for filename, content in files:
            if filename.lower().endswith(".zip"):
                logger.info(f"Extracting ZIP archive: {filename}")
                extracted = self._extract_zip(content)
                documents.extend(extracted)
                logger.info(f"Extracted {len(extracted)} files from {filename}")
            else:
                documents.append((filename, content))

        grouped: Dict[str, Dict[str, bytes]] = {}
        for filename, content in documents:
            match = DOCUMENT_FILENAME.match(os.path.basename(filename))
            if not match:
                logger.warning(f"Skipping unsupported file: {filename}")
                continue
            grouped.setdefault(match.group("ref"), {})[match.group("kind").lower()] = content

        pairs = [
            (ref, docs.get("prefi"), docs.get("plaid"))
            for ref, docs in sorted(grouped.items())
        ]
        logger.info(f"Total applications loaded: {len(pairs)}")
        return pairs

    def _extract_zip(self, content: bytes) -> List[Tuple[str, bytes]]:
        """Extract JSON files from a ZIP archive."""
        files = []

        with zipfile.ZipFile(io.BytesIO(content), "r") as zf:
            for name in zf.namelist():
                if name.endswith("/") or not name.lower().endswith(".json"):
                    continue
                files.append((os.path.basename(name), zf.read(name)))

        return files

    def results_to_dataframe(self, results: List[ApplicationScore]):
        """
        Convert scoring results to a pandas DataFrame.

        Args:
            results: List of ApplicationScore objects

        Returns:
            pandas DataFrame, one row per application
        """
        import pandas as pd

        rows = []
        for item in results:
            result = item.result
            details = result.details
            rows.append({
                "Application Ref": item.application_ref,
                "Name": result.name,
                "Core Score": result.core_score,
                "Bayesian Score": result.bayesian_score,
                "Total Score": result.total_score,
                "Simple Monthly Income": round(result.simple_monthly_income, 2),
                "Monthly Income": round(details.get("monthlyIncome", 0.0), 2),
                "Credit Score": details.get("creditScore"),
                "Income Score": details.get("incomeScore"),
                "Employment Score": details.get("employmentScore"),
                "DTI Score": details.get("dtiScore"),
                "Adverse Score": details.get("adverseScore"),
                "Housing Score": details.get("housingScore"),
                "Spending Score": details.get("spendingScore"),
                "Repayment Score": details.get("repaymentScore"),
                "Behavioral Score": details.get("behavioralScore"),
            })

        return pd.DataFrame(rows)

    def errors_to_dataframe(self, errors: List[ProcessingError]):
        """Convert processing errors to a pandas DataFrame."""
        import pandas as pd

        rows = []
        for error in errors:
            rows.append({
                "Application Ref": error.application_ref,
                "Error Type": error.error_type,
                "Error Message": error.error_message,
                "Timestamp": error.timestamp,
            })

        return pd.DataFrame(rows)


def main(paths: List[str], out_csv: str) -> BatchResult:
    files = []
    for path in paths:
        with open(path, "rb") as f:
            files.append((os.path.basename(path), f.read()))

    processor = BatchProcessor()
    batch = processor.process_batch(processor.load_pairs_from_files(files))

    processor.results_to_dataframe(batch.results).to_csv(out_csv, index=False)
    if batch.errors:
        errors_csv = os.path.splitext(out_csv)[0] + "_errors.csv"
        processor.errors_to_dataframe(batch.errors).to_csv(errors_csv, index=False)
        logger.warning(f"{len(batch.errors)} applications failed, see {errors_csv}")

    return batch


if __name__ == "__main__":
    import sys

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    if len(sys.argv) < 3:
        raise SystemExit(
            "Usage:\n"
            "  python batch_processor.py <out.csv> <file_or_zip> [<file_or_zip> ...]\n"
        )

    main(paths=sys.argv[2:], out_csv=sys.argv[1])
