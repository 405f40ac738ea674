"""
Score history persistence.
Stores every computed ScoreResult in SQLite with an auto-incrementing id and timestamp.
"""

import json
import logging
import sqlite3
import threading
from contextlib import closing
from typing import Any, Dict, List, Optional

from underwriting_engine import ScoreResult

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS score_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
    core_score INTEGER,
    bayesian_score INTEGER,
    total_score INTEGER,
    simple_monthly_income REAL,
    name TEXT,
    emails TEXT,
    phones TEXT,
    details TEXT,
    request_data TEXT
)
"""

HISTORY_COLUMNS = (
    "id", "timestamp", "core_score", "bayesian_score", "total_score",
    "simple_monthly_income", "name", "emails", "phones", "details",
)


class ScoreHistoryStore:
    """SQLite-backed score history."""

    def __init__(self, db_path: str):
        """
        Initialize the store and create the table if needed.

        Args:
            db_path: SQLite database file path (":memory:" is not shared
                between connections, use a file for multi-request use)
        """
        self.db_path = db_path
        self._lock = threading.Lock()

        with closing(self._connect()) as conn, conn:
            conn.execute(CREATE_TABLE_SQL)
        logger.info("Score history table ready at %s", db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def save(self, result: ScoreResult, request_data: Optional[Dict[str, Any]] = None) -> int:
        """
        Persist a result.

        Args:
            result: Scoring result
            request_data: Original {"prefi", "plaid"} payload

        Returns:
            The new row id
        """
        row = (
            result.core_score,
            result.bayesian_score,
            result.total_score,
            result.simple_monthly_income,
            result.name,
            json.dumps(list(result.emails or [])),
            json.dumps(list(result.phones or [])),
            json.dumps(result.details or {}),
            json.dumps(request_data or {}, default=str),
        )

        with self._lock, closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                """INSERT INTO score_history (
                    core_score, bayesian_score, total_score, simple_monthly_income,
                    name, emails, phones, details, request_data
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                row,
            )
            row_id = cursor.lastrowid

        logger.debug("Saved score history row %d (total=%d)", row_id, result.total_score)
        return row_id

    def list_history(self) -> List[Dict[str, Any]]:
        """All stored results, newest first, with JSON columns decoded."""
        with closing(self._connect()) as conn:
            rows = conn.execute(
                f"SELECT {', '.join(HISTORY_COLUMNS)} FROM score_history "
                "ORDER BY timestamp DESC, id DESC"
            ).fetchall()

        history = []
        for row in rows:
            entry = dict(row)
            entry["emails"] = json.loads(entry["emails"] or "[]")
            entry["phones"] = json.loads(entry["phones"] or "[]")
            entry["details"] = json.loads(entry["details"] or "{}")
            history.append(entry)
        return history
