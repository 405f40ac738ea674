"""
Tests for the SQLite score history.
"""

import os
import shutil
import sqlite3
import tempfile
import unittest

from history_store import ScoreHistoryStore
from underwriting_engine import ScoreResult


class TestScoreHistoryStore(unittest.TestCase):
    """Test persistence and retrieval of score results."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "history.db")
        self.store = ScoreHistoryStore(self.db_path)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _result(self, total, name="Alex Smith"):
        return ScoreResult(
            core_score=total - 10,
            bayesian_score=10,
            total_score=total,
            simple_monthly_income=250.0,
            name=name,
            emails=["alex@example.com"],
            phones=[],
            details={"creditScore": 4, "yearsSinceLastLate": None},
        )

    def test_save_returns_row_id(self):
        first = self.store.save(self._result(30))
        second = self.store.save(self._result(31))
        self.assertEqual(second, first + 1)

    def test_history_newest_first(self):
        self.store.save(self._result(30, name="First"))
        self.store.save(self._result(35, name="Second"))

        history = self.store.list_history()

        self.assertEqual([h["name"] for h in history], ["Second", "First"])
        self.assertEqual(history[0]["total_score"], 35)

    def test_json_columns_decoded(self):
        self.store.save(self._result(30))
        entry = self.store.list_history()[0]

        self.assertEqual(entry["emails"], ["alex@example.com"])
        self.assertEqual(entry["phones"], [])
        self.assertEqual(entry["details"], {"creditScore": 4, "yearsSinceLastLate": None})
        self.assertIsNotNone(entry["timestamp"])
        self.assertNotIn("request_data", entry)

    def test_request_data_stored(self):
        self.store.save(self._result(30), request_data={"prefi": {"Offers": []}, "plaid": {}})

        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute("SELECT request_data FROM score_history").fetchone()
        finally:
            conn.close()
        self.assertIn('"Offers"', row[0])

    def test_reopen_existing_database(self):
        self.store.save(self._result(30))
        reopened = ScoreHistoryStore(self.db_path)
        self.assertEqual(len(reopened.list_history()), 1)


if __name__ == "__main__":
    unittest.main()
