"""
Tests for the Flask scoring service.
"""

import io
import json
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

import score_api
from score_api import app
from underwriting_engine import clear_cache

PREFI = {
    "Offers": [{"Score": "810"}],
    "DataPerfection": {"Name": {"Full": "Sam Lee"}, "Emails": ["sam@example.com"]},
}
PLAID = {"items": [{"accounts": [{
    "account_id": "a1",
    "name": "Checking",
    "transactions": [
        {"date": "2024-01-01", "amount": -2000, "name": "SALARY"},
        {"date": "2024-01-05", "amount": 120, "name": "Utilities"},
        {"date": "2024-01-09", "amount": 480, "name": "Car Repair"},
    ],
}]}]}


class TestScoreApi(unittest.TestCase):
    """Test the HTTP routes."""

    def setUp(self):
        clear_cache()
        self.temp_dir = tempfile.mkdtemp()
        app.config["TESTING"] = True
        app.config["DB_PATH"] = os.path.join(self.temp_dir, "test.db")
        self.client = app.test_client()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_score_success(self):
        response = self.client.post("/api/score", json={"prefi": PREFI, "plaid": PLAID})

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["name"], "Sam Lee")
        self.assertEqual(data["details"]["creditScore"], 5)
        self.assertEqual(data["totalScore"], data["coreScore"] + data["bayesianScore"])

    def test_score_missing_documents(self):
        response = self.client.post("/api/score", json={"prefi": PREFI})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {
            "error": "Missing data",
            "message": "Both prefi and plaid data are required",
        })

    def test_score_non_json_body(self):
        response = self.client.post("/api/score", data="plain text")
        self.assertEqual(response.status_code, 400)

    def test_score_invalid_prefi(self):
        response = self.client.post("/api/score", json={"prefi": {"Other": 1}, "plaid": PLAID})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid prefi data")

    def test_score_empty_prefi_reports_invalid_prefi(self):
        """An empty object is present but carries no bureau signal."""
        response = self.client.post("/api/score", json={"prefi": {}, "plaid": {"items": [{}]}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid prefi data")

    def test_score_invalid_plaid(self):
        response = self.client.post("/api/score", json={"prefi": PREFI, "plaid": {"items": []}})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid plaid data")

    def test_processing_error(self):
        with patch.object(score_api, "calculate_scores", side_effect=RuntimeError("boom")):
            response = self.client.post("/api/score", json={"prefi": PREFI, "plaid": PLAID})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {"error": "Processing error", "message": "boom"})

    def test_persistence_failure_is_not_fatal(self):
        with patch("history_store.ScoreHistoryStore.save", side_effect=OSError("disk full")):
            response = self.client.post("/api/score", json={"prefi": PREFI, "plaid": PLAID})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/history").get_json(), [])

    def test_history_newest_first(self):
        self.client.post("/api/score", json={"prefi": PREFI, "plaid": PLAID})
        other = dict(PREFI, DataPerfection={"Name": {"Full": "Jo Park"}})
        self.client.post("/api/score", json={"prefi": other, "plaid": PLAID})

        response = self.client.get("/api/history")

        self.assertEqual(response.status_code, 200)
        history = response.get_json()
        self.assertEqual([h["name"] for h in history], ["Jo Park", "Sam Lee"])
        self.assertEqual(history[1]["emails"], ["sam@example.com"])
        self.assertEqual(history[1]["details"]["creditScore"], 5)

    def test_score_files(self):
        response = self.client.post(
            "/api/score/files",
            data={
                "prefi": (io.BytesIO(json.dumps(PREFI).encode("utf-8")), "prefi.json"),
                "plaid": (io.BytesIO(json.dumps(PLAID).encode("utf-8")), "plaid.json"),
            },
            content_type="multipart/form-data",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["name"], "Sam Lee")

    def test_score_files_missing_file(self):
        response = self.client.post(
            "/api/score/files",
            data={"prefi": (io.BytesIO(b"{}"), "prefi.json")},
            content_type="multipart/form-data",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Missing files")

    def test_score_files_rejects_non_json_extension(self):
        response = self.client.post(
            "/api/score/files",
            data={
                "prefi": (io.BytesIO(b"{}"), "prefi.txt"),
                "plaid": (io.BytesIO(b"{}"), "plaid.json"),
            },
            content_type="multipart/form-data",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["message"], "Only JSON files are allowed")

    def test_score_files_invalid_json(self):
        response = self.client.post(
            "/api/score/files",
            data={
                "prefi": (io.BytesIO(b"{not json"), "prefi.json"),
                "plaid": (io.BytesIO(json.dumps(PLAID).encode("utf-8")), "plaid.json"),
            },
            content_type="multipart/form-data",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Invalid prefi JSON")

    def test_debits(self):
        response = self.client.post("/api/debits", json={"plaid": PLAID})

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data["totalDebits"], 600)
        self.assertEqual([d["description"] for d in data["allDebits"]], ["Car Repair", "Utilities"])

    def test_debits_invalid(self):
        response = self.client.post("/api/debits", json={})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
