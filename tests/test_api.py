from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from api.main import app

CSV = (
    "date,supply,updated\n"
    "2021-01-01T00:00:00Z,19000.00,1\n"
    "2021-01-02T00:00:00Z,19000.00,0\n"
    "2021-01-03T00:00:00Z,19100.50,1\n"
)


class ApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.cache_path = Path(self._tmp.name) / "supply.csv"
        patcher = patch("api.main.CACHE_PATH", self.cache_path)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(app)

    def test_latest(self) -> None:
        self.cache_path.write_text(CSV, encoding="utf-8")
        response = self.client.get("/v1/supply/latest")
        self.assertEqual(200, response.status_code)
        body = response.json()
        self.assertEqual("2021-01-03", body["day"])
        self.assertEqual(19100.5, body["magnitude"])
        self.assertEqual("finalized", body["status"])

    def test_latest_404_when_empty(self) -> None:
        self.assertEqual(404, self.client.get("/v1/supply/latest").status_code)

    def test_history_filters(self) -> None:
        self.cache_path.write_text(CSV, encoding="utf-8")
        items = self.client.get("/v1/supply/history", params={"start": "2021-01-02"}).json()["items"]
        self.assertEqual(["2021-01-02", "2021-01-03"], [item["day"] for item in items])

        items = self.client.get("/v1/supply/history", params={"status": "provisional"}).json()["items"]
        self.assertEqual(["2021-01-02"], [item["day"] for item in items])

    def test_malformed_cache_is_500(self) -> None:
        self.cache_path.write_text("date,supply,updated\nnope,1,1\n", encoding="utf-8")
        self.assertEqual(500, self.client.get("/v1/supply/history").status_code)

    def test_coverage_and_policy(self) -> None:
        self.cache_path.write_text(CSV, encoding="utf-8")
        coverage = self.client.get("/v1/supply/coverage").json()
        self.assertEqual("M2SL", coverage["series_id"])
        self.assertEqual("2020-12-01", coverage["start"])
        policy = self.client.get("/v1/policy").json()
        self.assertEqual(100, policy["request_limit"])
        self.assertEqual(3, policy["breaker"]["max_attempts"])


if __name__ == "__main__":
    unittest.main()
