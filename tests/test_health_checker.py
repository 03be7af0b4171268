# tests/test_health_checker.py

"""Tests for the source health checker service."""

import unittest
from unittest.mock import MagicMock, patch

from product_search.services.health_checker import (
    HealthChecker,
    HealthResult,
    check_source,
)
from product_search.sources.static_catalog_source import StaticCatalogSource


def _adapter(
    source_id: str = "bestbuy",
    answer: tuple[bool, str] = (True, "HTTP 200"),
) -> MagicMock:
    """Build a stub adapter whose health_check returns *answer*."""
    adapter = MagicMock()
    adapter.source_id = source_id
    adapter.health_check.return_value = answer
    return adapter


class TestCheckSource(unittest.TestCase):
    """Tests for the per-source health check function."""

    def test_ok_status(self) -> None:
        """A fast positive answer is 'ok'."""
        result = check_source(_adapter())
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.source_id, "bestbuy")
        self.assertEqual(result.message, "HTTP 200")
        self.assertGreaterEqual(result.latency_ms, 0)

    def test_down_on_negative_answer(self) -> None:
        """A negative answer is 'down' and keeps the message."""
        result = check_source(_adapter(answer=(False, "HTTP 403")))
        self.assertEqual(result.status, "down")
        self.assertIn("403", result.message)

    def test_down_on_exception(self) -> None:
        """A raised error is 'down' with a truncated message."""
        adapter = _adapter()
        adapter.health_check.side_effect = ConnectionError("x" * 200)
        result = check_source(adapter)
        self.assertEqual(result.status, "down")
        self.assertEqual(len(result.message), 80)

    @patch("product_search.services.health_checker.time.monotonic")
    def test_slow_status(self, mock_monotonic: MagicMock) -> None:
        """A positive answer above the threshold is 'slow'."""
        mock_monotonic.side_effect = [0.0, 6.0]
        result = check_source(_adapter(answer=(True, "")), slow_ms=5000)
        self.assertEqual(result.status, "slow")
        self.assertEqual(result.message, "High latency")
        self.assertAlmostEqual(result.latency_ms, 6000.0)

    def test_catalog_is_healthy(self) -> None:
        """The bundled catalog always reports ok."""
        result = check_source(StaticCatalogSource())
        self.assertEqual(result.status, "ok")
        self.assertIn("24", result.message)


class TestHealthChecker(unittest.IsolatedAsyncioTestCase):
    """Tests for the concurrent checker."""

    async def test_check_all(self) -> None:
        """Every adapter is checked, in order."""
        checker = HealthChecker(
            [
                _adapter("amazon", (False, "credentials not configured")),
                _adapter("bestbuy"),
            ]
        )
        results = await checker.check_all()
        self.assertEqual(len(results), 2)
        self.assertTrue(all(isinstance(r, HealthResult) for r in results))
        self.assertEqual(
            [(r.source_id, r.status) for r in results],
            [("amazon", "down"), ("bestbuy", "ok")],
        )

    async def test_empty(self) -> None:
        self.assertEqual(await HealthChecker([]).check_all(), [])

    @patch(
        "product_search.services.aggregation_engine.Settings.ENABLED_SOURCES",
        ["catalog"],
    )
    def test_defaults_to_enabled_sources(self) -> None:
        checker = HealthChecker()
        self.assertEqual([a.source_id for a in checker.adapters], ["catalog"])


if __name__ == "__main__":
    unittest.main()
