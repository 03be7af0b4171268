# tests/test_bestbuy_source.py

"""Tests for the Best Buy Products API adapter."""

import json
import unittest
import urllib.parse
from typing import Any
from unittest.mock import MagicMock, patch

from product_search.models.product import Availability
from product_search.models.search import SearchConstraints
from product_search.sources.bestbuy_source import BestBuySource

SESSION_PATH = "product_search.sources.base_source.curl_requests.Session"


def _hit(**overrides: Any) -> dict[str, Any]:
    hit: dict[str, Any] = {
        "sku": 6509650,
        "name": "Dell Inspiron 15 Laptop",
        "url": "https://www.bestbuy.com/site/6509650.p",
        "salePrice": 549.99,
        "regularPrice": 699.99,
        "onSale": True,
        "manufacturer": "Dell",
        "customerReviewAverage": 4.4,
        "customerReviewCount": 250,
        "onlineAvailability": True,
        "inStoreAvailability": True,
        "shortDescription": "15.6-inch FHD laptop",
        "features": [{"feature": "Intel Core i5"}, {"feature": "16GB RAM"}],
        "categoryPath": [{"name": "Computers & Tablets"}, {"name": "Laptops"}],
        "largeFrontImage": "https://img.bbystatic.com/6509650.jpg",
    }
    hit.update(overrides)
    return hit


def _resp(payload: dict[str, Any], status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = json.dumps(payload)
    return resp


class TestBuildUrl(unittest.TestCase):
    """Predicate URL composition."""

    @patch(SESSION_PATH)
    def test_predicates_and_params(self, _mock_session: MagicMock) -> None:
        source = BestBuySource(api_key="KEY")
        url = source.build_url(
            "gaming laptop",
            SearchConstraints(
                brand="Dell", min_price=500, max_price=1000, max_results=5
            ),
        )
        path, _, query = url.partition("?")
        self.assertIn("search=gaming&search=laptop", path)
        self.assertIn("salePrice>=500", path)
        self.assertIn("salePrice<=1000", path)
        self.assertIn("manufacturer=Dell*", path)
        params = urllib.parse.parse_qs(query)
        self.assertEqual(params["apiKey"], ["KEY"])
        self.assertEqual(params["format"], ["json"])
        self.assertEqual(params["pageSize"], ["5"])


class TestParseHit(unittest.TestCase):
    """Mapping API products onto ScoredProduct."""

    @patch(SESSION_PATH)
    def test_fields(self, _mock_session: MagicMock) -> None:
        item = BestBuySource(api_key="KEY")._parse_hit(_hit())
        product = item.product
        self.assertEqual(product.id, "bestbuy-6509650")
        self.assertEqual(product.price, 549.99)
        self.assertEqual(product.original_price, 699.99)
        self.assertEqual(product.brand, "Dell")
        self.assertEqual(product.category, "Laptops")
        self.assertEqual(product.features, ("Intel Core i5", "16GB RAM"))
        self.assertIs(product.availability, Availability.IN_STOCK)
        self.assertEqual(item.confidence, 0.88)
        # 50 + 20 sale + (4.4-3)*15 + 10 reviews + 10 stock
        self.assertAlmostEqual(item.deal_score, 100.0)

    @patch(SESSION_PATH)
    def test_in_store_only_is_limited(self, _mock_session: MagicMock) -> None:
        item = BestBuySource(api_key="KEY")._parse_hit(
            _hit(onlineAvailability=False, inStoreAvailability=True)
        )
        self.assertIs(item.product.availability, Availability.LIMITED)

    @patch(SESSION_PATH)
    def test_not_on_sale(self, _mock_session: MagicMock) -> None:
        item = BestBuySource(api_key="KEY")._parse_hit(
            _hit(
                onSale=False,
                salePrice=699.99,
                customerReviewAverage=None,
                customerReviewCount=0,
                onlineAvailability=False,
                inStoreAvailability=False,
            )
        )
        self.assertIsNone(item.product.original_price)
        self.assertIs(item.product.availability, Availability.OUT_OF_STOCK)
        self.assertEqual(item.deal_score, 50.0)

    @patch(SESSION_PATH)
    def test_category_inferred_without_path(
        self, _mock_session: MagicMock,
    ) -> None:
        item = BestBuySource(api_key="KEY")._parse_hit(_hit(categoryPath=[]))
        self.assertEqual(item.product.category, "Computers")


@patch(SESSION_PATH)
class TestSearch(unittest.TestCase):
    """BestBuySource.search end to end with a mocked session."""

    def test_returns_products(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = _resp(
            {"products": [_hit(), _hit(sku=2, name="Other Laptop")]}
        )

        results = BestBuySource(api_key="KEY").search(
            "laptop", SearchConstraints()
        )
        self.assertEqual(len(results), 2)
        self.assertEqual(results[1].product.id, "bestbuy-2")

    def test_unconfigured_skips_network(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session

        source = BestBuySource(api_key="")
        self.assertFalse(source.is_configured())
        self.assertEqual(source.search("laptop", SearchConstraints()), [])
        mock_session.get.assert_not_called()

    def test_bad_json_returns_empty(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        resp = MagicMock()
        resp.status_code = 200
        resp.text = "<html>not json</html>"
        mock_session.get.return_value = resp

        results = BestBuySource(api_key="KEY").search(
            "laptop", SearchConstraints()
        )
        self.assertEqual(results, [])

    def test_http_failure_returns_empty(
        self, mock_session_cls: MagicMock,
    ) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = _resp({}, status=500)

        results = BestBuySource(api_key="KEY").search(
            "laptop", SearchConstraints()
        )
        self.assertEqual(results, [])

    def test_malformed_hit_skipped(self, mock_session_cls: MagicMock) -> None:
        """A hit that fails to parse does not drop its neighbours."""
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = _resp(
            {
                "products": [
                    _hit(),
                    _hit(sku=7, customerReviewCount="N/A"),
                    _hit(sku=8, categoryPath=["Laptops"]),
                ]
            }
        )

        results = BestBuySource(api_key="KEY").search(
            "laptop", SearchConstraints()
        )
        self.assertEqual(
            [r.product.id for r in results], ["bestbuy-6509650"]
        )


@patch(SESSION_PATH)
class TestGetById(unittest.TestCase):
    """Single-SKU lookup."""

    def test_found(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = _resp(_hit())

        product = BestBuySource(api_key="KEY").get_by_id("6509650")
        assert product is not None
        self.assertEqual(product.id, "bestbuy-6509650")
        self.assertEqual(product.price, 549.99)
        url = mock_session.get.call_args[0][0]
        self.assertIn("/v1/products/6509650.json?", url)
        self.assertIn("apiKey=KEY", url)

    def test_not_found(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mock_session.get.return_value = _resp({}, status=404)

        self.assertIsNone(BestBuySource(api_key="KEY").get_by_id("404404"))

    def test_unconfigured(self, mock_session_cls: MagicMock) -> None:
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session

        self.assertIsNone(BestBuySource(api_key="").get_by_id("6509650"))
        mock_session.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
