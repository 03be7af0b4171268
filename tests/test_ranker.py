# tests/test_ranker.py

"""Tests for ProductRanker ordering."""

import unittest

from product_search.filters.ranker import ProductRanker
from product_search.models.product import Availability, Product, ScoredProduct
from product_search.models.search import SortBy


def _make(
    title: str,
    price: float = 100.0,
    rating: float | None = None,
    deal_score: float = 50.0,
    confidence: float = 0.8,
    brand: str = "",
    description: str = "",
    features: tuple[str, ...] = (),
    availability: Availability = Availability.OUT_OF_STOCK,
) -> ScoredProduct:
    return ScoredProduct(
        product=Product(
            id=f"test-{title}",
            title=title,
            price=price,
            retailer="Test",
            brand=brand,
            description=description,
            rating=rating,
            features=features,
            availability=availability,
        ),
        confidence=confidence,
        deal_score=deal_score,
    )


def _titles(items: list[ScoredProduct]) -> list[str]:
    return [i.product.title for i in items]


class TestRelevance(unittest.TestCase):
    """Relevance scoring and ordering."""

    def test_exact_title_before_substring(self) -> None:
        exact = _make("laptop")
        partial = _make("Laptop Stand")
        ranked = ProductRanker.sort([partial, exact], SortBy.RELEVANCE, "laptop")
        self.assertEqual(_titles(ranked), ["laptop", "Laptop Stand"])

    def test_exact_match_scores_both_bonuses(self) -> None:
        base = ProductRanker.relevance_score(_make("other"), "laptop")
        exact = ProductRanker.relevance_score(_make("Laptop"), "laptop")
        self.assertAlmostEqual(exact - base, 300.0)

    def test_field_weights(self) -> None:
        base = ProductRanker.relevance_score(_make("x"), "acme")
        brand = ProductRanker.relevance_score(_make("x", brand="ACME"), "acme")
        desc = ProductRanker.relevance_score(
            _make("x", description="by acme"), "acme"
        )
        feature = ProductRanker.relevance_score(
            _make("x", features=("Acme chip",)), "acme"
        )
        self.assertAlmostEqual(brand - base, 75.0)
        self.assertAlmostEqual(desc - base, 50.0)
        self.assertAlmostEqual(feature - base, 25.0)

    def test_quality_boosts(self) -> None:
        score = ProductRanker.relevance_score(
            _make(
                "x",
                rating=4.0,
                deal_score=60.0,
                confidence=0.9,
                availability=Availability.IN_STOCK,
            ),
            "nomatch",
        )
        # 0.9*10 + 60*0.5 + 4*10 + 20
        self.assertAlmostEqual(score, 99.0)

    def test_ties_keep_insertion_order(self) -> None:
        items = [_make("a"), _make("b"), _make("c")]
        ranked = ProductRanker.sort(items, SortBy.RELEVANCE, "zzz")
        self.assertEqual(_titles(ranked), ["a", "b", "c"])


class TestDirectSorts(unittest.TestCase):
    """Non-relevance sort modes."""

    def setUp(self) -> None:
        self.items = [
            _make("mid", price=500, rating=4.0, deal_score=60),
            _make("cheap", price=100, rating=None, deal_score=80),
            _make("dear", price=900, rating=4.8, deal_score=40),
        ]

    def test_price_low(self) -> None:
        self.assertEqual(
            _titles(ProductRanker.sort(self.items, SortBy.PRICE_LOW)),
            ["cheap", "mid", "dear"],
        )

    def test_price_high(self) -> None:
        self.assertEqual(
            _titles(ProductRanker.sort(self.items, SortBy.PRICE_HIGH)),
            ["dear", "mid", "cheap"],
        )

    def test_rating_missing_last(self) -> None:
        self.assertEqual(
            _titles(ProductRanker.sort(self.items, SortBy.RATING)),
            ["dear", "mid", "cheap"],
        )

    def test_deal_score(self) -> None:
        self.assertEqual(
            _titles(ProductRanker.sort(self.items, SortBy.DEAL_SCORE)),
            ["cheap", "mid", "dear"],
        )

    def test_newest_keeps_order(self) -> None:
        ranked = ProductRanker.sort(self.items, SortBy.NEWEST)
        self.assertEqual(_titles(ranked), ["mid", "cheap", "dear"])
        self.assertIsNot(ranked, self.items)


if __name__ == "__main__":
    unittest.main()
