# tests/test_deduplicator.py

"""Tests for ProductDeduplicator cross-source deduplication."""

import unittest

from product_search.filters.deduplicator import ProductDeduplicator
from product_search.models.product import Product, ScoredProduct


def _make(
    title: str,
    brand: str = "Acme",
    confidence: float = 0.8,
    deal_score: float = 50.0,
    pid: str = "",
) -> ScoredProduct:
    """Create a minimal ScoredProduct."""
    return ScoredProduct(
        product=Product(
            id=pid or f"test-{title}-{confidence}-{deal_score}",
            title=title,
            price=10.0,
            retailer="Test",
            brand=brand,
        ),
        confidence=confidence,
        deal_score=deal_score,
    )


class TestNormaliseTitle(unittest.TestCase):

    def test_punctuation_case_whitespace(self) -> None:
        self.assertEqual(
            ProductDeduplicator.normalise_title("  Sony WH-1000XM5,  Black! "),
            "sony wh1000xm5 black",
        )


class TestDeduplicate(unittest.TestCase):
    """ProductDeduplicator.deduplicate behaviour."""

    def test_empty_list(self) -> None:
        kept, removed = ProductDeduplicator.deduplicate([])
        self.assertEqual(kept, [])
        self.assertEqual(removed, 0)

    def test_no_duplicates(self) -> None:
        kept, removed = ProductDeduplicator.deduplicate(
            [_make("Alpha"), _make("Beta")]
        )
        self.assertEqual(len(kept), 2)
        self.assertEqual(removed, 0)

    def test_higher_confidence_wins(self) -> None:
        low = _make("Widget Pro", confidence=0.8, pid="catalog-1")
        high = _make("widget pro!", confidence=0.9, pid="amazon-1")
        kept, removed = ProductDeduplicator.deduplicate([low, high])
        self.assertEqual(removed, 1)
        self.assertEqual(kept[0].product.id, "amazon-1")

    def test_deal_score_breaks_ties(self) -> None:
        a = _make("Widget", deal_score=40.0, pid="a")
        b = _make("Widget", deal_score=80.0, pid="b")
        kept, _removed = ProductDeduplicator.deduplicate([a, b])
        self.assertEqual(kept[0].product.id, "b")

    def test_full_tie_keeps_first(self) -> None:
        a = _make("Widget", pid="a")
        b = _make("Widget", pid="b")
        kept, _removed = ProductDeduplicator.deduplicate([a, b])
        self.assertEqual(kept[0].product.id, "a")

    def test_different_brand_not_merged(self) -> None:
        kept, removed = ProductDeduplicator.deduplicate(
            [_make("Widget", brand="Acme"), _make("Widget", brand="Globex")]
        )
        self.assertEqual(len(kept), 2)
        self.assertEqual(removed, 0)

    def test_brand_case_ignored(self) -> None:
        kept, _removed = ProductDeduplicator.deduplicate(
            [_make("Widget", brand="ACME"), _make("Widget", brand="acme ")]
        )
        self.assertEqual(len(kept), 1)

    def test_survivor_keeps_first_position(self) -> None:
        items = [
            _make("Widget", confidence=0.8, pid="w1"),
            _make("Gadget", pid="g"),
            _make("Widget", confidence=0.9, pid="w2"),
        ]
        kept, _removed = ProductDeduplicator.deduplicate(items)
        self.assertEqual([i.product.id for i in kept], ["w2", "g"])

    def test_keys_unique_after_dedup(self) -> None:
        """No two survivors share a dedup key."""
        titles = ["A", "a", "B!", "b", "C", "A.", "c "]
        items = [_make(t, confidence=0.5 + i / 100) for i, t in enumerate(titles)]
        kept, removed = ProductDeduplicator.deduplicate(items)
        keys = [ProductDeduplicator.dedup_key(i) for i in kept]
        self.assertEqual(len(keys), len(set(keys)))
        self.assertEqual(len(kept) + removed, len(items))

    def test_near_duplicates_not_merged(self) -> None:
        kept, _removed = ProductDeduplicator.deduplicate(
            [_make("Widget Pro 15"), _make("Widget Pro 15 inch")]
        )
        self.assertEqual(len(kept), 2)


if __name__ == "__main__":
    unittest.main()
