# tests/test_vector_index.py

"""Tests for the in-memory cosine index and metadata filters."""

import unittest

from product_search.vector.vector_index import (
    InMemoryVectorIndex,
    VectorRecord,
    matches_filter,
)


class TestMatchesFilter(unittest.TestCase):
    """Pinecone-style metadata filter evaluation."""

    META = {"category": "computers", "brand": "dell", "price": 750.0, "rating": None}

    def test_bare_equality(self) -> None:
        self.assertTrue(matches_filter(self.META, {"brand": "dell"}))
        self.assertFalse(matches_filter(self.META, {"brand": "hp"}))

    def test_range(self) -> None:
        self.assertTrue(
            matches_filter(self.META, {"price": {"$gte": 500, "$lte": 1000}})
        )
        self.assertFalse(matches_filter(self.META, {"price": {"$gt": 750}}))
        self.assertTrue(matches_filter(self.META, {"price": {"$lt": 751}}))

    def test_missing_value_fails_comparison(self) -> None:
        self.assertFalse(matches_filter(self.META, {"rating": {"$gte": 4}}))
        self.assertFalse(matches_filter(self.META, {"absent": {"$gte": 1}}))

    def test_membership(self) -> None:
        self.assertTrue(
            matches_filter(self.META, {"brand": {"$in": ["dell", "hp"]}})
        )
        self.assertTrue(matches_filter(self.META, {"brand": {"$nin": ["hp"]}}))
        self.assertTrue(matches_filter(self.META, {"brand": {"$ne": "hp"}}))

    def test_and_or(self) -> None:
        self.assertTrue(
            matches_filter(
                self.META,
                {"$or": [{"brand": "hp"}, {"category": {"$eq": "computers"}}]},
            )
        )
        self.assertFalse(
            matches_filter(
                self.META,
                {"$and": [{"brand": "dell"}, {"price": {"$gt": 1000}}]},
            )
        )

    def test_unknown_operator(self) -> None:
        with self.assertRaises(ValueError):
            matches_filter(self.META, {"price": {"$between": [1, 2]}})


class TestInMemoryVectorIndex(unittest.TestCase):
    """Upsert, query and delete."""

    def setUp(self) -> None:
        self.index = InMemoryVectorIndex()
        self.index.upsert(
            [
                VectorRecord("a", [1.0, 0.0, 0.0], {"price": 100.0}),
                VectorRecord("b", [0.8, 0.2, 0.0], {"price": 600.0}),
                VectorRecord("c", [0.0, 1.0, 0.0], {"price": 900.0}),
            ]
        )

    def test_query_orders_by_similarity(self) -> None:
        matches = self.index.query([1.0, 0.0, 0.0], top_k=3)
        self.assertEqual([m.id for m in matches], ["a", "b", "c"])
        self.assertAlmostEqual(matches[0].score, 1.0, places=5)
        self.assertAlmostEqual(matches[2].score, 0.0, places=5)

    def test_top_k(self) -> None:
        self.assertEqual(len(self.index.query([1.0, 0.0, 0.0], top_k=2)), 2)
        self.assertEqual(self.index.query([1.0, 0.0, 0.0], top_k=0), [])

    def test_filter_applied_before_top_k(self) -> None:
        matches = self.index.query(
            [1.0, 0.0, 0.0], top_k=2, filter={"price": {"$gte": 500}}
        )
        self.assertEqual([m.id for m in matches], ["b", "c"])
        self.assertEqual(matches[0].metadata["price"], 600.0)

    def test_upsert_replaces(self) -> None:
        self.index.upsert([VectorRecord("a", [0.0, 0.0, 1.0], {"price": 1.0})])
        self.assertEqual(len(self.index), 3)
        matches = self.index.query([0.0, 0.0, 1.0], top_k=1)
        self.assertEqual(matches[0].id, "a")
        self.assertEqual(matches[0].metadata["price"], 1.0)

    def test_dimension_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            self.index.upsert([VectorRecord("d", [1.0, 0.0], {})])

    def test_zero_vector_tolerated(self) -> None:
        matches = self.index.query([0.0, 0.0, 0.0], top_k=3)
        self.assertEqual(len(matches), 3)

    def test_delete(self) -> None:
        self.index.delete("b")
        self.index.delete("missing")
        self.assertEqual(len(self.index), 2)
        ids = [m.id for m in self.index.query([0.8, 0.2, 0.0], top_k=3)]
        self.assertNotIn("b", ids)

    def test_delete_all(self) -> None:
        self.index.delete_all()
        self.assertEqual(len(self.index), 0)
        self.assertEqual(self.index.query([1.0, 0.0, 0.0], top_k=3), [])

    def test_empty_index(self) -> None:
        self.assertEqual(InMemoryVectorIndex().query([1.0], top_k=5), [])


if __name__ == "__main__":
    unittest.main()
