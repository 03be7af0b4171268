# product_search/sources/static_catalog_source.py

"""Offline source backed by the bundled JSON catalog."""

import json
import logging
import re
from pathlib import Path
from typing import Any

from product_search.config.settings import Settings
from product_search.models.product import Availability, Product, ScoredProduct
from product_search.models.search import SearchConstraints
from product_search.sources.base_source import SourceAdapter
from product_search.sources.scoring import compute_deal_score

logger = logging.getLogger("product_search.catalog")

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def load_catalog(path: Path | None = None) -> list[Product]:
    """Read the catalog JSON file into Product records."""
    catalog_path = path or Settings.CATALOG_PATH
    with open(catalog_path, encoding="utf-8") as f:
        raw: list[dict[str, Any]] = json.load(f)
    products = [Product.from_dict(item) for item in raw]
    logger.debug("Loaded %d catalog products from %s", len(products), catalog_path)
    return products


class StaticCatalogSource(SourceAdapter):
    """In-memory catalog that never touches the network.

    It is both a regular source and the last-resort fallback, so
    it must stay cheap and must not raise.
    """

    source_id = "catalog"
    label = "Static Catalog"
    confidence = 0.8

    def __init__(self, products: list[Product] | None = None) -> None:
        super().__init__()
        self._products: list[Product] = (
            list(products) if products is not None else load_catalog()
        )

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    def score(self, product: Product) -> ScoredProduct:
        """Attach catalog confidence and a deal score."""
        return ScoredProduct(
            product=product,
            confidence=self.confidence,
            deal_score=compute_deal_score(
                rating=product.rating,
                review_count=product.review_count,
                on_sale=product.on_sale,
                in_stock=product.availability is Availability.IN_STOCK,
                popularity_threshold=500,
            ),
        )

    @staticmethod
    def _haystack(product: Product) -> str:
        return " ".join(
            [
                product.title,
                product.description,
                product.brand,
                product.category,
                *product.features,
            ]
        ).lower()

    @staticmethod
    def _within(product: Product, constraints: SearchConstraints) -> bool:
        if (
            constraints.min_price is not None
            and product.price < constraints.min_price
        ):
            return False
        if (
            constraints.max_price is not None
            and product.price > constraints.max_price
        ):
            return False
        if (
            constraints.brand
            and constraints.brand.lower() not in product.brand.lower()
        ):
            return False
        if (
            constraints.category
            and constraints.category.lower() not in product.category.lower()
        ):
            return False
        return True

    def match(
        self,
        query: str,
        constraints: SearchConstraints | None = None,
        limit: int | None = None,
    ) -> list[ScoredProduct]:
        """Keyword-match the catalog.

        A product matches when any query token appears in its text;
        more matching tokens rank earlier.  An empty query matches
        everything.
        """
        tokens = [t for t in _TOKEN_RE.findall(query.lower()) if len(t) > 1]
        constraints = constraints or SearchConstraints()

        hits: list[tuple[int, Product]] = []
        for product in self._products:
            if not self._within(product, constraints):
                continue
            haystack = self._haystack(product)
            matched = sum(1 for t in tokens if t in haystack)
            if tokens and not matched:
                continue
            hits.append((matched, product))

        hits.sort(key=lambda pair: pair[0], reverse=True)
        selected = [product for _count, product in hits]
        if limit is not None:
            selected = selected[:limit]
        return [self.score(p) for p in selected]

    def search(
        self,
        query: str,
        constraints: SearchConstraints,
    ) -> list[ScoredProduct]:
        """Search the catalog for products matching the query."""
        try:
            results = self.match(query, constraints, constraints.max_results)
            self.logger.info(
                "[catalog] %d results for '%s'", len(results), query
            )
            return results
        except Exception as e:
            self.logger.error(
                "[catalog] Search failed: %s", e, exc_info=True
            )
            return []

    def health_check(self) -> tuple[bool, str]:
        return bool(self._products), f"{len(self._products)} products"
