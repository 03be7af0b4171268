# product_search/storage/product_repository.py

"""Product lookup by id, used for detail pages and vector hydration."""

import logging
from typing import Protocol

from product_search.config.settings import Settings
from product_search.models.product import Product

logger = logging.getLogger("product_search.repository")


class ProductLookup(Protocol):
    """Resolve product ids back into full records."""

    def get_by_ids(self, ids: list[str]) -> list[Product]:
        ...

    def related_to(self, product: Product, limit: int) -> list[Product]:
        ...

    def add_many(self, products: list[Product]) -> int:
        ...

    def all(self) -> list[Product]:
        ...


class InMemoryProductRepository:
    """Dict-backed product store with a size bound.

    Products given at construction (the catalog) are pinned.  Live
    products recorded later are kept up to ``max_size`` in total;
    past that the least recently recorded ones are dropped first.
    """

    def __init__(
        self,
        products: list[Product] | None = None,
        max_size: int = Settings.PRODUCT_REPOSITORY_MAX_SIZE,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._products: dict[str, Product] = {}
        self._max_size = max_size
        self._pinned: set[str] = {p.id for p in products or []}
        if products:
            self.add_many(products)

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def add_many(self, products: list[Product]) -> int:
        """Insert or replace products; returns how many were new.

        A re-recorded live product moves to the newest position.
        """
        added = 0
        for product in products:
            if product.id in self._products:
                if product.id not in self._pinned:
                    del self._products[product.id]
            else:
                added += 1
            self._products[product.id] = product
        self._trim()
        if added:
            logger.debug(
                "Repository now holds %d products (%d new)",
                len(self._products),
                added,
            )
        return added

    def _trim(self) -> None:
        """Drop the oldest unpinned products beyond ``max_size``."""
        excess = len(self._products) - self._max_size
        if excess <= 0:
            return
        oldest = [
            pid for pid in self._products if pid not in self._pinned
        ][:excess]
        for pid in oldest:
            del self._products[pid]
        logger.info("Repository full, dropped %d oldest products", len(oldest))

    def get(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def get_by_ids(self, ids: list[str]) -> list[Product]:
        """Products for *ids* in input order; unknown ids are skipped."""
        return [
            self._products[pid] for pid in ids if pid in self._products
        ]

    def related_to(self, product: Product, limit: int) -> list[Product]:
        """Other products sharing the category or the brand, in store order."""
        category = product.category.strip().lower()
        brand = product.brand.strip().lower()
        related: list[Product] = []
        for candidate in self._products.values():
            if len(related) >= limit:
                break
            if candidate.id == product.id:
                continue
            if (
                category and candidate.category.strip().lower() == category
            ) or (brand and candidate.brand.strip().lower() == brand):
                related.append(candidate)
        return related

    def all(self) -> list[Product]:
        return list(self._products.values())
