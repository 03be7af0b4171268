# product_search/vector/vector_search.py

"""Semantic similarity search over embedded products."""

import asyncio
import logging
from typing import Any

from product_search.config.settings import Settings
from product_search.exceptions import VectorSearchError
from product_search.models.product import Product
from product_search.models.search import SearchFilters, SearchRequest
from product_search.vector.embedding import EmbeddingProvider
from product_search.vector.vector_index import (
    VectorIndex,
    VectorMatch,
    VectorRecord,
)

logger = logging.getLogger("product_search.vector")


class VectorSearchBackend:
    """Embeds queries and products and queries a vector index.

    Returns raw matches only; turning ids back into products is the
    caller's job.
    """

    def __init__(
        self,
        embedder: EmbeddingProvider,
        index: VectorIndex,
        batch_size: int = Settings.VECTOR_UPSERT_BATCH,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.batch_size = batch_size

    @staticmethod
    def build_filter(filters: SearchFilters) -> dict[str, Any] | None:
        """Translate request filters into a metadata filter."""
        clauses: dict[str, Any] = {}
        if filters.category:
            clauses["category"] = {"$eq": filters.category.lower()}
        if filters.brand:
            clauses["brand"] = {"$eq": filters.brand.lower()}
        price: dict[str, float] = {}
        if filters.min_price is not None:
            price["$gte"] = filters.min_price
        if filters.max_price is not None:
            price["$lte"] = filters.max_price
        if price:
            clauses["price"] = price
        if filters.min_rating is not None:
            clauses["rating"] = {"$gte": filters.min_rating}
        return clauses or None

    @staticmethod
    def embedding_text(product: Product) -> str:
        """Text that represents a product in embedding space."""
        parts = [
            product.title,
            product.description,
            product.category,
            product.brand,
        ]
        return " ".join(p for p in parts if p)

    @staticmethod
    def _metadata(product: Product) -> dict[str, Any]:
        return {
            "title": product.title,
            "category": product.category.lower(),
            "brand": product.brand.lower(),
            "price": product.price,
            "rating": product.rating,
            "retailer": product.retailer,
        }

    async def search(
        self,
        request: SearchRequest,
        top_k: int = Settings.VECTOR_TOP_K,
    ) -> list[VectorMatch]:
        """Nearest products to the request query.

        Raises:
            VectorSearchError: when embedding or the index query fails.
        """
        try:
            vector = await asyncio.to_thread(
                self.embedder.embed, request.query
            )
            matches = await asyncio.to_thread(
                self.index.query,
                vector,
                top_k,
                self.build_filter(request.filters),
            )
        except VectorSearchError:
            raise
        except Exception as exc:
            raise VectorSearchError(
                f"Vector search failed: {exc}"
            ) from exc
        logger.info(
            "Vector search for '%s' returned %d matches",
            request.query,
            len(matches),
        )
        return matches

    async def index_products(self, products: list[Product]) -> int:
        """Embed and upsert products in batches; returns the count."""
        indexed = 0
        for start in range(0, len(products), self.batch_size):
            batch = products[start:start + self.batch_size]
            try:
                vectors = await asyncio.to_thread(
                    self.embedder.embed_many,
                    [self.embedding_text(p) for p in batch],
                )
                records = [
                    VectorRecord(
                        id=product.id,
                        values=values,
                        metadata=self._metadata(product),
                    )
                    for product, values in zip(batch, vectors)
                ]
                await asyncio.to_thread(self.index.upsert, records)
            except VectorSearchError:
                raise
            except Exception as exc:
                raise VectorSearchError(
                    f"Indexing failed: {exc}"
                ) from exc
            indexed += len(records)
            logger.debug(
                "Indexed batch %d-%d", start, start + len(records)
            )
        logger.info("Indexed %d products", indexed)
        return indexed

    def delete_product(self, product_id: str) -> None:
        self.index.delete(product_id)

    def delete_all(self) -> None:
        self.index.delete_all()
        logger.info("Vector index cleared")
