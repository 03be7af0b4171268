# product_search/services/search_orchestrator.py

"""Orchestrates cached, multi-tier product searches."""

import asyncio
import logging
from typing import Any

from product_search.config.settings import Settings
from product_search.exceptions import (
    ProductNotFoundError,
    RequestValidationError,
    VectorSearchError,
)
from product_search.models.product import Availability, Product, ScoredProduct
from product_search.models.search import (
    PaginationInfo,
    SearchRequest,
    SearchResponse,
)
from product_search.services.aggregation_engine import (
    AggregationEngine,
    build_adapters,
)
from product_search.sources.scoring import clamp, compute_deal_score
from product_search.sources.static_catalog_source import StaticCatalogSource
from product_search.storage.cache_layer import CacheLayer
from product_search.storage.product_repository import (
    InMemoryProductRepository,
    ProductLookup,
)
from product_search.vector.embedding import OpenAIEmbeddingProvider
from product_search.vector.vector_index import InMemoryVectorIndex, VectorMatch
from product_search.vector.vector_search import VectorSearchBackend

logger = logging.getLogger("product_search.orchestrator")


class SearchOrchestrator:
    """Coordinates caching, aggregation, vector supplement and fallback.

    A search moves through these states::

        cache check -- hit --> return
                    -- miss --> aggregate
        aggregate -- enough results --> rank & paginate
                  -- sparse --> vector supplement --> rank & paginate
        rank & paginate --> cache write --> return

    Any error while aggregating or supplementing serves the static
    catalog instead, marked ``degraded`` and never cached.
    """

    def __init__(
        self,
        engine: AggregationEngine,
        search_cache: CacheLayer,
        product_cache: CacheLayer,
        similar_cache: CacheLayer,
        repository: ProductLookup,
        fallback: StaticCatalogSource,
        vector: VectorSearchBackend | None = None,
        min_results: int = Settings.MIN_RESULTS_BEFORE_VECTOR,
        vector_top_k: int = Settings.VECTOR_TOP_K,
    ) -> None:
        self.engine = engine
        self.search_cache = search_cache
        self.product_cache = product_cache
        self.similar_cache = similar_cache
        self.repository = repository
        self.fallback = fallback
        self.vector = vector
        self.min_results = min_results
        self.vector_top_k = vector_top_k
        self._inflight: dict[str, asyncio.Task[SearchResponse]] = {}

    @classmethod
    def from_settings(
        cls,
        source_ids: list[str] | None = None,
    ) -> "SearchOrchestrator":
        """Build the process-wide instance from ``Settings``."""
        catalog = StaticCatalogSource()
        repository = InMemoryProductRepository(catalog.products)
        vector: VectorSearchBackend | None = None
        if Settings.OPENAI_API_KEY:
            vector = VectorSearchBackend(
                OpenAIEmbeddingProvider(), InMemoryVectorIndex()
            )
        else:
            logger.info("OPENAI_API_KEY not set, vector supplement disabled")
        return cls(
            engine=AggregationEngine(build_adapters(source_ids)),
            search_cache=CacheLayer(
                "search",
                Settings.SEARCH_CACHE_TTL,
                Settings.SEARCH_CACHE_MAX_SIZE,
            ),
            product_cache=CacheLayer(
                "product",
                Settings.PRODUCT_CACHE_TTL,
                Settings.PRODUCT_CACHE_MAX_SIZE,
            ),
            similar_cache=CacheLayer(
                "similar",
                Settings.SIMILAR_CACHE_TTL,
                Settings.SIMILAR_CACHE_MAX_SIZE,
            ),
            repository=repository,
            fallback=catalog,
            vector=vector,
        )

    # ── Search ───────────────────────────────────────────

    async def handle(self, payload: dict[str, Any]) -> SearchResponse:
        """Validate a JSON request body and run the search."""
        try:
            request = SearchRequest.from_dict(payload)
        except RequestValidationError as exc:
            logger.warning("Rejected search request: %s", exc)
            return SearchResponse.failure(str(exc))
        return await self.search(request)

    async def search(self, request: SearchRequest) -> SearchResponse:
        """Serve *request* from cache or compute it.

        Concurrent identical misses share one computation.
        """
        key = request.cache_key()
        cached = self.search_cache.get(key)
        if cached is not None:
            items, pagination = cached
            logger.info("Cache hit for '%s'", request.query)
            return SearchResponse(
                success=True, items=list(items), pagination=pagination
            )

        digest = self.search_cache.cache_key(key)
        task = self._inflight.get(digest)
        if task is None:
            task = asyncio.ensure_future(self._compute(request))
            self._inflight[digest] = task
            task.add_done_callback(
                lambda _t: self._inflight.pop(digest, None)
            )
        else:
            logger.debug("Joining in-flight search for '%s'", request.query)
        return await asyncio.shield(task)

    async def _compute(self, request: SearchRequest) -> SearchResponse:
        try:
            result = await self.engine.aggregate(request)
            self.repository.add_many([i.product for i in result.items])
            items = result.items
            if self.vector is not None and len(items) < self.min_results:
                items = await self._supplement(self.vector, request, items)
        except Exception as exc:
            logger.error(
                "Search for '%s' failed, serving static catalog: %s",
                request.query,
                exc,
                exc_info=True,
            )
            return self._fallback_response(request)

        page, pagination = self.paginate(items, request)
        self.search_cache.set(request.cache_key(), (list(page), pagination))
        return SearchResponse(success=True, items=page, pagination=pagination)

    async def _supplement(
        self,
        vector: VectorSearchBackend,
        request: SearchRequest,
        items: list[ScoredProduct],
    ) -> list[ScoredProduct]:
        """Merge vector hits into a sparse result set."""
        matches = await vector.search(request, self.vector_top_k)
        extra = self._hydrate(matches, {i.product.id for i in items})
        logger.info(
            "Vector supplement added %d candidates for '%s'",
            len(extra),
            request.query,
        )
        return self.engine.refine(items + extra, request)

    def _hydrate(
        self,
        matches: list[VectorMatch],
        known_ids: set[str],
    ) -> list[ScoredProduct]:
        """Resolve match ids to products; similarity becomes confidence."""
        scores = {m.id: m.score for m in matches}
        ids = [m.id for m in matches if m.id not in known_ids]
        return [
            ScoredProduct(
                product=product,
                confidence=clamp(scores[product.id], 0.0, 1.0),
                deal_score=compute_deal_score(
                    rating=product.rating,
                    review_count=product.review_count,
                    on_sale=product.on_sale,
                    in_stock=product.availability is Availability.IN_STOCK,
                ),
            )
            for product in self.repository.get_by_ids(ids)
        ]

    def _fallback_response(self, request: SearchRequest) -> SearchResponse:
        items = self.engine.refine(self.fallback.match(request.query), request)
        page, pagination = self.paginate(items, request)
        return SearchResponse(
            success=True,
            items=page,
            pagination=pagination,
            degraded=True,
        )

    @staticmethod
    def paginate(
        items: list[ScoredProduct],
        request: SearchRequest,
    ) -> tuple[list[ScoredProduct], PaginationInfo]:
        """Slice out the requested page."""
        page = items[request.offset:request.offset + request.limit]
        return page, PaginationInfo.compute(
            len(items), request.page, request.limit
        )

    # ── Products ─────────────────────────────────────────

    async def get_product(self, product_id: str) -> Product:
        """Product detail by id.

        Raises:
            RequestValidationError: for a blank id.
            ProductNotFoundError: when no source knows the id.
        """
        if not product_id or not product_id.strip():
            raise RequestValidationError("Product id is required")
        key = {"product": product_id}
        cached = self.product_cache.get(key)
        if cached is not None:
            return cached

        found = self.repository.get_by_ids([product_id])
        product = found[0] if found else await self._fetch_from_source(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        self.product_cache.set(key, product)
        return product

    async def _fetch_from_source(self, product_id: str) -> Product | None:
        """Ask the source named by the id prefix (``bestbuy-<sku>``)."""
        source_id, sep, native_id = product_id.partition("-")
        if not sep or not native_id:
            return None
        adapter = next(
            (a for a in self.engine.adapters if a.source_id == source_id),
            None,
        )
        if adapter is None:
            return None
        try:
            product = await asyncio.wait_for(
                asyncio.to_thread(adapter.get_by_id, native_id),
                timeout=self.engine.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Lookup of %s timed out after %.1fs",
                product_id,
                self.engine.timeout,
            )
            return None
        if product is not None:
            self.repository.add_many([product])
            logger.info("Fetched %s from source '%s'", product_id, source_id)
        return product

    async def get_similar_products(
        self,
        product_id: str,
        limit: int = Settings.SIMILAR_DEFAULT_LIMIT,
    ) -> list[Product]:
        """Products in the same category or from the same brand.

        An unknown id yields an empty list.
        """
        if not 1 <= limit <= Settings.SIMILAR_MAX_LIMIT:
            raise RequestValidationError(
                f"Limit must be between 1 and {Settings.SIMILAR_MAX_LIMIT}"
            )
        key = {"similar": product_id, "limit": limit}
        cached = self.similar_cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            product = await self.get_product(product_id)
        except ProductNotFoundError:
            logger.info("Similar products requested for unknown id %s", product_id)
            return []
        related = self.repository.related_to(product, limit)
        self.similar_cache.set(key, list(related))
        return related

    async def compare_products(self, product_ids: list[str]) -> dict[str, Any]:
        """Side-by-side summary of 2 to 5 products.

        Unknown ids are skipped; at least two must resolve.
        """
        if not (
            Settings.COMPARE_MIN_PRODUCTS
            <= len(product_ids)
            <= Settings.COMPARE_MAX_PRODUCTS
        ):
            raise RequestValidationError(
                f"Between {Settings.COMPARE_MIN_PRODUCTS} and "
                f"{Settings.COMPARE_MAX_PRODUCTS} product ids are required"
            )

        products: list[Product] = []
        for product_id in product_ids:
            try:
                products.append(await self.get_product(product_id))
            except ProductNotFoundError:
                logger.info("Compare skipped unknown id %s", product_id)
        if len(products) < Settings.COMPARE_MIN_PRODUCTS:
            raise RequestValidationError(
                "At least 2 valid products are required for comparison"
            )

        prices = [p.price for p in products]
        return {
            "products": [p.to_dict() for p in products],
            "comparison": {
                "priceRange": {"min": min(prices), "max": max(prices)},
                # Unrated products count as zero
                "averageRating": (
                    sum(p.rating or 0.0 for p in products) / len(products)
                ),
                "brands": list(dict.fromkeys(p.brand for p in products)),
                "categories": list(
                    dict.fromkeys(p.category for p in products)
                ),
            },
        }

    # ── Lifecycle ────────────────────────────────────────

    async def warm_up(self) -> int:
        """Index the known products into the vector backend."""
        if self.vector is None:
            return 0
        try:
            return await self.vector.index_products(self.repository.all())
        except VectorSearchError as exc:
            logger.warning("Vector warm-up failed: %s", exc, exc_info=True)
            return 0

    def cache_stats(self) -> dict[str, dict[str, Any]]:
        return {
            cache.name: cache.stats()
            for cache in (
                self.search_cache,
                self.product_cache,
                self.similar_cache,
            )
        }
