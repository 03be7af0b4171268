# product_search/services/aggregation_engine.py

"""Concurrent fan-out to source adapters and result merging."""

import asyncio
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any

from product_search.config.settings import Settings
from product_search.exceptions import AllSourcesFailedError, SourceTimeoutError
from product_search.filters.deduplicator import ProductDeduplicator
from product_search.filters.product_filter import ProductFilter
from product_search.filters.product_validator import ProductValidator
from product_search.filters.ranker import ProductRanker
from product_search.models.product import ScoredProduct
from product_search.models.search import SearchConstraints, SearchRequest
from product_search.sources.base_source import SourceAdapter

logger = logging.getLogger("product_search.aggregation")


@dataclass
class AggregationResult:
    """Merged, filtered, deduplicated and ranked candidates."""

    items: list[ScoredProduct] = field(
        default_factory=lambda: list[ScoredProduct]()
    )
    failed_sources: list[str] = field(
        default_factory=lambda: list[str]()
    )
    raw_count: int = 0
    invalid_count: int = 0
    excluded_count: int = 0
    deduplicated_count: int = 0


def _load_adapter_class(dotted_path: str) -> type[Any]:
    """Dynamically import an adapter class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def build_adapters(source_ids: list[str] | None = None) -> list[SourceAdapter]:
    """Instantiate the registered adapters whose id is in *source_ids*.

    Defaults to ``Settings.ENABLED_SOURCES``.  Unknown ids are
    logged and skipped.
    """
    wanted = source_ids if source_ids is not None else Settings.ENABLED_SOURCES
    registry = {src["id"]: src for src in Settings.AVAILABLE_SOURCES}
    adapters: list[SourceAdapter] = []
    for source_id in wanted:
        entry = registry.get(source_id)
        if entry is None:
            logger.warning("Unknown source '%s' ignored", source_id)
            continue
        adapter_cls = _load_adapter_class(entry["adapter"])
        adapters.append(adapter_cls())
    return adapters


class AggregationEngine:
    """Runs every adapter concurrently and refines the merged list."""

    def __init__(
        self,
        adapters: list[SourceAdapter],
        timeout: float = Settings.SOURCE_TIMEOUT,
    ) -> None:
        self.adapters = list(adapters)
        self.timeout = timeout

    # ── Fan-out ──────────────────────────────────────────

    async def _run_one(
        self,
        adapter: SourceAdapter,
        query: str,
        constraints: SearchConstraints,
    ) -> list[ScoredProduct]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(adapter.search, query, constraints),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SourceTimeoutError(adapter.source_id, self.timeout) from exc

    async def _fan_out(
        self,
        request: SearchRequest,
    ) -> tuple[list[ScoredProduct], list[str]]:
        """Query every adapter; returns merged items and failed ids."""
        constraints = SearchConstraints.from_filters(request.filters)
        batches = await asyncio.gather(
            *(
                self._run_one(adapter, request.query, constraints)
                for adapter in self.adapters
            ),
            return_exceptions=True,
        )

        merged: list[ScoredProduct] = []
        failed: list[str] = []
        for adapter, batch in zip(self.adapters, batches):
            if isinstance(batch, BaseException):
                failed.append(adapter.source_id)
                logger.error(
                    "Source '%s' failed for query '%s': %s",
                    adapter.source_id,
                    request.query,
                    batch,
                    exc_info=batch,
                )
                continue
            logger.debug(
                "Source '%s' returned %d items", adapter.source_id, len(batch)
            )
            merged.extend(batch)
        return merged, failed

    # ── Refinement ───────────────────────────────────────

    @staticmethod
    def refine(
        items: list[ScoredProduct],
        request: SearchRequest,
        result: AggregationResult | None = None,
    ) -> list[ScoredProduct]:
        """Filter, deduplicate and rank *items* for *request*.

        When *result* is given its counters are updated.
        """
        filtered, excluded = ProductFilter.apply(items, request.filters)
        unique, removed = ProductDeduplicator.deduplicate(filtered)
        ranked = ProductRanker.sort(unique, request.sort_by, request.query)
        if result is not None:
            result.excluded_count += excluded
            result.deduplicated_count += removed
        return ranked

    async def aggregate(self, request: SearchRequest) -> AggregationResult:
        """Fan out, validate and refine.

        Raises:
            AllSourcesFailedError: when there are adapters and every
                one of them raised or timed out.
        """
        merged, failed = await self._fan_out(request)
        if self.adapters and len(failed) == len(self.adapters):
            raise AllSourcesFailedError(failed)

        result = AggregationResult(failed_sources=failed, raw_count=len(merged))
        valid, result.invalid_count = ProductValidator.validate(merged)
        result.items = self.refine(valid, request, result)
        logger.info(
            "Aggregated '%s': %d raw, %d kept, %d failed sources",
            request.query,
            result.raw_count,
            len(result.items),
            len(failed),
        )
        return result
