# product_search/services/health_checker.py

"""Source adapter connectivity health checker."""

import asyncio
import logging
import time
from dataclasses import dataclass

from product_search.config.settings import Settings
from product_search.services.aggregation_engine import build_adapters
from product_search.sources.base_source import SourceAdapter

logger = logging.getLogger("product_search.health")


@dataclass
class HealthResult:
    """Result of a single source health check."""

    source_id: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def check_source(
    adapter: SourceAdapter,
    slow_ms: float = Settings.HEALTH_SLOW_MS,
) -> HealthResult:
    """Check one adapter and classify its answer."""
    start = time.monotonic()
    try:
        ok, message = adapter.health_check()
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            source_id=adapter.source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )
    elapsed_ms = (time.monotonic() - start) * 1000

    if not ok:
        return HealthResult(
            source_id=adapter.source_id,
            status="down",
            latency_ms=elapsed_ms,
            message=message,
        )
    if elapsed_ms > slow_ms:
        return HealthResult(
            source_id=adapter.source_id,
            status="slow",
            latency_ms=elapsed_ms,
            message=message or "High latency",
        )
    return HealthResult(
        source_id=adapter.source_id,
        status="ok",
        latency_ms=elapsed_ms,
        message=message,
    )


class HealthChecker:
    """Runs concurrent health checks against the enabled adapters."""

    def __init__(self, adapters: list[SourceAdapter] | None = None) -> None:
        self.adapters = adapters if adapters is not None else build_adapters()

    async def check_all(self) -> list[HealthResult]:
        """Check every adapter concurrently."""
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(
                    asyncio.to_thread(check_source, adapter)
                    for adapter in self.adapters
                )
            )
        )
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
