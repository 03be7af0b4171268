# product_search/cli/runner.py

"""Headless CLI runner built on the async orchestrator."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from product_search.config.settings import Settings
from product_search.exceptions import ProductNotFoundError, SearchEngineError
from product_search.models.product import ScoredProduct
from product_search.models.search import SearchResponse
from product_search.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger("product_search.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def resolve_sources(source_csv: str | None) -> list[str]:
    """Validate a comma-separated list of source IDs.

    Returns ``Settings.ENABLED_SOURCES`` when *source_csv* is ``None``.
    Raises ``SystemExit`` on unknown IDs.
    """
    if source_csv is None:
        return list(Settings.ENABLED_SOURCES)

    available = {s["id"] for s in Settings.AVAILABLE_SOURCES}
    requested = [s.strip() for s in source_csv.split(",") if s.strip()]
    unknown = [r for r in requested if r not in available]
    if unknown:
        _err.print(f"[red]Unknown source(s): {', '.join(unknown)}[/red]")
        _err.print(f"[dim]Available: {', '.join(sorted(available))}[/dim]")
        raise SystemExit(1)
    return requested


def build_payload(
    query: str,
    category: str | None = None,
    brand: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    min_rating: float | None = None,
    sort_by: str = "relevance",
    page: int = 1,
    limit: int = Settings.DEFAULT_PAGE_LIMIT,
) -> dict[str, Any]:
    """Assemble the JSON request body from CLI flags."""
    filters = {
        "category": category,
        "brand": brand,
        "minPrice": min_price,
        "maxPrice": max_price,
        "minRating": min_rating,
    }
    return {
        "query": query,
        "filters": {k: v for k, v in filters.items() if v is not None},
        "pagination": {"page": page, "limit": limit},
        "sortBy": sort_by,
    }


def _print_json(data: Any) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _print_table(items: list[ScoredProduct], title: str) -> None:
    """Render a Rich table of products to stdout."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Deal", justify="right")
    table.add_column("Retailer", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, item in enumerate(items, 1):
        p = item.product
        table.add_row(
            str(idx),
            p.title[:60],
            f"{p.currency} {p.price:,.2f}",
            f"{p.rating:.1f}" if p.rating is not None else "—",
            f"{item.deal_score:.0f}",
            p.retailer,
            p.url,
        )

    Console().print(table)


def _report(response: SearchResponse, output_format: str) -> int:
    if not response.success:
        _err.print(f"[red]Invalid request: {response.error}[/red]")
        return 2
    if response.degraded:
        _err.print(
            "[yellow]Live sources unavailable, showing catalog results[/yellow]"
        )
    if not response.items:
        _err.print("[yellow]No products found.[/yellow]")
        return 1

    pagination = response.pagination
    if pagination is not None:
        _err.print(
            f"[green]✓ {len(response.items)} products "
            f"(page {pagination.page}/{pagination.total_pages}, "
            f"{pagination.total} total)[/green]"
        )
    if output_format == "table":
        _print_table(response.items, "Search Results")
    else:
        _print_json(response.to_dict())
    return 0


async def cli_search(
    payload: dict[str, Any],
    source_csv: str | None,
    output_format: str,
) -> int:
    """Run a headless search; exit code 0 ok, 1 empty, 2 invalid."""
    orchestrator = SearchOrchestrator.from_settings(resolve_sources(source_csv))
    await orchestrator.warm_up()

    _err.print(f"[bold]Searching:[/bold] {payload.get('query', '')}")
    response = await orchestrator.handle(payload)
    return _report(response, output_format)


async def run_product_lookup(
    product_id: str,
    similar: bool,
    output_format: str,
) -> int:
    """Print one product's details, or products similar to it."""
    orchestrator = SearchOrchestrator.from_settings()
    try:
        if similar:
            products = await orchestrator.get_similar_products(product_id)
        else:
            products = [await orchestrator.get_product(product_id)]
    except ProductNotFoundError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    except SearchEngineError as exc:
        logger.error("Lookup failed: %s", exc, exc_info=True)
        _err.print(f"[red]Lookup failed: {exc}[/red]")
        return 2

    if not products:
        _err.print("[yellow]No similar products found.[/yellow]")
        return 1
    if output_format == "table":
        _print_table(
            [orchestrator.fallback.score(p) for p in products],
            "Similar Products" if similar else "Product",
        )
    else:
        _print_json([p.to_dict() for p in products])
    return 0


async def run_health_check() -> int:
    """Run connectivity health check on the enabled sources."""
    from product_search.services.health_checker import HealthChecker

    _err.print("[bold]Running source health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Source Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Source", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.source_id, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
