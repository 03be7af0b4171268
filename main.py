# main.py

"""Entry point for the product_search command-line interface."""

import argparse
import asyncio
import logging
import sys

from product_search.config.logging_config import setup_logging
from product_search.config.settings import Settings
from product_search.models.search import SortBy

logger = logging.getLogger("product_search.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = argparse.ArgumentParser(
        prog="product_search",
        description="Multi-retailer product search with caching and fallback.",
        epilog=f"Available sources: {valid_ids}",
    )
    parser.add_argument("query", nargs="?", default=None, help="Search query.")
    parser.add_argument(
        "-s",
        "--sources",
        default=None,
        help="Comma-separated source IDs (default: SEARCH_SOURCES).",
    )
    parser.add_argument("--category", default=None)
    parser.add_argument("--brand", default=None)
    parser.add_argument(
        "--min-price", type=float, default=None, dest="min_price"
    )
    parser.add_argument(
        "--max-price", type=float, default=None, dest="max_price"
    )
    parser.add_argument(
        "--min-rating", type=float, default=None, dest="min_rating"
    )
    parser.add_argument(
        "--sort",
        choices=[s.value for s in SortBy],
        default=SortBy.RELEVANCE.value,
        dest="sort_by",
    )
    parser.add_argument("--page", type=int, default=1)
    parser.add_argument(
        "--limit", type=int, default=Settings.DEFAULT_PAGE_LIMIT
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--product",
        default=None,
        metavar="ID",
        help="Show a single product by id.",
    )
    parser.add_argument(
        "--similar",
        default=None,
        metavar="ID",
        help="Show products similar to the given id.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on the enabled sources.",
    )
    return parser


def _run_search(args: argparse.Namespace) -> None:
    from product_search.cli.runner import build_payload, cli_search

    payload = build_payload(
        args.query,
        category=args.category,
        brand=args.brand,
        min_price=args.min_price,
        max_price=args.max_price,
        min_rating=args.min_rating,
        sort_by=args.sort_by,
        page=args.page,
        limit=args.limit,
    )
    sys.exit(asyncio.run(cli_search(payload, args.sources, args.output_format)))


def _run_lookup(product_id: str, similar: bool, output_format: str) -> None:
    from product_search.cli.runner import run_product_lookup

    sys.exit(
        asyncio.run(run_product_lookup(product_id, similar, output_format))
    )


def _run_health_check() -> None:
    from product_search.cli.runner import run_health_check

    sys.exit(asyncio.run(run_health_check()))


def main() -> None:
    """Route to search, product lookup or health check."""
    log_file = setup_logging()
    logger.info("product_search starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    if args.health:
        _run_health_check()
    elif args.product:
        _run_lookup(args.product, False, args.output_format)
    elif args.similar:
        _run_lookup(args.similar, True, args.output_format)
    elif args.query is None:
        parser.print_help()
        sys.exit(2)
    else:
        _run_search(args)


if __name__ == "__main__":
    main()
