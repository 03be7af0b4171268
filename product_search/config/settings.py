# product_search/config/settings.py

"""Central configuration for the product_search engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_csv(name: str, default: str) -> list[str]:
    """Read a comma-separated environment variable into a list."""
    raw = os.getenv(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_levels(name: str, default: str) -> dict[str, str]:
    """Read ``component=LEVEL`` pairs, e.g. ``cache=INFO,vector=DEBUG``."""
    levels: dict[str, str] = {}
    for part in _env_csv(name, default):
        component, sep, level = part.partition("=")
        if sep and component.strip() and level.strip():
            levels[component.strip()] = level.strip().upper()
    return levels


class Settings:
    """Central configuration for the product_search engine."""

    # --- HTTP sources ---
    REQUEST_DELAY: float = 0.5          # Seconds between retry attempts
    REQUEST_TIMEOUT: int = 3            # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_RESULTS_PER_SOURCE: int = 10    # Items requested from each source

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 60.0
    MAX_DELAY_MULTIPLIER: int = 4       # Cap for adaptive backoff
    # Per-adapter deadline: every attempt plus the longest back-off sleep
    SOURCE_TIMEOUT: float = MAX_RETRIES * (
        REQUEST_TIMEOUT + REQUEST_DELAY * MAX_DELAY_MULTIPLIER
    )
    HEALTH_SLOW_MS: float = 5000.0

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json",
        "Accept-Language": "en-US,en;q=0.9",
    }

    # --- Caches (TTL in seconds) ---
    SEARCH_CACHE_TTL: float = 10 * 60
    SEARCH_CACHE_MAX_SIZE: int = 500
    PRODUCT_CACHE_TTL: float = 30 * 60
    PRODUCT_CACHE_MAX_SIZE: int = 1000
    PRODUCT_REPOSITORY_MAX_SIZE: int = 5000  # Live products kept for lookups
    SIMILAR_CACHE_TTL: float = 20 * 60
    SIMILAR_CACHE_MAX_SIZE: int = 300
    CACHE_EVICTION_FRACTION: float = 0.1

    # --- Search behaviour ---
    DEFAULT_PAGE_LIMIT: int = 20
    MAX_PAGE_LIMIT: int = 100
    MIN_RESULTS_BEFORE_VECTOR: int = 3  # Below this, run vector supplement
    VECTOR_TOP_K: int = 20
    VECTOR_UPSERT_BATCH: int = 100
    SIMILAR_DEFAULT_LIMIT: int = 5
    SIMILAR_MAX_LIMIT: int = 50
    COMPARE_MIN_PRODUCTS: int = 2
    COMPARE_MAX_PRODUCTS: int = 5

    # --- Credentials ---
    AMAZON_ACCESS_KEY: str = os.getenv("AMAZON_ACCESS_KEY", "")
    AMAZON_SECRET_KEY: str = os.getenv("AMAZON_SECRET_KEY", "")
    AMAZON_PARTNER_TAG: str = os.getenv("AMAZON_PARTNER_TAG", "")
    BESTBUY_API_KEY: str = os.getenv("BESTBUY_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    EMBEDDING_MODEL: str = "text-embedding-ada-002"

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    CATALOG_PATH: Path = (
        BASE_DIR / "product_search" / "data" / "static_catalog.json"
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Logging (per-component levels under product_search.*) ---
    LOG_LEVELS: dict[str, str] = _env_levels(
        "LOG_LEVELS", "cache=INFO,filters=INFO"
    )

    # --- Sources (registry; ENABLED_SOURCES picks the active ones) ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "amazon",
            "label": "Amazon",
            "adapter": "product_search.sources.amazon_source.AmazonSource",
        },
        {
            "id": "bestbuy",
            "label": "Best Buy",
            "adapter": "product_search.sources.bestbuy_source.BestBuySource",
        },
        {
            "id": "catalog",
            "label": "Static Catalog",
            "adapter": (
                "product_search.sources.static_catalog_source."
                "StaticCatalogSource"
            ),
        },
    ]
    ENABLED_SOURCES: list[str] = _env_csv(
        "SEARCH_SOURCES", "amazon,bestbuy,catalog"
    )
