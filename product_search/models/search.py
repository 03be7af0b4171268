# product_search/models/search.py

"""Search request / response models and their wire shapes."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from product_search.config.settings import Settings
from product_search.exceptions import RequestValidationError
from product_search.models.product import ScoredProduct


class SortBy(str, Enum):
    """Ordering modes a caller may request."""

    RELEVANCE = "relevance"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    RATING = "rating"
    NEWEST = "newest"
    DEAL_SCORE = "deal_score"


@dataclass(frozen=True)
class SearchFilters:
    """Optional narrowing applied to every tier's results."""

    category: str | None = None
    brand: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_rating: float | None = None

    def is_empty(self) -> bool:
        """True when no filter is set."""
        return all(
            value is None
            for value in (
                self.category,
                self.brand,
                self.min_price,
                self.max_price,
                self.min_rating,
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the set filters (camelCase, ``None`` dropped)."""
        raw = {
            "category": self.category,
            "brand": self.brand,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
            "minRating": self.min_rating,
        }
        return {k: v for k, v in raw.items() if v is not None}


@dataclass(frozen=True)
class SearchConstraints:
    """What a source adapter is told besides the query text."""

    category: str | None = None
    brand: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    max_results: int = Settings.MAX_RESULTS_PER_SOURCE

    @classmethod
    def from_filters(
        cls,
        filters: SearchFilters,
        max_results: int = Settings.MAX_RESULTS_PER_SOURCE,
    ) -> "SearchConstraints":
        """Derive adapter hints from the request filters."""
        return cls(
            category=filters.category,
            brand=filters.brand,
            min_price=filters.min_price,
            max_price=filters.max_price,
            max_results=max_results,
        )


def normalize_query(query: str) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join(query.split())


def clamp_limit(limit: int) -> int:
    """Clamp a page size into ``[1, MAX_PAGE_LIMIT]``."""
    return max(1, min(Settings.MAX_PAGE_LIMIT, limit))


@dataclass(frozen=True)
class SearchRequest:
    """A validated, normalised search request."""

    query: str
    filters: SearchFilters = field(default_factory=SearchFilters)
    page: int = 1
    limit: int = Settings.DEFAULT_PAGE_LIMIT
    sort_by: SortBy = SortBy.RELEVANCE

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", normalize_query(self.query))
        object.__setattr__(self, "limit", clamp_limit(self.limit))
        if not self.query:
            raise RequestValidationError("Query must not be empty")
        if self.page < 1:
            raise RequestValidationError("Page must be >= 1")

    @property
    def offset(self) -> int:
        """Index of the first item on the requested page."""
        return (self.page - 1) * self.limit

    def cache_key(self) -> dict[str, Any]:
        """Structured key covering every field that shapes the output.

        The query is lower-cased so case variants share a slot.
        """
        return {
            "query": self.query.lower(),
            "filters": self.filters.to_dict(),
            "sortBy": self.sort_by.value,
            "page": self.page,
            "limit": self.limit,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "SearchRequest":
        """Parse the JSON request shape.

        Raises:
            RequestValidationError: on any malformed field.
        """
        if not isinstance(payload, dict):
            raise RequestValidationError("Request body must be an object")

        query = payload.get("query")
        if not isinstance(query, str) or not query.strip():
            raise RequestValidationError("Field 'query' is required")

        raw_filters = payload.get("filters") or {}
        if not isinstance(raw_filters, dict):
            raise RequestValidationError("Field 'filters' must be an object")
        filters = _parse_filters(raw_filters)

        raw_pagination = payload.get("pagination") or {}
        if not isinstance(raw_pagination, dict):
            raise RequestValidationError(
                "Field 'pagination' must be an object"
            )
        page = _parse_int(raw_pagination.get("page", 1), "page")
        limit = _parse_int(
            raw_pagination.get("limit", Settings.DEFAULT_PAGE_LIMIT),
            "limit",
        )

        raw_sort = payload.get("sortBy", SortBy.RELEVANCE.value)
        try:
            sort_by = SortBy(raw_sort)
        except ValueError as exc:
            valid = ", ".join(s.value for s in SortBy)
            raise RequestValidationError(
                f"Invalid sortBy '{raw_sort}' (expected one of: {valid})"
            ) from exc

        return cls(
            query=query,
            filters=filters,
            page=page,
            limit=limit,
            sort_by=sort_by,
        )


def _parse_int(value: Any, name: str) -> int:
    """Coerce an integer field, rejecting bools and fractions."""
    if isinstance(value, bool):
        raise RequestValidationError(f"Field '{name}' must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise RequestValidationError(f"Field '{name}' must be an integer")


def _parse_number(value: Any, name: str) -> float | None:
    """Coerce an optional non-negative number field."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise RequestValidationError(f"Field '{name}' must be a number")
    try:
        number = float(value)
    except ValueError as exc:
        raise RequestValidationError(
            f"Field '{name}' must be a number"
        ) from exc
    if math.isnan(number) or number < 0:
        raise RequestValidationError(f"Field '{name}' must be >= 0")
    return number


def _parse_text(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RequestValidationError(f"Field '{name}' must be a string")
    return value.strip() or None


def _parse_filters(raw: dict[str, Any]) -> SearchFilters:
    """Validate the ``filters`` object."""
    min_price = _parse_number(raw.get("minPrice"), "minPrice")
    max_price = _parse_number(raw.get("maxPrice"), "maxPrice")
    # ``rating`` is the older name for the same filter
    min_rating = _parse_number(
        raw.get("minRating", raw.get("rating")), "minRating"
    )

    if (
        min_price is not None
        and max_price is not None
        and min_price > max_price
    ):
        raise RequestValidationError("minPrice must not exceed maxPrice")
    if min_rating is not None and min_rating > 5:
        raise RequestValidationError("minRating must be between 0 and 5")

    return SearchFilters(
        category=_parse_text(raw.get("category"), "category"),
        brand=_parse_text(raw.get("brand"), "brand"),
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
    )


@dataclass(frozen=True)
class PaginationInfo:
    """Pagination metadata for one page of a result set."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def compute(cls, total: int, page: int, limit: int) -> "PaginationInfo":
        """Derive page counts from the full result-set size."""
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SearchResponse:
    """Outcome of one search call."""

    success: bool
    items: list[ScoredProduct] = field(
        default_factory=lambda: list[ScoredProduct]()
    )
    pagination: PaginationInfo | None = None
    degraded: bool = False
    error: str | None = None
    timestamp: str = field(default_factory=_utc_now)

    @classmethod
    def failure(cls, error: str) -> "SearchResponse":
        """A request-level failure (e.g. validation)."""
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON wire shape."""
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "timestamp": self.timestamp,
            }
        return {
            "success": True,
            "data": {
                "items": [item.to_dict() for item in self.items],
                "pagination": (
                    self.pagination.to_dict() if self.pagination else None
                ),
            },
            "degraded": self.degraded,
            "timestamp": self.timestamp,
        }
