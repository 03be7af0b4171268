# product_search/exceptions.py

"""Exception hierarchy for the search engine."""


class SearchEngineError(Exception):
    """Base class for every error raised by product_search."""


class RequestValidationError(SearchEngineError):
    """A search request (or lookup argument) is malformed."""


class AllSourcesFailedError(SearchEngineError):
    """Every enabled source adapter failed or timed out."""

    def __init__(self, source_ids: list[str]) -> None:
        self.source_ids = source_ids
        super().__init__(
            f"All sources failed: {', '.join(source_ids) or 'none'}"
        )


class SourceTimeoutError(SearchEngineError):
    """A source adapter exceeded its per-call deadline."""

    def __init__(self, source_id: str, timeout: float) -> None:
        self.source_id = source_id
        self.timeout = timeout
        super().__init__(
            f"Source '{source_id}' timed out after {timeout:.1f}s"
        )


class VectorSearchError(SearchEngineError):
    """The embedding provider or the vector index failed."""


class EmbeddingUnavailableError(VectorSearchError):
    """No embedding provider credentials are configured."""


class ProductNotFoundError(SearchEngineError):
    """A product id could not be resolved."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")
