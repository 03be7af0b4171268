# product_search/vector/embedding.py

"""Embedding providers used by the vector search backend."""

import logging
from typing import Protocol

from openai import OpenAI

from product_search.config.settings import Settings
from product_search.exceptions import EmbeddingUnavailableError, VectorSearchError

logger = logging.getLogger("product_search.vector")


class EmbeddingProvider(Protocol):
    """Turns text into dense vectors."""

    def embed(self, text: str) -> list[float]:
        ...

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        ...


class OpenAIEmbeddingProvider:
    """Embeddings from the OpenAI API.

    The client is created on first use so that a process without
    an API key can still start (vector search is then disabled).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = Settings.EMBEDDING_MODEL,
    ) -> None:
        self._api_key = (
            api_key if api_key is not None else Settings.OPENAI_API_KEY
        )
        self.model = model
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise EmbeddingUnavailableError("OPENAI_API_KEY is required")
            self._client = OpenAI(api_key=self._api_key)
        return self._client

    def embed(self, text: str) -> list[float]:
        """Embed a single text (one API call)."""
        response = self._get_client().embeddings.create(
            model=self.model,
            input=text,
        )
        if not response.data:
            raise VectorSearchError("No embedding data returned")
        return list(response.data[0].embedding)

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts in one API call, preserving order."""
        if not texts:
            return []
        response = self._get_client().embeddings.create(
            model=self.model,
            input=texts,
        )
        ordered = sorted(response.data, key=lambda item: item.index)
        if len(ordered) != len(texts):
            raise VectorSearchError(
                f"Expected {len(texts)} embeddings, got {len(ordered)}"
            )
        logger.debug("Embedded %d texts with %s", len(texts), self.model)
        return [list(item.embedding) for item in ordered]
