# product_search/vector/vector_index.py

"""Nearest-neighbour index interface and an in-process implementation."""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np

logger = logging.getLogger("product_search.vector")


@dataclass(frozen=True)
class VectorMatch:
    """One nearest-neighbour hit."""

    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorRecord:
    """A vector to upsert, with the metadata filters run against."""

    id: str
    values: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    """Minimal surface of a vector database namespace."""

    def upsert(self, records: list[VectorRecord]) -> None:
        ...

    def query(
        self,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        ...

    def delete(self, record_id: str) -> None:
        ...

    def delete_all(self) -> None:
        ...


_COMPARATORS = {
    "$eq": lambda actual, expected: actual == expected,
    "$ne": lambda actual, expected: actual != expected,
    "$gt": lambda actual, expected: actual is not None and actual > expected,
    "$gte": lambda actual, expected: actual is not None and actual >= expected,
    "$lt": lambda actual, expected: actual is not None and actual < expected,
    "$lte": lambda actual, expected: actual is not None and actual <= expected,
    "$in": lambda actual, expected: actual in expected,
    "$nin": lambda actual, expected: actual not in expected,
}


def matches_filter(metadata: dict[str, Any], filter: dict[str, Any]) -> bool:
    """Evaluate a Pinecone-style metadata filter.

    Top-level keys are ANDed.  A field may map to a bare value
    (equality) or to an operator dict such as
    ``{"$gte": 500, "$lte": 1000}``.  ``$and`` / ``$or`` take lists of
    sub-filters.
    """
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches_filter(metadata, sub) for sub in condition):
                return False
            continue
        if key == "$or":
            if not any(matches_filter(metadata, sub) for sub in condition):
                return False
            continue

        actual = metadata.get(key)
        if not isinstance(condition, dict):
            if actual != condition:
                return False
            continue
        for op, expected in condition.items():
            comparator = _COMPARATORS.get(op)
            if comparator is None:
                raise ValueError(f"Unsupported filter operator: {op}")
            try:
                if not comparator(actual, expected):
                    return False
            except TypeError:
                return False
    return True


class InMemoryVectorIndex:
    """Cosine-similarity index held in a numpy matrix.

    Suited to catalogs of a few thousand items; every query scans
    the whole matrix.
    """

    def __init__(self) -> None:
        self._ids: list[str] = []
        self._metadata: list[dict[str, Any]] = []
        self._matrix: np.ndarray | None = None

    def __len__(self) -> int:
        return len(self._ids)

    @staticmethod
    def _normalise(values: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(values, axis=-1, keepdims=True)
        norms[norms == 0] = 1.0
        return values / norms

    def upsert(self, records: list[VectorRecord]) -> None:
        """Insert or replace records by id."""
        if not records:
            return
        positions = {record_id: i for i, record_id in enumerate(self._ids)}
        rows: list[np.ndarray] = (
            list(self._matrix) if self._matrix is not None else []
        )
        for record in records:
            vector = self._normalise(
                np.asarray(record.values, dtype=np.float32)
            )
            if rows and vector.shape != rows[0].shape:
                raise ValueError(
                    f"Dimension mismatch for {record.id}: "
                    f"{vector.shape[0]} != {rows[0].shape[0]}"
                )
            if record.id in positions:
                idx = positions[record.id]
                rows[idx] = vector
                self._metadata[idx] = dict(record.metadata)
            else:
                positions[record.id] = len(self._ids)
                self._ids.append(record.id)
                self._metadata.append(dict(record.metadata))
                rows.append(vector)
        self._matrix = np.vstack(rows)
        logger.debug("Upserted %d vectors (index size %d)", len(records), len(self))

    def query(
        self,
        vector: list[float],
        top_k: int,
        filter: dict[str, Any] | None = None,
    ) -> list[VectorMatch]:
        """Top-k records by cosine similarity that pass *filter*."""
        if self._matrix is None or top_k <= 0:
            return []
        unit = self._normalise(np.asarray(vector, dtype=np.float32))
        scores = self._matrix @ unit

        matches: list[VectorMatch] = []
        for idx in np.argsort(-scores, kind="stable"):
            metadata = self._metadata[idx]
            if filter and not matches_filter(metadata, filter):
                continue
            matches.append(
                VectorMatch(
                    id=self._ids[idx],
                    score=float(scores[idx]),
                    metadata=dict(metadata),
                )
            )
            if len(matches) >= top_k:
                break
        return matches

    def delete(self, record_id: str) -> None:
        if record_id not in self._ids or self._matrix is None:
            return
        idx = self._ids.index(record_id)
        del self._ids[idx]
        del self._metadata[idx]
        remaining = np.delete(self._matrix, idx, axis=0)
        self._matrix = remaining if len(self._ids) else None

    def delete_all(self) -> None:
        self._ids.clear()
        self._metadata.clear()
        self._matrix = None
