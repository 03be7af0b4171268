# product_search/filters/deduplicator.py

"""Product deduplication across multiple sources."""

import logging
import re

from product_search.models.product import ScoredProduct

logger = logging.getLogger("product_search.filters")


class ProductDeduplicator:
    """Collapse listings of the same physical product.

    Two items are the same product when their normalised title and
    lower-cased brand agree.  Near-duplicates whose titles differ
    (extra words, reordered specs) are not merged.
    """

    _NON_WORD_RE = re.compile(r"[^\w\s]")

    @staticmethod
    def normalise_title(title: str) -> str:
        """Lowercase, strip punctuation, collapse whitespace."""
        stripped = ProductDeduplicator._NON_WORD_RE.sub(
            "", title.lower()
        )
        return " ".join(stripped.split())

    @staticmethod
    def dedup_key(item: ScoredProduct) -> str:
        product = item.product
        return (
            f"{ProductDeduplicator.normalise_title(product.title)}"
            f":{product.brand.strip().lower()}"
        )

    @staticmethod
    def _better(candidate: ScoredProduct, existing: ScoredProduct) -> bool:
        """Higher confidence wins; deal score breaks ties."""
        if candidate.confidence != existing.confidence:
            return candidate.confidence > existing.confidence
        return candidate.deal_score > existing.deal_score

    @staticmethod
    def deduplicate(
        items: list[ScoredProduct],
    ) -> tuple[list[ScoredProduct], int]:
        """Keep one item per dedup key.

        The survivor takes the slot of the first item seen with that
        key, so insertion order is preserved.

        Returns the deduplicated list and the count of removed dupes.
        """
        if not items:
            return [], 0

        seen: dict[str, int] = {}
        kept: list[ScoredProduct] = []
        removed = 0

        for item in items:
            key = ProductDeduplicator.dedup_key(item)
            if key in seen:
                idx = seen[key]
                if ProductDeduplicator._better(item, kept[idx]):
                    kept[idx] = item
                removed += 1
                continue
            seen[key] = len(kept)
            kept.append(item)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate products",
                removed,
            )

        return kept, removed
