# product_search/filters/ranker.py

"""Result ordering for every supported sort mode."""

import logging

from product_search.models.product import Availability, ScoredProduct
from product_search.models.search import SortBy

logger = logging.getLogger("product_search.filters")

# Relevance weights; an exact title match also earns the substring score
EXACT_TITLE_WEIGHT = 200.0
TITLE_WEIGHT = 100.0
BRAND_WEIGHT = 75.0
DESCRIPTION_WEIGHT = 50.0
FEATURE_WEIGHT = 25.0
CONFIDENCE_WEIGHT = 10.0
DEAL_SCORE_WEIGHT = 0.5
RATING_WEIGHT = 10.0
IN_STOCK_BONUS = 20.0


class ProductRanker:
    """Sort merged results by the requested mode."""

    @staticmethod
    def relevance_score(item: ScoredProduct, query: str) -> float:
        """Weighted text match plus quality boosts."""
        product = item.product
        needle = query.strip().lower()
        title = product.title.strip().lower()
        score = 0.0

        if needle:
            if needle in title:
                score += TITLE_WEIGHT
            if title == needle:
                score += EXACT_TITLE_WEIGHT
            if needle in product.description.lower():
                score += DESCRIPTION_WEIGHT
            if needle in product.brand.lower():
                score += BRAND_WEIGHT
            if any(needle in f.lower() for f in product.features):
                score += FEATURE_WEIGHT

        score += item.confidence * CONFIDENCE_WEIGHT
        score += item.deal_score * DEAL_SCORE_WEIGHT
        if product.rating:
            score += product.rating * RATING_WEIGHT
        if product.availability is Availability.IN_STOCK:
            score += IN_STOCK_BONUS
        return score

    @staticmethod
    def sort(
        items: list[ScoredProduct],
        sort_by: SortBy,
        query: str = "",
    ) -> list[ScoredProduct]:
        """Return a new list ordered by *sort_by*.

        ``newest`` keeps insertion order; the sort is stable, so
        ties keep insertion order in every mode.
        """
        if sort_by is SortBy.PRICE_LOW:
            return sorted(items, key=lambda i: i.product.price)
        if sort_by is SortBy.PRICE_HIGH:
            return sorted(items, key=lambda i: i.product.price, reverse=True)
        if sort_by is SortBy.RATING:
            return sorted(
                items, key=lambda i: i.product.rating or 0.0, reverse=True
            )
        if sort_by is SortBy.DEAL_SCORE:
            return sorted(items, key=lambda i: i.deal_score, reverse=True)
        if sort_by is SortBy.NEWEST:
            return list(items)

        scores = {
            id(item): ProductRanker.relevance_score(item, query)
            for item in items
        }
        return sorted(items, key=lambda i: scores[id(i)], reverse=True)
