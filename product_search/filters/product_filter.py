# product_search/filters/product_filter.py

"""Post-fetch product filtering by the request's filters."""

import logging

from product_search.models.product import ScoredProduct
from product_search.models.search import SearchFilters

logger = logging.getLogger("product_search.filters")


class ProductFilter:
    """Narrow merged results to what the caller asked for."""

    @staticmethod
    def matches(item: ScoredProduct, filters: SearchFilters) -> bool:
        """True when *item* satisfies every set filter.

        Category and brand are case-insensitive substring matches;
        the price range is inclusive; a product with no rating never
        passes a minimum-rating filter.
        """
        product = item.product
        if (
            filters.category
            and filters.category.lower() not in product.category.lower()
        ):
            return False
        if (
            filters.brand
            and filters.brand.lower() not in product.brand.lower()
        ):
            return False
        if filters.min_price is not None and product.price < filters.min_price:
            return False
        if filters.max_price is not None and product.price > filters.max_price:
            return False
        if filters.min_rating is not None and (
            product.rating is None or product.rating < filters.min_rating
        ):
            return False
        return True

    @staticmethod
    def apply(
        items: list[ScoredProduct],
        filters: SearchFilters,
    ) -> tuple[list[ScoredProduct], int]:
        """Drop items outside the filters.

        Returns the kept items and the count of excluded ones.
        """
        if filters.is_empty():
            return list(items), 0

        kept = [item for item in items if ProductFilter.matches(item, filters)]
        excluded = len(items) - len(kept)
        if excluded:
            logger.info(
                "Filtered out %d products not matching %s",
                excluded,
                filters.to_dict(),
            )
        return kept, excluded
