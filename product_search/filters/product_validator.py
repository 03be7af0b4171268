# product_search/filters/product_validator.py

"""Product validation: drop unusable records before filtering."""

import logging

from product_search.models.product import ScoredProduct

logger = logging.getLogger("product_search.filters")


class ProductValidator:
    """Validate products and drop those with missing essential fields."""

    @staticmethod
    def validate(
        items: list[ScoredProduct],
    ) -> tuple[list[ScoredProduct], int]:
        """Drop items with an empty id or title, or a non-positive price.

        Returns the valid items and the count of dropped ones.
        """
        valid: list[ScoredProduct] = []
        dropped = 0

        for item in items:
            product = item.product
            if not product.id or not product.title.strip():
                logger.debug(
                    "Dropped product with empty id/title "
                    "(retailer=%s, url=%s)",
                    product.retailer,
                    product.url,
                )
                dropped += 1
                continue
            if product.price <= 0:
                logger.debug(
                    "Dropped product with zero/negative "
                    "price (title=%s, retailer=%s)",
                    product.title,
                    product.retailer,
                )
                dropped += 1
                continue
            valid.append(item)

        if dropped:
            logger.info(
                "Validation dropped %d invalid products",
                dropped,
            )

        return valid, dropped
