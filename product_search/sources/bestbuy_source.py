# product_search/sources/bestbuy_source.py

"""Source adapter for the Best Buy Products API."""

import json
import urllib.parse
from typing import Any

from product_search.models.product import Availability, Product, ScoredProduct
from product_search.models.search import SearchConstraints
from product_search.sources.base_source import HttpSource
from product_search.sources.scoring import compute_deal_score, infer_category


class BestBuySource(HttpSource):
    """Best Buy catalog via the public Products API.

    The API takes its predicates inside the path segment, e.g.
    ``/v1/products(search=laptop&salePrice>=500)``.
    """

    source_id = "bestbuy"
    label = "Best Buy"
    confidence = 0.88

    BASE_URL = "https://api.bestbuy.com/v1"
    HEALTH_URL = "https://api.bestbuy.com/v1/products"
    SHOW_FIELDS = (
        "sku,name,url,salePrice,regularPrice,onSale,image,"
        "largeFrontImage,manufacturer,customerReviewAverage,"
        "customerReviewCount,inStoreAvailability,onlineAvailability,"
        "shortDescription,longDescription,features.feature,categoryPath.name"
    )

    def __init__(self, api_key: str | None = None) -> None:
        super().__init__()
        self.api_key = (
            api_key if api_key is not None else self.settings.BESTBUY_API_KEY
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_url(self, query: str, constraints: SearchConstraints) -> str:
        """Compose the predicate path and query string for a search."""
        predicates = [
            f"search={urllib.parse.quote(term)}" for term in query.split()
        ]
        if constraints.min_price is not None:
            predicates.append(f"salePrice>={constraints.min_price:g}")
        if constraints.max_price is not None:
            predicates.append(f"salePrice<={constraints.max_price:g}")
        if constraints.brand:
            brand = urllib.parse.quote(constraints.brand)
            predicates.append(f"manufacturer={brand}*")

        params = urllib.parse.urlencode(
            {
                "apiKey": self.api_key,
                "format": "json",
                "show": self.SHOW_FIELDS,
                "pageSize": constraints.max_results,
            }
        )
        return f"{self.BASE_URL}/products({'&'.join(predicates)})?{params}"

    def _parse_hit(self, hit: dict[str, Any]) -> ScoredProduct:
        """Convert one API product into a ScoredProduct."""
        sale = self._as_float(hit.get("salePrice"))
        regular = self._as_float(hit.get("regularPrice"))
        price = sale or regular or 0.0
        on_sale = bool(
            hit.get("onSale") and sale and regular and sale < regular
        )
        rating = self._as_float(hit.get("customerReviewAverage"))
        review_count = int(hit.get("customerReviewCount") or 0)

        if hit.get("onlineAvailability"):
            availability = Availability.IN_STOCK
        elif hit.get("inStoreAvailability"):
            availability = Availability.LIMITED
        else:
            availability = Availability.OUT_OF_STOCK

        features = tuple(
            str(f.get("feature", ""))
            for f in hit.get("features") or []
            if isinstance(f, dict) and f.get("feature")
        )
        title = str(hit.get("name") or "")
        category_path = hit.get("categoryPath") or []
        category = (
            str(category_path[-1].get("name", ""))
            if category_path
            else infer_category(title, features)
        )

        product = Product(
            id=f"bestbuy-{hit.get('sku', '')}",
            title=title,
            price=price,
            retailer=self.label,
            url=str(hit.get("url") or ""),
            description=str(
                hit.get("shortDescription")
                or hit.get("longDescription")
                or ""
            ),
            currency="USD",
            brand=str(hit.get("manufacturer") or hit.get("brand") or ""),
            category=category,
            rating=rating,
            review_count=review_count,
            availability=availability,
            image_url=str(
                hit.get("largeFrontImage") or hit.get("image") or ""
            ),
            features=features,
            original_price=regular if on_sale else None,
        )
        deal_score = compute_deal_score(
            rating=rating,
            review_count=review_count,
            on_sale=on_sale,
            in_stock=availability is Availability.IN_STOCK,
            rating_weight=15.0,
            popularity_threshold=100,
        )
        return ScoredProduct(
            product=product,
            confidence=self.confidence,
            deal_score=deal_score,
        )

    def search(
        self,
        query: str,
        constraints: SearchConstraints,
    ) -> list[ScoredProduct]:
        """Search Best Buy for products matching the query."""
        if not self.is_configured():
            self.logger.info("[bestbuy] API key not configured, skipping")
            return []
        try:
            resp = self._fetch_get(
                self.build_url(query, constraints),
                dict(self.settings.DEFAULT_HEADERS),
            )
            if not resp:
                self.logger.warning("[bestbuy] No response for '%s'", query)
                return []

            data: dict[str, Any] = json.loads(resp.text)
            hits: list[dict[str, Any]] = data.get("products", [])
            results = self._parse_each(hits, self._parse_hit)
            self.logger.info(
                "[bestbuy] %d results for '%s'", len(results), query
            )
            return results
        except Exception as e:
            self.logger.error(
                "[bestbuy] Search failed: %s", e, exc_info=True
            )
            return []

    def product_url(self, sku: str) -> str:
        """Single-product endpoint for *sku*."""
        params = urllib.parse.urlencode(
            {"apiKey": self.api_key, "show": self.SHOW_FIELDS}
        )
        return (
            f"{self.BASE_URL}/products/{urllib.parse.quote(sku)}.json"
            f"?{params}"
        )

    def get_by_id(self, native_id: str) -> Product | None:
        """Look a product up by SKU."""
        if not self.is_configured() or not native_id:
            return None
        try:
            resp = self._fetch_get(
                self.product_url(native_id),
                dict(self.settings.DEFAULT_HEADERS),
            )
            if not resp:
                return None
            hit: dict[str, Any] = json.loads(resp.text)
            if not hit.get("sku"):
                return None
            return self._parse_hit(hit).product
        except Exception as e:
            self.logger.error(
                "[bestbuy] Lookup of SKU %s failed: %s",
                native_id,
                e,
                exc_info=True,
            )
            return None
