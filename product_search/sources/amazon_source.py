# product_search/sources/amazon_source.py

"""Source adapter for the Amazon Product Advertising API (PA-API 5)."""

import hashlib
import hmac
import json
from datetime import datetime, timezone
from typing import Any

from product_search.models.product import Availability, Product, ScoredProduct
from product_search.models.search import SearchConstraints
from product_search.sources.base_source import HttpSource
from product_search.sources.scoring import compute_deal_score, infer_category


def _sign(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def _sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class AmazonSource(HttpSource):
    """Amazon catalog via the PA-API 5 ``SearchItems`` operation.

    Every call is a JSON POST signed with AWS Signature Version 4.
    """

    source_id = "amazon"
    label = "Amazon"
    confidence = 0.9

    HOST = "webservices.amazon.com"
    REGION = "us-east-1"
    SERVICE = "ProductAdvertisingAPI"
    PATH = "/paapi5/searchitems"
    TARGET = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1.SearchItems"
    GET_ITEMS_PATH = "/paapi5/getitems"
    GET_ITEMS_TARGET = "com.amazon.paapi5.v1.ProductAdvertisingAPIv1.GetItems"
    MARKETPLACE = "www.amazon.com"
    HEALTH_URL = "https://webservices.amazon.com/paapi5/searchitems"
    RESOURCES = [
        "ItemInfo.Title",
        "ItemInfo.ByLineInfo",
        "ItemInfo.Features",
        "ItemInfo.Classifications",
        "Offers.Listings.Price",
        "Offers.Listings.SavingBasis",
        "Offers.Listings.Availability.Message",
        "Images.Primary.Large",
        "CustomerReviews.Count",
        "CustomerReviews.StarRating",
    ]

    def __init__(
        self,
        access_key: str | None = None,
        secret_key: str | None = None,
        partner_tag: str | None = None,
    ) -> None:
        super().__init__()
        self.access_key = (
            access_key
            if access_key is not None
            else self.settings.AMAZON_ACCESS_KEY
        )
        self.secret_key = (
            secret_key
            if secret_key is not None
            else self.settings.AMAZON_SECRET_KEY
        )
        self.partner_tag = (
            partner_tag
            if partner_tag is not None
            else self.settings.AMAZON_PARTNER_TAG
        )

    def is_configured(self) -> bool:
        return bool(self.access_key and self.secret_key and self.partner_tag)

    # ── Request building ─────────────────────────────────

    def build_payload(
        self, query: str, constraints: SearchConstraints,
    ) -> dict[str, Any]:
        """Build the SearchItems body; prices are sent in cents."""
        payload: dict[str, Any] = {
            "Keywords": query,
            "PartnerTag": self.partner_tag,
            "PartnerType": "Associates",
            "Marketplace": self.MARKETPLACE,
            "ItemCount": min(constraints.max_results, 10),
            "Resources": self.RESOURCES,
        }
        if constraints.brand:
            payload["Brand"] = constraints.brand
        if constraints.min_price is not None:
            payload["MinPrice"] = int(constraints.min_price * 100)
        if constraints.max_price is not None:
            payload["MaxPrice"] = int(constraints.max_price * 100)
        return payload

    def signed_headers(
        self,
        body: str,
        now: datetime | None = None,
        path: str | None = None,
        target: str | None = None,
    ) -> dict[str, str]:
        """Return request headers including the SigV4 Authorization.

        *path* and *target* default to the SearchItems operation.
        """
        path = path or self.PATH
        now = now or datetime.now(timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date_stamp = now.strftime("%Y%m%d")

        headers = {
            "content-encoding": "amz-1.0",
            "content-type": "application/json; charset=utf-8",
            "host": self.HOST,
            "x-amz-date": amz_date,
            "x-amz-target": target or self.TARGET,
        }
        signed_names = ";".join(sorted(headers))
        canonical_headers = "".join(
            f"{name}:{headers[name]}\n" for name in sorted(headers)
        )
        canonical_request = "\n".join(
            [
                "POST",
                path,
                "",
                canonical_headers,
                signed_names,
                _sha256_hex(body),
            ]
        )
        scope = f"{date_stamp}/{self.REGION}/{self.SERVICE}/aws4_request"
        string_to_sign = "\n".join(
            [
                "AWS4-HMAC-SHA256",
                amz_date,
                scope,
                _sha256_hex(canonical_request),
            ]
        )

        k_date = _sign(f"AWS4{self.secret_key}".encode("utf-8"), date_stamp)
        k_region = _sign(k_date, self.REGION)
        k_service = _sign(k_region, self.SERVICE)
        k_signing = _sign(k_service, "aws4_request")
        signature = hmac.new(
            k_signing, string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        headers["Authorization"] = (
            f"AWS4-HMAC-SHA256 Credential={self.access_key}/{scope}, "
            f"SignedHeaders={signed_names}, Signature={signature}"
        )
        return headers

    # ── Response parsing ─────────────────────────────────

    @staticmethod
    def _display(node: Any, *path: str) -> Any:
        """Walk nested PA-API dicts, returning ``None`` on any gap."""
        for key in path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node

    def _parse_item(self, item: dict[str, Any]) -> ScoredProduct:
        """Convert one SearchItems result into a ScoredProduct."""
        listings = self._display(item, "Offers", "Listings") or [{}]
        listing: dict[str, Any] = listings[0] if listings else {}

        price = self._as_float(self._display(listing, "Price", "Amount")) or 0.0
        saving_basis = self._as_float(
            self._display(listing, "SavingBasis", "Amount")
        )
        on_sale = saving_basis is not None and saving_basis > price > 0
        title = str(
            self._display(item, "ItemInfo", "Title", "DisplayValue") or ""
        )
        features = tuple(
            str(f)
            for f in self._display(
                item, "ItemInfo", "Features", "DisplayValues"
            )
            or []
        )
        rating = self._as_float(
            self._display(item, "CustomerReviews", "StarRating", "Value")
        )
        review_count = int(
            self._display(item, "CustomerReviews", "Count") or 0
        )
        availability = Availability.parse(
            self._display(listing, "Availability", "Message")
        )
        category = self._display(
            item,
            "ItemInfo",
            "Classifications",
            "ProductGroup",
            "DisplayValue",
        )

        product = Product(
            id=f"amazon-{item.get('ASIN', '')}",
            title=title,
            price=price,
            retailer=self.label,
            url=str(item.get("DetailPageURL") or ""),
            description=" ".join(features[:2]),
            currency=str(
                self._display(listing, "Price", "Currency") or "USD"
            ),
            brand=str(
                self._display(
                    item, "ItemInfo", "ByLineInfo", "Brand", "DisplayValue"
                )
                or ""
            ),
            category=str(category or infer_category(title, features)),
            rating=rating,
            review_count=review_count,
            availability=availability,
            image_url=str(
                self._display(item, "Images", "Primary", "Large", "URL")
                or ""
            ),
            features=features,
            original_price=saving_basis if on_sale else None,
        )
        deal_score = compute_deal_score(
            rating=rating,
            review_count=review_count,
            on_sale=on_sale,
            rating_weight=20.0,
            popularity_threshold=1000,
            availability_boost=0.0,
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
        """Search Amazon for products matching the query."""
        if not self.is_configured():
            self.logger.info("[amazon] PA-API credentials not configured")
            return []
        try:
            body = json.dumps(
                self.build_payload(query, constraints),
                separators=(",", ":"),
            )
            resp = self._fetch_post(
                f"https://{self.HOST}{self.PATH}",
                self.signed_headers(body),
                body,
            )
            if not resp:
                self.logger.warning("[amazon] No response for '%s'", query)
                return []

            data: dict[str, Any] = json.loads(resp.text)
            for error in data.get("Errors", []):
                self.logger.warning(
                    "[amazon] API error %s: %s",
                    error.get("Code"),
                    error.get("Message"),
                )
            items: list[dict[str, Any]] = (
                self._display(data, "SearchResult", "Items") or []
            )
            results = self._parse_each(items, self._parse_item)
            self.logger.info(
                "[amazon] %d results for '%s'", len(results), query
            )
            return results
        except Exception as e:
            self.logger.error(
                "[amazon] Search failed: %s", e, exc_info=True
            )
            return []

    def get_by_id(self, native_id: str) -> Product | None:
        """Look a product up by ASIN via ``GetItems``."""
        if not self.is_configured() or not native_id:
            return None
        try:
            body = json.dumps(
                {
                    "ItemIds": [native_id],
                    "PartnerTag": self.partner_tag,
                    "PartnerType": "Associates",
                    "Marketplace": self.MARKETPLACE,
                    "Resources": self.RESOURCES,
                },
                separators=(",", ":"),
            )
            resp = self._fetch_post(
                f"https://{self.HOST}{self.GET_ITEMS_PATH}",
                self.signed_headers(
                    body,
                    path=self.GET_ITEMS_PATH,
                    target=self.GET_ITEMS_TARGET,
                ),
                body,
            )
            if not resp:
                return None

            data: dict[str, Any] = json.loads(resp.text)
            items: list[dict[str, Any]] = (
                self._display(data, "ItemsResult", "Items") or []
            )
            if not items:
                for error in data.get("Errors", []):
                    self.logger.warning(
                        "[amazon] GetItems error %s: %s",
                        error.get("Code"),
                        error.get("Message"),
                    )
                return None
            return self._parse_item(items[0]).product
        except Exception as e:
            self.logger.error(
                "[amazon] Lookup of ASIN %s failed: %s",
                native_id,
                e,
                exc_info=True,
            )
            return None
