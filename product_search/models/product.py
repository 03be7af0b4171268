# product_search/models/product.py

"""Product data models for inter-module data flow."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Availability(str, Enum):
    """Stock state reported by a source."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LIMITED = "limited"
    PREORDER = "preorder"

    @classmethod
    def parse(cls, value: Any) -> "Availability":
        """Map a free-form availability string onto the enum.

        Unknown or empty values default to ``IN_STOCK``.
        """
        if isinstance(value, Availability):
            return value
        text = str(value or "").strip().lower().replace(" ", "_")
        if not text:
            return cls.IN_STOCK
        for member in cls:
            if member.value == text:
                return member
        if "out_of_stock" in text or "unavailable" in text:
            return cls.OUT_OF_STOCK
        if "limited" in text or "only" in text:
            return cls.LIMITED
        if "preorder" in text or "pre-order" in text:
            return cls.PREORDER
        return cls.IN_STOCK


@dataclass(frozen=True)
class Product:
    """A single product record produced by a source.

    ``id`` is namespaced by source (``amazon-<asin>``,
    ``bestbuy-<sku>``, ``catalog-<n>``) so ids never collide
    across sources.
    """

    id: str
    title: str
    price: float
    retailer: str
    url: str = ""
    description: str = ""
    currency: str = "USD"
    brand: str = ""
    category: str = ""
    rating: float | None = None
    review_count: int = 0
    availability: Availability = Availability.IN_STOCK
    image_url: str = ""
    features: tuple[str, ...] = ()
    original_price: float | None = None

    @property
    def on_sale(self) -> bool:
        """True when a higher pre-sale price is known."""
        return (
            self.original_price is not None
            and self.original_price > self.price > 0
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase wire shape."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "originalPrice": self.original_price,
            "currency": self.currency,
            "brand": self.brand,
            "category": self.category,
            "rating": self.rating,
            "reviewCount": self.review_count,
            "availability": self.availability.value,
            "retailer": self.retailer,
            "retailerUrl": self.url,
            "imageUrl": self.image_url,
            "features": list(self.features),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        """Build a Product from the camelCase wire shape."""
        rating = data.get("rating")
        original = data.get("originalPrice")
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            price=float(data.get("price") or 0.0),
            retailer=str(data.get("retailer", "")),
            url=str(data.get("retailerUrl") or data.get("url") or ""),
            description=str(data.get("description") or ""),
            currency=str(data.get("currency") or "USD"),
            brand=str(data.get("brand") or ""),
            category=str(data.get("category") or ""),
            rating=float(rating) if rating is not None else None,
            review_count=int(data.get("reviewCount") or 0),
            availability=Availability.parse(data.get("availability")),
            image_url=str(data.get("imageUrl") or ""),
            features=tuple(str(f) for f in data.get("features") or ()),
            original_price=(
                float(original) if original is not None else None
            ),
        )


@dataclass(frozen=True)
class ScoredProduct:
    """A Product plus the per-request scores the engine ranks by."""

    product: Product
    confidence: float
    deal_score: float

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the wire shape (product fields + scores)."""
        data = self.product.to_dict()
        data["confidence"] = self.confidence
        data["dealScore"] = self.deal_score
        return data
