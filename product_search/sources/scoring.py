# product_search/sources/scoring.py

"""Per-item heuristics shared by every source adapter."""


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into ``[low, high]``."""
    return max(low, min(high, value))


def compute_deal_score(
    *,
    rating: float | None = None,
    review_count: int = 0,
    on_sale: bool = False,
    in_stock: bool = False,
    baseline: float = 50.0,
    sale_boost: float = 20.0,
    rating_weight: float = 15.0,
    popularity_threshold: int = 100,
    popularity_boost: float = 10.0,
    availability_boost: float = 10.0,
) -> float:
    """Heuristic 0-100 value-for-money estimate.

    Starts from *baseline* and adds a sale boost, a rating term
    centred on 3 stars (so a 2-star item loses points), a boost for
    items with more than *popularity_threshold* reviews, and an
    availability boost.
    """
    score = baseline
    if on_sale:
        score += sale_boost
    if rating:
        score += (rating - 3) * rating_weight
    if review_count > popularity_threshold:
        score += popularity_boost
    if in_stock:
        score += availability_boost
    return clamp(score, 0.0, 100.0)


_CATEGORY_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("laptop", "notebook", "computer", "macbook"), "Computers"),
    (("phone", "smartphone", "iphone"), "Cell Phones"),
    (("headphone", "earbud", "speaker", "audio"), "Audio"),
    (("tv", "television", "streaming"), "TV & Home Theater"),
    (("gaming", "xbox", "playstation", "nintendo"), "Video Games"),
    (("camera", "lens"), "Cameras"),
    (("book",), "Books"),
    (("shirt", "pants", "clothing", "jacket"), "Clothing"),
]


def infer_category(title: str, features: tuple[str, ...] = ()) -> str:
    """Guess a category from title and feature text."""
    words = f"{title} {' '.join(features)}".lower().split()
    for keywords, category in _CATEGORY_KEYWORDS:
        if any(word.startswith(kw) for word in words for kw in keywords):
            return category
    return "Electronics"
