"""Rank catalog deals against a payer's stored travel interests."""
from typing import Any, Iterable, Optional

DEFAULT_LIMIT = 3


def _as_terms(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        return [v for v in value if isinstance(v, str)]
    return []


def _normalize(terms: Iterable[str]) -> set[str]:
    return {t.strip().lower() for t in terms if t and t.strip()}


def collect_interests(personalization: Optional[dict]) -> set[str]:
    """Interest set from a profile's personalization blob (tripTypes + excitement)."""
    if not isinstance(personalization, dict):
        return set()
    terms = _as_terms(personalization.get("tripTypes")) + _as_terms(personalization.get("excitement"))
    return _normalize(terms)


def product_tags(product: dict) -> set[str]:
    tags = product.get("theme_tags")
    if isinstance(tags, str):
        tags = tags.split(",")
    return _normalize(_as_terms(tags))


def match_count(product: dict, interests: set[str]) -> int:
    return len(product_tags(product) & interests)


def rank_recommendations(products: Iterable[dict], interests: set[str], limit: int = DEFAULT_LIMIT) -> list[dict]:
    """
    Score each product by tag overlap with ``interests`` and keep the top ``limit``.
    Ties keep catalog order.
    """
    scored = [dict(p, match_count=match_count(p, interests)) for p in products]
    scored.sort(key=lambda p: p["match_count"], reverse=True)
    return scored[: max(limit, 0)]
