"""
Header Resolver
Maps free-form column headers onto the canonical gift box fields.
"""
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Any

from services.errors import FileFormatError

# Lower-cased header text -> canonical field
HEADER_ALIASES: Dict[str, str] = {
    "name": "name",
    "product name": "name",
    "product_name": "name",
    "title": "name",

    "description": "description",
    "desc": "description",
    "details": "description",

    "price": "price",
    "price in inr": "price",
    "priceinr": "price",
    "price_inr": "price",
    "cost": "price",

    "image": "image",
    "image url": "image",
    "image_url": "image",
    "main image": "image",
    "main_image": "image",
    "primary image": "image",

    "badge": "badge",
    "tag": "badge",
    "label": "badge",

    "rating": "rating",
    "stars": "rating",
    "score": "rating",

    "reviews": "reviews",
    "review count": "reviews",
    "review_count": "reviews",
    "total reviews": "reviews",

    "iswishlisted": "isWishlisted",
    "is wishlisted": "isWishlisted",
    "is_wishlisted": "isWishlisted",
    "wishlisted": "isWishlisted",

    "issoldout": "isSoldOut",
    "is sold out": "isSoldOut",
    "is_sold_out": "isSoldOut",
    "sold out": "isSoldOut",
    "soldout": "isSoldOut",
    "out of stock": "isSoldOut",

    "category": "category",
    "cat": "category",
    "type": "category",
    "product type": "category",
    "product_type": "category",

    "images": "images",
    "gallery": "images",
    "gallery images": "images",
    "gallery_images": "images",
    "additional images": "images",
    "additional_images": "images",
}

# Columns a gift box sheet must carry; the rest have defaults
REQUIRED_FIELDS: tuple[str, ...] = ("name", "description", "price", "image", "rating")
OPTIONAL_FIELDS: tuple[str, ...] = (
    "badge", "reviews", "isWishlisted", "isSoldOut", "category", "images",
)

# Carousel sheets accept exactly these headers (no other aliases)
CAROUSEL_HEADER_ALIASES: Dict[str, str] = {
    "url": "image",
    "image": "image",
    "image url": "image",
    "title": "title",
    "description": "description",
}
CAROUSEL_REQUIRED_FIELDS: tuple[str, ...] = ("image", "title", "description")


def canonical_header(header: Optional[Any]) -> str:
    """Canonical field for one header; unknown headers come back lower-cased."""
    if header is None:
        return ""
    key = str(header).strip().lower()
    return HEADER_ALIASES.get(key, key)


def resolve_headers(headers: Sequence[Any]) -> Dict[str, int]:
    """
    Map canonical field -> 0-based column index.

    Blank headers are skipped; when two columns resolve to the same field the
    left-most one wins.
    """
    mapping: Dict[str, int] = {}
    for index, header in enumerate(headers):
        key = canonical_header(header)
        if not key or key in mapping:
            continue
        mapping[key] = index
    return mapping


def missing_required(mapping: Mapping[str, int], required: Iterable[str] = REQUIRED_FIELDS) -> List[str]:
    return [field for field in required if field not in mapping]


def require_headers(headers: Sequence[Any]) -> Dict[str, int]:
    """Resolve gift box headers, failing the whole file when a required column is absent."""
    mapping = resolve_headers(headers)
    missing = missing_required(mapping)
    if missing:
        raise FileFormatError(
            f"Missing required columns: {', '.join(missing)}. "
            f"Expected headers: {', '.join(REQUIRED_FIELDS)} "
            f"(optional: {', '.join(OPTIONAL_FIELDS)})"
        )
    return mapping


def resolve_carousel_headers(headers: Sequence[Any]) -> Dict[str, int]:
    """Resolve the three carousel columns or reject the sheet."""
    mapping: Dict[str, int] = {}
    for index, header in enumerate(headers):
        key = str(header).strip().lower() if header is not None else ""
        field = CAROUSEL_HEADER_ALIASES.get(key)
        if field and field not in mapping:
            mapping[field] = index

    if missing_required(mapping, CAROUSEL_REQUIRED_FIELDS):
        raise FileFormatError(
            "Missing required headers. Expect: url (or image/image url), title, description."
        )
    return mapping

