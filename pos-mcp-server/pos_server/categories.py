"""Category merging and presentation lookup.

Two category sources feed the product browser: the curated list below and
whatever the backend returns from /categories. They are merged by
case-insensitive name with the curated entry winning, and every name maps to
a gradient and an image URL. Nothing here touches the network; image URLs are
computed, not fetched.
"""

import logging
import re
from typing import Iterable, Optional

from .models import Category

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"

_UNSPLASH = "https://images.unsplash.com/photo-{}?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080"

# Curated categories with their default images, in display order
CURATED_CATEGORIES: list[tuple[str, str]] = [
    ("Groceries", _UNSPLASH.format("1760612887290-62645e654eaf")),
    ("Beverages", _UNSPLASH.format("1636245297990-c641560ff4b5")),
    ("Food", _UNSPLASH.format("1555939594-58d7cb561ad1")),
    ("Snacks", _UNSPLASH.format("1742972459942-aed536c720cf")),
    ("Dairy", _UNSPLASH.format("1628088062854-d1870b4553da")),
    ("Bakery", _UNSPLASH.format("1509440159596-0249088772ff")),
    ("Frozen", _UNSPLASH.format("1606787366850-de6330128bfc")),
    ("Meat & Seafood", _UNSPLASH.format("1677607219966-22fbfa433667")),
    ("Fruits & Vegetables", _UNSPLASH.format("1574955598898-d105479382e5")),
    (
        "Personal Care",
        "https://greenchemfinder.com/wp-content/uploads/elementor/thumbs/"
        "AdobeStock_1255629662-scaled-r3ym4s0zkic1oaxp9cbgqnaedms7bd33llzxrbcr60.jpeg",
    ),
    ("Household", _UNSPLASH.format("1758887262204-a49092d85f15")),
    ("Baby Products", _UNSPLASH.format("1555252333-9f8e92e65df9")),
    ("Toiletries/Hygiene", _UNSPLASH.format("1760184762833-7c6bd9ef1415")),
]

CATEGORY_IMAGES: dict[str, str] = dict(CURATED_CATEGORIES)

# Used when the backend category list cannot be loaded or is empty
DEFAULT_CATEGORIES: list[str] = [
    "Groceries",
    "Beverages",
    "Food",
    "Snacks",
    "Dairy",
    "Frozen",
    "Bakery",
    "Meat & Seafood",
    "Fruits & Vegetables",
    "Personal Care",
    "Household",
    "Other",
]

# Keys must match normalize_category_name() output
CATEGORY_GRADIENTS: dict[str, str] = {
    "groceries": "from-blue-100 to-blue-200",
    "beverages": "from-amber-100 to-amber-200",
    "food": "from-orange-100 to-orange-200",
    "snacks": "from-pink-100 to-pink-200",
    "dairy": "from-green-100 to-green-200",
    "frozen": "from-blue-100 to-blue-200",
    "bakery": "from-yellow-100 to-yellow-200",
    "meat&seafood": "from-red-100 to-red-200",
    "fruits&vegetables": "from-green-100 to-green-200",
    "personalcare": "from-purple-100 to-purple-200",
    "household": "from-pink-100 to-pink-200",
    "babyproducts": "from-orange-100 to-orange-200",
    "toiletries/hygiene": "from-indigo-100 to-indigo-200",
    "allproducts": "from-gray-100 to-gray-200",
    "other": "from-gray-100 to-gray-200",
}

FALLBACK_IMAGE = (
    "data:image/svg+xml,%3Csvg xmlns='http://www.w3.org/2000/svg' width='400' height='250' "
    "viewBox='0 0 400 250'%3E%3Crect width='100%25' height='100%25' fill='%23eef2e7'/%3E"
    "%3Ctext x='50%25' y='50%25' fill='%2390a88a' font-family='Arial' font-size='20' "
    "text-anchor='middle' alignment-baseline='middle'%3ENo Image%3C/text%3E%3C/svg%3E"
)


def curated_categories() -> list[Category]:
    return [
        Category(id=f"hc-{index}", name=name)
        for index, (name, _image) in enumerate(CURATED_CATEGORIES)
    ]


def default_categories() -> list[Category]:
    return [Category(id=index, name=name) for index, name in enumerate(DEFAULT_CATEGORIES, 1)]


def merge_categories(
    curated: Iterable[Category], backend: Optional[Iterable[Category]] = None
) -> list[Category]:
    """
    Merge curated and backend categories into one list.

    Names are unique by case-insensitive comparison. Curated entries come
    first and win on collision; backend-only entries follow in backend order.
    Entries without a string name are skipped.
    """
    merged: dict[str, Category] = {}
    for source in (curated, backend or ()):
        for category in source:
            if not isinstance(category.name, str):
                logger.debug(f"Skipping category without a name: {category.id!r}")
                continue
            key = category.name.lower()
            if key not in merged:
                merged[key] = category
    return list(merged.values())


def display_categories(categories: Iterable[Category]) -> list[Category]:
    """Categories that can be shown and used for grouping."""
    return [c for c in categories if isinstance(c.name, str)]


def normalize_category_name(name: str) -> str:
    """
    Lookup key for a category name.

    "Meat  &Seafood" -> "meat&seafood", "Toiletries / Hygiene" -> "toiletries/hygiene"
    """
    name = re.sub(r"\s*&\s*", " & ", name)
    name = re.sub(r"\s*/\s*", "/", name)
    name = re.sub(r"\s+", "", name)
    return name.lower()


def category_gradient(name: Optional[str]) -> str:
    if not isinstance(name, str):
        return CATEGORY_GRADIENTS["other"]
    return CATEGORY_GRADIENTS.get(normalize_category_name(name), CATEGORY_GRADIENTS["other"])


def category_image_url(category: Category, static_base: str) -> str:
    """Stored image first, then the curated default for the name, then a placeholder."""
    if category.image_path:
        return f"{static_base.rstrip('/')}/static/category_images/{category.image_path}"
    if isinstance(category.name, str) and category.name in CATEGORY_IMAGES:
        return CATEGORY_IMAGES[category.name]
    return FALLBACK_IMAGE
