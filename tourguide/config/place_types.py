"""
Place category and routing mode vocabulary for the Tour Guide.
Categories are OpenStreetMap `amenity` values, except "tourism" which matches
any node carrying a tourism tag.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple


# Selectable nearby categories -> display labels
CATEGORY_LABELS: Dict[str, str] = {
    "restaurant": "Restaurants",
    "cafe": "Cafes",
    "fast_food": "Fast Food",
    "tourism": "Attractions",
    "museum": "Museums",
    "post_office": "Post Offices",
}

ROUTING_MODES = ("walking", "driving", "cycling")

# Chat keyword patterns, checked in order; the first match wins
INTENT_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("post_office", re.compile(r"post\s*office|mail|usps")),
    ("restaurant", re.compile(r"restaurant|eat|dine|food")),
    ("cafe", re.compile(r"coffee|cafe")),
    ("museum", re.compile(r"museum|gallery")),
    ("tourism", re.compile(r"attraction|landmark|tourist")),
]


def is_valid_category(category: str) -> bool:
    """Check if a category is one of the selectable nearby categories."""
    return category in CATEGORY_LABELS


def is_valid_mode(mode: str) -> bool:
    """Check if a routing mode is supported by the routing service."""
    return mode in ROUTING_MODES


def match_intent_category(text: str) -> Optional[str]:
    """Return the first category whose keyword pattern occurs in lowercase text."""
    for category, pattern in INTENT_PATTERNS:
        if pattern.search(text):
            return category
    return None


def humanize_category(category: str) -> str:
    """Render a category key for chat replies ("post_office" -> "post office")."""
    return category.replace("_", " ")
