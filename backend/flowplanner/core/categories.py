"""
Category vocabulary shared by both plan decomposition strategies and the venue
search adapter. Codes are Yelp Fusion category aliases; swapping providers means
replacing these tables, not the code that reads them.
"""
from typing import Dict, FrozenSet

DEFAULT_CATEGORY = "restaurants"

# Codes the prompt offers to the model. Anything else it returns is mapped
# through CATEGORY_ALIASES or passed through untouched.
KNOWN_CATEGORIES: FrozenSet[str] = frozenset(
    {
        "landmarks",
        "restaurants",
        "bars",
        "nightlife",
        "danceclubs",
        "cafes",
        "museums",
        "parks",
        "cocktailbars",
        "lounges",
        "winebars",
        "breakfast_brunch",
        "desserts",
        "entertainment",
        "musicvenues",
        "jazzandblues",
        "karaoke",
        "italian",
        "japanese",
        "mexican",
        "steakhouses",
        "seafood",
        "pizza",
    }
)

# Free-text concepts the model (or a user) tends to produce instead of a code.
CATEGORY_ALIASES: Dict[str, str] = {
    "sightseeing": "landmarks",
    "landmark": "landmarks",
    "tourist attractions": "landmarks",
    "museum": "museums",
    "art gallery": "museums",
    "galleries": "museums",
    "park": "parks",
    "restaurant": "restaurants",
    "lunch": "restaurants",
    "dinner": "restaurants",
    "food": "restaurants",
    "brunch": "breakfast_brunch",
    "breakfast": "breakfast_brunch",
    "coffee": "cafes",
    "cafe": "cafes",
    "coffee shop": "cafes",
    "dessert": "desserts",
    "bar": "bars",
    "rooftop bar": "bars",
    "cocktail bar": "cocktailbars",
    "cocktails": "cocktailbars",
    "wine bar": "winebars",
    "lounge": "lounges",
    "nightclub": "danceclubs",
    "club": "danceclubs",
    "dance club": "danceclubs",
    "dancing": "danceclubs",
    "live music": "musicvenues",
    "music venue": "musicvenues",
    "music venues": "musicvenues",
    "concert": "musicvenues",
    "jazz": "jazzandblues",
    "jazz club": "jazzandblues",
}

# Venues in these categories are not price-tiered by the provider.
ATTRACTION_CATEGORIES: FrozenSet[str] = frozenset(
    {"landmarks", "museums", "parks", "entertainment"}
)


def normalize_category(raw: object) -> str:
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_CATEGORY
    key = raw.strip().lower()
    if key in KNOWN_CATEGORIES:
        return key
    return CATEGORY_ALIASES.get(key, key.replace(" ", ""))


def is_attraction(category: str) -> bool:
    return category in ATTRACTION_CATEGORIES
