"""
Commodity search: resolve what a farmer typed ('aloo', 'tomatos', 'rice')
to commodity names as data.gov.in spells them.
"""

import logging
import re
import time
from typing import Callable, Dict, List

from cachetools import TTLCache

from src.market.strategy import Fetcher
from src.market.transform import raw_field

logger = logging.getLogger(__name__)

COMMODITY_LIST_LIMIT = 1000
COMMODITY_LIST_TTL_S = 24 * 60 * 60
MAX_MATCHES = 10
MAX_EDIT_RATIO = 0.45

# Used when data.gov.in cannot provide a commodity list
FALLBACK_COMMODITIES = [
    "Wheat", "Rice", "Maize", "Cotton", "Sugarcane", "Potato", "Onion",
    "Tomato", "Brinjal", "Cabbage", "Cauliflower", "Chilli", "Garlic",
    "Ginger", "Groundnut", "Soybean", "Mustard", "Sunflower", "Tea",
    "Coffee", "Banana", "Mango", "Apple", "Grapes", "Orange", "Lemon",
    "Peas", "Carrot", "Bottle Gourd", "Bitter Gourd", "Okra", "Drumstick",
]

# Canonical name -> common regional spellings
SYNONYMS = {
    "potato": ["potato", "alu", "aloo"],
    "tomato": ["tomato", "tamatar"],
    "cabbage": ["cabbage", "cabage"],
    "cauliflower": ["cauliflower", "gobhi"],
    "onion": ["onion", "pyaz"],
    "wheat": ["wheat", "gehun"],
    "rice": ["rice", "chawal"],
}

_QUOTES = re.compile(r"[‘’“”']")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize(text: str) -> str:
    text = _QUOTES.sub("", (text or "").strip().lower())
    return _NON_ALNUM.sub("", text)


def levenshtein(a: str, b: str) -> int:
    """Edit distance: single-character inserts, deletes and substitutions."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


class CommoditySearch:
    """Four-stage matcher: exact, synonym, substring, then fuzzy."""

    def __init__(
        self,
        fetch: Fetcher,
        ttl_s: float = COMMODITY_LIST_TTL_S,
        clock: Callable[[], float] = time.time,
    ):
        self.fetch = fetch
        self._cache = TTLCache(maxsize=1, ttl=ttl_s, timer=clock)

    def commodity_list(self) -> List[str]:
        cached = self._cache.get("commodities")
        if cached is not None:
            return cached

        result = self.fetch({}, COMMODITY_LIST_LIMIT)
        names = []
        if result.success:
            names = list(dict.fromkeys(
                name for name in (
                    raw_field(r, "commodity") for r in result.records if isinstance(r, dict)
                ) if name
            ))
        if names:
            logger.info("Fetched %d commodities from data.gov.in", len(names))
        else:
            logger.warning("No commodities from data.gov.in; using fallback list")
            names = list(FALLBACK_COMMODITIES)

        self._cache["commodities"] = names
        return names

    def search(self, term: str) -> List[str]:
        term = normalize(term)
        if not term:
            return []

        by_norm: Dict[str, List[str]] = {}
        for name in self.commodity_list():
            by_norm.setdefault(normalize(name), []).append(name)

        exact = by_norm.get(term)
        if exact:
            return exact[:MAX_MATCHES]

        for canon, forms in SYNONYMS.items():
            if term in forms:
                matched = [
                    name for norm, names in by_norm.items()
                    if norm == canon or norm in forms
                    for name in names
                ]
                if matched:
                    return matched[:MAX_MATCHES]

        contains = [name for norm, names in by_norm.items() if term in norm for name in names]
        if contains:
            return contains[:MAX_MATCHES]

        scored = []
        for norm in by_norm:
            distance = levenshtein(term, norm)
            ratio = distance / max(len(term), len(norm))
            if ratio <= MAX_EDIT_RATIO:
                scored.append((ratio, distance, norm))
        scored.sort(key=lambda s: (s[0], s[1]))
        return [name for _, _, norm in scored for name in by_norm[norm]][:MAX_MATCHES]
