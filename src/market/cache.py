"""
In-process TTL cache for market price lookups.

Entries are written whole and never merged; a newer lookup for the same key
simply replaces the old entry. Empty ('none') results are cached as well so
that a commodity with no coverage does not hit data.gov.in on every request.

Note: each uvicorn worker holds its own cache. Two requests racing on the
same key may both miss and both fetch; the last write wins.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from cachetools import TTLCache

from src.market.config import DEFAULT_CACHE_TTL_S
from src.market.strategy import QueryScope
from src.market.transform import PriceQuote


@dataclass(frozen=True)
class CacheEntry:
    records: Tuple[PriceQuote, ...]
    timestamp: float
    scope: QueryScope
    total: int


class ResponseCache:
    """
    Keyed store of price lookup results, valid for `ttl_s` seconds after
    they are written.

    Args:
        ttl_s: Entry lifetime in seconds.
        clock: Returns the current time in seconds (default: time.time).
        maxsize: Optional entry bound; unbounded by default.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_CACHE_TTL_S,
        clock: Callable[[], float] = time.time,
        maxsize: Optional[int] = None,
    ):
        self.ttl_s = ttl_s
        self.clock = clock
        self._store = TTLCache(
            maxsize=maxsize if maxsize is not None else math.inf,
            ttl=ttl_s,
            timer=clock,
        )

    def get(self, key: str) -> Optional[CacheEntry]:
        """Entry for `key` if it was written less than ttl_s ago, else None."""
        return self._store.get(key)

    def put(
        self,
        key: str,
        records: Sequence[PriceQuote],
        scope: QueryScope,
    ) -> CacheEntry:
        entry = CacheEntry(
            records=tuple(records),
            timestamp=self.clock(),
            scope=scope,
            total=len(records),
        )
        self._store[key] = entry
        return entry

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
