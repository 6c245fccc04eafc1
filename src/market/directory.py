"""
Market directory: lists the markets (mandis) and districts that report
prices for a state, so clients can offer a pick-list instead of free text.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from cachetools import TTLCache

from src.market.strategy import Fetcher
from src.market.transform import raw_field

logger = logging.getLogger(__name__)

DIRECTORY_LIMIT = 1000
DIRECTORY_TTL_S = 60 * 60


class MarketDataUnavailable(Exception):
    """Raised when data.gov.in could not be queried for a directory listing."""


@dataclass
class StateMarkets:
    state: str
    total_records: int
    markets: List[str] = field(default_factory=list)
    districts: List[str] = field(default_factory=list)


class MarketDirectory:
    """Per-state market/district listing, cached for an hour."""

    def __init__(
        self,
        fetch: Fetcher,
        ttl_s: float = DIRECTORY_TTL_S,
        clock: Callable[[], float] = time.time,
    ):
        self.fetch = fetch
        self._cache = TTLCache(maxsize=64, ttl=ttl_s, timer=clock)

    def markets_for_state(self, state: str) -> Tuple[StateMarkets, bool]:
        """
        Return (listing, cached) for a state.

        Raises:
            MarketDataUnavailable: If the upstream call failed.
        """
        state = state.strip()
        cached = self._cache.get(state)
        if cached is not None:
            return cached, True

        result = self.fetch({"state": state}, DIRECTORY_LIMIT)
        if not result.success:
            raise MarketDataUnavailable(result.error or "upstream call failed")

        markets = set()
        districts = set()
        for record in result.records:
            if not isinstance(record, dict):
                continue
            market = raw_field(record, "market")
            district = raw_field(record, "district")
            if market:
                markets.add(market)
            if district:
                districts.add(district)

        listing = StateMarkets(
            state=state,
            total_records=len(result.records),
            markets=sorted(markets),
            districts=sorted(districts),
        )
        logger.info(
            "Directory for %s: %d markets, %d districts",
            state, len(listing.markets), len(listing.districts),
        )
        self._cache[state] = listing
        return listing, False

    def clear(self) -> None:
        self._cache.clear()
