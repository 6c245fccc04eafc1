"""
Market price service: the cache-then-strategy flow behind /api/market.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional

from src.market.cache import CacheEntry, ResponseCache
from src.market.client import fetch_records
from src.market.config import MarketConfig
from src.market.metrics import PRICE_REQUESTS
from src.market.strategy import Fetcher, QueryFilter, QueryScope, run_query_strategy
from src.market.transform import PriceQuote

logger = logging.getLogger(__name__)


@dataclass
class PriceLookup:
    """Result of one lookup, cached or fresh."""
    query: QueryFilter
    quotes: List[PriceQuote]
    scope: QueryScope
    cached: bool
    timestamp_ms: int

    @property
    def total_records(self) -> int:
        return len(self.quotes)


class MarketPriceService:
    """
    Serve price lookups from the cache, falling back to the tiered
    Agmarknet query on a miss.

    Usage:
        service = MarketPriceService(MarketConfig.from_env())
        lookup = service.lookup(QueryFilter.from_params("Rice", "Delhi"))
    """

    def __init__(
        self,
        config: Optional[MarketConfig] = None,
        cache: Optional[ResponseCache] = None,
        fetch: Optional[Fetcher] = None,
    ):
        self.config = config or MarketConfig.from_env()
        self.cache = cache or ResponseCache(ttl_s=self.config.cache_ttl_s)
        self.fetch = fetch or partial(fetch_records, config=self.config)

    def lookup(self, query: QueryFilter) -> PriceLookup:
        key = query.cache_key
        entry = self.cache.get(key)
        if entry is not None:
            logger.info("Returning cached data for %s", key)
            PRICE_REQUESTS.labels(scope=entry.scope.value, cached="true").inc()
            return self._from_entry(query, entry, cached=True)

        logger.info(
            "Fetching market data for commodity=%s state=%s market=%s",
            query.commodity, query.state or "any", query.market or "any",
        )
        result = run_query_strategy(query, fetch=self.fetch)
        entry = self.cache.put(key, result.quotes, result.scope)
        PRICE_REQUESTS.labels(scope=result.scope.value, cached="false").inc()
        logger.info(
            "Returning %d records (scope: %s, upstream calls: %d)",
            entry.total, entry.scope.value, result.upstream_calls,
        )
        return self._from_entry(query, entry, cached=False)

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Market price cache cleared")

    @staticmethod
    def _from_entry(query: QueryFilter, entry: CacheEntry, cached: bool) -> PriceLookup:
        return PriceLookup(
            query=query,
            quotes=list(entry.records),
            scope=entry.scope,
            cached=cached,
            timestamp_ms=int(entry.timestamp * 1000),
        )
