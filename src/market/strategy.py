"""
Query strategy engine: progressively widening Agmarknet lookups.

Exact-locality coverage on data.gov.in is sparse, so a lookup walks three
tiers and stops at the first one that yields records:

    exact_market   -- commodity + state + market     (needs state and market)
    state_level    -- commodity + state              (needs state)
    national_level -- commodity only

Locality hints that could not be matched exactly are still used to rank
what comes back: the state tier prefers records whose market contains the
market hint, and the national tier moves records whose state contains the
state hint to the front. When nothing is found anywhere the scope is 'none'
and the result is empty -- that is an answer, not an error.

Tiers run strictly one after another with one upstream attempt each.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional

from src.market.client import FetchResult, fetch_records
from src.market.transform import PriceQuote, raw_field, transform_records

logger = logging.getLogger(__name__)

EXACT_LIMIT = 50
STATE_LIMIT = 200
NATIONAL_LIMIT = 300
MAX_RESULTS = 100

Fetcher = Callable[[Mapping[str, Optional[str]], int], FetchResult]


class QueryScope(str, Enum):
    NONE = "none"
    EXACT_MARKET = "exact_market"
    STATE_LEVEL = "state_level"
    NATIONAL_LEVEL = "national_level"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class QueryFilter:
    """A price lookup. Blank state/market are treated as absent."""
    commodity: str
    state: Optional[str] = None
    market: Optional[str] = None

    @classmethod
    def from_params(
        cls,
        commodity: str,
        state: Optional[str] = None,
        market: Optional[str] = None,
    ) -> "QueryFilter":
        return cls(commodity=commodity.strip(), state=_clean(state), market=_clean(market))

    @property
    def cache_key(self) -> str:
        return f"{self.commodity}_{self.state or 'all'}_{self.market or 'all'}"

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"commodity": self.commodity, "state": self.state, "market": self.market}


@dataclass
class StrategyResult:
    quotes: List[PriceQuote] = field(default_factory=list)
    scope: QueryScope = QueryScope.NONE
    upstream_calls: int = 0


def _contains(record, name: str, hint: str) -> bool:
    value = raw_field(record, name) if isinstance(record, dict) else None
    return value is not None and hint.lower() in value.lower()


def filter_by_market_hint(records: List[Dict], market: str) -> List[Dict]:
    """Records whose market contains the hint, or all records if none do."""
    similar = [r for r in records if _contains(r, "market", market)]
    return similar or records


def prioritize_state(records: List[Dict], state: str) -> List[Dict]:
    """Stable partition: records whose state contains the hint come first."""
    matching = [r for r in records if _contains(r, "state", state)]
    others = [r for r in records if not _contains(r, "state", state)]
    return matching + others


def run_query_strategy(
    query: QueryFilter,
    fetch: Optional[Fetcher] = None,
) -> StrategyResult:
    """
    Resolve a price lookup through the exact -> state -> national tiers.

    Args:
        query: Commodity plus optional state/market hints.
        fetch: Upstream call (filters, limit) -> FetchResult.
            Defaults to the Agmarknet client.

    Returns:
        StrategyResult with transformed quotes and the scope that produced
        them. Never raises for upstream failures.
    """
    fetch = fetch or fetch_records
    result = StrategyResult()

    def call(filters, limit) -> FetchResult:
        result.upstream_calls += 1
        return fetch(filters, limit)

    # Tier 1: exact market
    if query.state and query.market:
        logger.info("Tier exact_market: %s", query.as_dict())
        exact = call(
            {"commodity": query.commodity, "state": query.state, "market": query.market},
            EXACT_LIMIT,
        )
        if exact.success and exact.records:
            result.quotes = transform_records(exact.records, query.commodity)
            result.scope = QueryScope.EXACT_MARKET
            logger.info("Found %d records for exact market match", len(result.quotes))
            return result
        logger.info("No records for exact market match")

    # Tier 2: state level, ranked by market hint
    if query.state:
        logger.info("Tier state_level: commodity=%s state=%s", query.commodity, query.state)
        state_result = call(
            {"commodity": query.commodity, "state": query.state},
            STATE_LIMIT,
        )
        if state_result.success and state_result.records:
            records = state_result.records
            if query.market:
                records = filter_by_market_hint(records, query.market)
            result.quotes = transform_records(records[:MAX_RESULTS], query.commodity)
            result.scope = QueryScope.STATE_LEVEL
            logger.info("Found %d records at state level", len(result.quotes))
            return result
        logger.info("No records at state level")

    # Tier 3: national, ranked by state hint
    logger.info("Tier national_level: commodity=%s", query.commodity)
    national = call({"commodity": query.commodity}, NATIONAL_LIMIT)
    if national.success and national.records:
        records = national.records
        if query.state:
            records = prioritize_state(records, query.state)
        result.quotes = transform_records(records[:MAX_RESULTS], query.commodity)
        result.scope = QueryScope.NATIONAL_LEVEL
        logger.info("Found %d records at national level", len(result.quotes))
        return result

    logger.info("No records at national level for %s", query.commodity)
    return result
