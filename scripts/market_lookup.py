"""
CLI entry point for a one-off market price lookup (no cache, no server).

Usage:
    python scripts/market_lookup.py --commodity Rice
    python scripts/market_lookup.py --commodity Rice --state Delhi --market Delhi
    python scripts/market_lookup.py --markets-for Karnataka
"""

import argparse
import json
import logging
import sys
from functools import partial
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.market.client import fetch_records
from src.market.config import MarketConfig
from src.market.directory import MarketDataUnavailable, MarketDirectory
from src.market.strategy import QueryFilter, run_query_strategy


def main():
    parser = argparse.ArgumentParser(
        description="Look up Agmarknet commodity prices with locality fallback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/market_lookup.py --commodity Onion --state Maharashtra
  python scripts/market_lookup.py --commodity Rice --state Delhi --market Delhi
  python scripts/market_lookup.py --markets-for Karnataka
        """,
    )
    parser.add_argument("--commodity", help="Commodity name as on Agmarknet (e.g., Rice)")
    parser.add_argument("--state", default=None, help="Preferred state")
    parser.add_argument("--market", default=None, help="Preferred market (mandi)")
    parser.add_argument(
        "--markets-for", default=None, metavar="STATE",
        help="List markets and districts reporting for STATE instead",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = MarketConfig.from_env()
    if not config.api_key:
        print("WARNING: DATA_GOV_IN_API_KEY is not set; no data will be returned",
              file=sys.stderr)
    fetch = partial(fetch_records, config=config)

    if args.markets_for:
        try:
            listing, _ = MarketDirectory(fetch).markets_for_state(args.markets_for)
        except MarketDataUnavailable as e:
            print(f"ERROR: Could not fetch markets: {e}", file=sys.stderr)
            sys.exit(1)
        print(json.dumps({
            "state": listing.state,
            "totalRecords": listing.total_records,
            "uniqueMarkets": listing.markets,
            "uniqueDistricts": listing.districts,
        }, indent=2))
        return

    if not args.commodity or not args.commodity.strip():
        parser.error("--commodity is required unless --markets-for is given")

    query = QueryFilter.from_params(args.commodity, args.state, args.market)
    result = run_query_strategy(query, fetch=fetch)

    output = {
        "query": query.as_dict(),
        "scope": result.scope.value,
        "upstream_calls": result.upstream_calls,
        "totalRecords": len(result.quotes),
        "data": [q.model_dump(by_alias=True) for q in result.quotes],
    }
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
