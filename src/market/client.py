"""
Agmarknet API client: fetches raw commodity price records from data.gov.in.

Every call is a single GET with a fixed timeout. Failures of any kind
(network, timeout, HTTP status, malformed payload, missing API key) come
back as a FetchResult with success=False -- nothing is raised to the caller.

API docs: https://data.gov.in/ogpl_apis
License: GODL (Government Open Data License - India)
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import requests

from src.market.config import MarketConfig
from src.market.metrics import UPSTREAM_LATENCY

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Outcome of one upstream call."""
    records: List[Dict] = field(default_factory=list)
    total: int = 0
    success: bool = False
    error: Optional[str] = None


def build_params(
    filters: Mapping[str, Optional[str]],
    limit: int,
    api_key: str,
) -> Dict[str, str]:
    """Query string for one upstream call; blank filter values are dropped."""
    params = {
        "api-key": api_key,
        "format": "json",
        "limit": str(limit),
    }
    for name, value in filters.items():
        if value and value.strip():
            params[f"filters[{name}]"] = value.strip()
    return params


def fetch_records(
    filters: Mapping[str, Optional[str]],
    limit: int = 100,
    config: Optional[MarketConfig] = None,
) -> FetchResult:
    """
    Fetch raw price records matching `filters` (e.g. commodity/state/market).

    Args:
        filters: Upstream filter field -> value. Empty values are omitted.
        limit: Max records to request.
        config: Service configuration (default: read from environment).

    Returns:
        FetchResult. On success, `records` is the raw record list and `total`
        is the upstream-reported count, which may exceed len(records).
    """
    config = config or MarketConfig.from_env()
    if not config.api_key:
        logger.warning(
            "DATA_GOV_IN_API_KEY not set; skipping Agmarknet fetch for %s",
            dict(filters),
        )
        return FetchResult(error="API key not configured")

    params = build_params(filters, limit, config.api_key)
    headers = {
        "Accept": "application/json",
        "User-Agent": config.user_agent,
    }

    start = time.time()
    status = None
    try:
        resp = requests.get(
            config.resource_url, params=params, headers=headers,
            timeout=config.timeout_s,
        )
        status = resp.status_code
        resp.raise_for_status()
        data = resp.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(
            "Agmarknet API failed: filters=%s limit=%d status=%s error=%s",
            dict(filters), limit, status, e,
        )
        return FetchResult(error=str(e))
    finally:
        UPSTREAM_LATENCY.observe(time.time() - start)

    if not isinstance(data, dict):
        data = {}
    records = data.get("records")
    if data.get("status") != "ok" or not isinstance(records, list):
        logger.warning(
            "Agmarknet API returned unexpected payload: filters=%s status=%s",
            dict(filters), status,
        )
        return FetchResult(error="Invalid API response structure")

    try:
        total = int(data.get("total", len(records)))
    except (TypeError, ValueError):
        total = len(records)

    logger.info(
        "Agmarknet API: filters=%s records=%d/%d",
        dict(filters), len(records), total,
    )
    return FetchResult(records=records, total=total, success=True)
