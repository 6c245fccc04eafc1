"""Prometheus metrics for the market price service."""

from prometheus_client import Counter, Histogram

PRICE_REQUESTS = Counter(
    "market_price_requests_total", "Market price lookups",
    ["scope", "cached"],
)
UPSTREAM_LATENCY = Histogram(
    "agmarknet_upstream_latency_seconds", "Agmarknet API call latency",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)
