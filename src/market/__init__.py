"""
Agmarknet (data.gov.in) market price modules for the mandi price service.

Modules:
    config       — Environment-driven settings
    client       — Single-shot upstream fetches, failures returned as values
    transform    — Raw records -> canonical PriceQuote
    strategy     — Exact -> state -> national fallback engine
    cache        — TTL response cache
    service      — Cache-then-strategy lookup used by the API
    directory    — Markets/districts reporting for a state
    commodities  — Free-text commodity name search
    metrics      — Prometheus counters and histograms
"""
