"""
FastAPI application for mandi (farm market) price lookups.

Endpoints:
    GET  /api/market       — Prices for a commodity, widening exact → state → national
    GET  /api/markets      — Markets and districts reporting for a state
    GET  /api/commodities  — Resolve a search term to upstream commodity names
    GET  /health           — Health check
    GET  /metrics          — Prometheus metrics
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.api.schemas import (
    CommoditySearchResponse, ErrorResponse, HealthResponse, MarketPriceResponse,
    MarketQueryEcho, MarketsResponse, MessageResponse, StateMarketsData,
)
from src.market.commodities import CommoditySearch
from src.market.config import MarketConfig
from src.market.directory import MarketDataUnavailable, MarketDirectory
from src.market.service import MarketPriceService
from src.market.strategy import QueryFilter

logger = logging.getLogger(__name__)

# ---- App setup ----
app = FastAPI(
    title="Mandi Price API",
    description="Agmarknet commodity prices with locality fallback",
    version="1.0.0",
)


class OpenCORSMiddleware(CORSMiddleware):
    """CORS for any origin; every preflight gets an empty 200."""

    def preflight_response(self, request_headers):
        response = super().preflight_response(request_headers)
        headers = {
            k: v for k, v in response.headers.items()
            if k.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


app.add_middleware(
    OpenCORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# ---- Global service references (replaced in tests) ----
config: MarketConfig = MarketConfig.from_env()
price_service = MarketPriceService(config)
market_directory = MarketDirectory(price_service.fetch)
commodity_search = CommoditySearch(price_service.fetch)
service_version: str = "1.0.0"

SAFE_ERROR_MESSAGE = "Market data service temporarily unavailable. Please try again later."


def error_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def internal_error(exc: Exception) -> JSONResponse:
    details = None if config.is_production else str(exc)
    return error_response(500, SAFE_ERROR_MESSAGE, details)


@app.on_event("startup")
async def startup_event():
    if not config.api_key:
        logger.warning(
            "DATA_GOV_IN_API_KEY not set; all lookups will return scope 'none'"
        )


@app.get("/health", response_model=HealthResponse)
def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if config.api_key else "degraded",
        api_key_configured=bool(config.api_key),
        cached_entries=len(price_service.cache),
        version=service_version,
    )


@app.options("/api/market", include_in_schema=False)
def market_prices_options():
    return Response(status_code=200)


@app.get(
    "/api/market",
    response_model=MarketPriceResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def market_prices(
    commodity: Optional[str] = None,
    state: Optional[str] = None,
    market: Optional[str] = None,
    clearCache: Optional[str] = None,
):
    """
    Prices for a commodity, optionally near a state/market.

    An empty result is still a success: `scope` says which tier (if any)
    produced `data`.
    """
    try:
        if clearCache == "true":
            price_service.clear_cache()
            return JSONResponse(
                status_code=200,
                content=MessageResponse(message="Cache cleared").model_dump(),
            )

        if not commodity or not commodity.strip():
            return error_response(400, "Missing required parameter: commodity")

        query = QueryFilter.from_params(commodity, state, market)
        lookup = price_service.lookup(query)

        return MarketPriceResponse(
            data=lookup.quotes,
            scope=lookup.scope.value,
            cached=lookup.cached,
            timestamp=lookup.timestamp_ms,
            query=MarketQueryEcho(**query.as_dict()),
            total_records=lookup.total_records,
        )
    except Exception as e:
        logger.exception("Market price handler failed")
        return internal_error(e)


@app.get(
    "/api/markets",
    response_model=MarketsResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def state_markets(state: Optional[str] = None):
    """Unique markets and districts reporting prices for a state."""
    if not state or not state.strip():
        return error_response(400, "Missing required parameter: state")

    try:
        listing, cached = market_directory.markets_for_state(state)
    except MarketDataUnavailable as e:
        return error_response(
            502, "Failed to fetch markets", None if config.is_production else str(e),
        )
    except Exception as e:
        logger.exception("Markets handler failed")
        return internal_error(e)

    return MarketsResponse(
        data=StateMarketsData(
            state=listing.state,
            total_records=listing.total_records,
            unique_markets=listing.markets,
            unique_districts=listing.districts,
        ),
        cached=cached,
    )


@app.get("/api/commodities", response_model=CommoditySearchResponse)
def search_commodities(search: Optional[str] = None):
    """Up to 10 upstream commodity names matching a search term."""
    try:
        matches = commodity_search.search(search or "")
    except Exception as e:
        logger.exception("Commodity search failed")
        return internal_error(e)
    return CommoditySearchResponse(data=matches)


# ---- Prometheus metrics endpoint ----
@app.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
