"""
Pydantic response schemas for the market price API.

Wire names (camelCase, 'S.No', 'Model Prize', ...) are what the mobile app
already reads; they are kept as aliases so the Python side stays snake_case.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from src.market.transform import PriceQuote


class MarketQueryEcho(BaseModel):
    """The normalized query, echoed back to the caller."""
    commodity: str
    state: Optional[str] = None
    market: Optional[str] = None


class MarketPriceResponse(BaseModel):
    """Output schema for GET /api/market (cache hit or miss)."""
    success: bool = True
    data: List[PriceQuote]
    scope: str = Field(..., description="none, exact_market, state_level or national_level")
    cached: bool
    timestamp: int = Field(..., description="Epoch milliseconds when the data was fetched")
    query: MarketQueryEcho
    total_records: int = Field(..., alias="totalRecords")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [{
                "success": True,
                "data": [{
                    "S.No": "1", "City": "Azadpur", "State": "NCT of Delhi",
                    "District": "Delhi", "Market": "Azadpur", "Commodity": "Onion",
                    "Variety": "Red", "Grade": "FAQ", "Min Prize": "1200",
                    "Max Prize": "1800", "Model Prize": "1500",
                    "Date": "18/10/2026", "Source": "data.gov.in",
                }],
                "scope": "exact_market",
                "cached": False,
                "timestamp": 1792400000000,
                "query": {"commodity": "Onion", "state": "NCT of Delhi", "market": "Azadpur"},
                "totalRecords": 1,
            }]
        },
    }


class ErrorResponse(BaseModel):
    """Shape of every 4xx/5xx body."""
    success: bool = False
    error: str
    details: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class StateMarketsData(BaseModel):
    state: str
    total_records: int = Field(..., alias="totalRecords")
    unique_markets: List[str] = Field(..., alias="uniqueMarkets")
    unique_districts: List[str] = Field(..., alias="uniqueDistricts")

    model_config = {"populate_by_name": True}


class MarketsResponse(BaseModel):
    """Output schema for GET /api/markets."""
    success: bool = True
    data: StateMarketsData
    cached: bool


class CommoditySearchResponse(BaseModel):
    """Output schema for GET /api/commodities."""
    success: bool = True
    data: List[str]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    api_key_configured: bool
    cached_entries: int
    version: str
