"""
Runtime configuration for the market price service, read from environment
variables. The data.gov.in API key is free; register at
https://data.gov.in/user/register and export DATA_GOV_IN_API_KEY.
"""

import os
from dataclasses import dataclass
from typing import Optional

DATA_GOV_API_BASE = "https://api.data.gov.in/resource"
# Daily commodity prices (Agmarknet) on data.gov.in
AGMARKNET_RESOURCE_ID = "9ef84268-d588-465a-a308-a864a43d0070"

DEFAULT_TIMEOUT_S = 30
DEFAULT_CACHE_TTL_S = 30 * 60


@dataclass
class MarketConfig:
    """Settings shared by the client, cache and HTTP layer."""
    api_key: Optional[str] = None
    api_base: str = DATA_GOV_API_BASE
    resource_id: str = AGMARKNET_RESOURCE_ID
    timeout_s: float = DEFAULT_TIMEOUT_S
    cache_ttl_s: float = DEFAULT_CACHE_TTL_S
    environment: str = "production"
    user_agent: str = "MandiPriceService/1.0 (Government Data Access)"

    @property
    def resource_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/{self.resource_id}"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @classmethod
    def from_env(cls) -> "MarketConfig":
        return cls(
            api_key=os.environ.get("DATA_GOV_IN_API_KEY") or None,
            api_base=os.environ.get("DATA_GOV_API_BASE", DATA_GOV_API_BASE),
            resource_id=os.environ.get("AGMARKNET_RESOURCE_ID", AGMARKNET_RESOURCE_ID),
            timeout_s=float(os.environ.get("MARKET_REQUEST_TIMEOUT", DEFAULT_TIMEOUT_S)),
            cache_ttl_s=float(os.environ.get("MARKET_CACHE_TTL", DEFAULT_CACHE_TTL_S)),
            environment=os.environ.get("MARKET_ENV", "production"),
        )
