"""
Record transformer: maps raw Agmarknet records onto the canonical PriceQuote.

Upstream rows are loosely typed -- fields may be missing, blank, numeric or
named after the older Agmarknet columns (e.g. 'Modal_x0020_Price'). All of
that is resolved here; everything downstream sees PriceQuote only.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

DEFAULT_SOURCE = "data.gov.in"
SOURCE_DATE_FORMAT = "%d/%m/%Y"

# Canonical field -> upstream names, in lookup order
RAW_FIELD_NAMES = {
    "state": ("state", "State"),
    "district": ("district", "District"),
    "market": ("market", "Market"),
    "commodity": ("commodity", "Commodity"),
    "variety": ("variety", "Variety"),
    "grade": ("grade", "Grade"),
    "min_price": ("min_price", "Min_x0020_Price", "Min_Price"),
    "max_price": ("max_price", "Max_x0020_Price", "Max_Price"),
    "modal_price": ("modal_price", "Modal_x0020_Price", "Modal_Price"),
    "arrival_date": ("arrival_date", "Arrival_Date"),
}


class PriceQuote(BaseModel):
    """One market/commodity/date price observation, as the mobile app renders it."""
    serial_no: str = Field(..., alias="S.No")
    city: str = Field(..., alias="City")
    state: str = Field(..., alias="State")
    district: str = Field(..., alias="District")
    market: str = Field(..., alias="Market")
    commodity: str = Field(..., alias="Commodity")
    variety: str = Field(..., alias="Variety")
    grade: str = Field(..., alias="Grade")
    # The 'Prize'/'Model' spellings are what existing clients read
    min_price: str = Field(..., alias="Min Prize")
    max_price: str = Field(..., alias="Max Prize")
    modal_price: str = Field(..., alias="Model Prize")
    arrival_date: str = Field(..., alias="Date")
    source: str = Field(DEFAULT_SOURCE, alias="Source")

    model_config = {"populate_by_name": True, "frozen": True}


def raw_field(record: Dict[str, Any], name: str) -> Optional[str]:
    """Return the first non-blank value for a canonical field, as a string."""
    for key in RAW_FIELD_NAMES[name]:
        value = record.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def today_in_source_format() -> str:
    return datetime.now().strftime(SOURCE_DATE_FORMAT)


def transform_record(
    record: Dict[str, Any],
    serial_no: int,
    commodity: str,
    source: str = DEFAULT_SOURCE,
    today: Callable[[], str] = today_in_source_format,
) -> PriceQuote:
    """
    Map one raw upstream record onto a PriceQuote.

    Args:
        record: Raw upstream row (any subset of fields may be missing).
        serial_no: 1-based position in the final response.
        commodity: Queried commodity, used when the row has none.
        source: Source tag for the quote.
        today: Supplies the date used when arrival_date is missing.
    """
    if not isinstance(record, dict):
        record = {}

    def get(name):
        return raw_field(record, name)

    market = get("market")
    district = get("district")

    return PriceQuote(
        serial_no=str(serial_no),
        city=market or district or "Unknown",
        state=get("state") or "Unknown",
        district=district or "Unknown",
        market=market or "Unknown",
        commodity=get("commodity") or commodity,
        variety=get("variety") or "Standard",
        grade=get("grade") or "FAQ",
        min_price=get("min_price") or "0",
        max_price=get("max_price") or "0",
        modal_price=get("modal_price") or "0",
        arrival_date=get("arrival_date") or today(),
        source=source,
    )


def transform_records(
    records: Iterable[Dict[str, Any]],
    commodity: str,
    source: str = DEFAULT_SOURCE,
) -> List[PriceQuote]:
    """
    Transform an already filtered and truncated record list.

    Serial numbers follow the position in `records`, starting at 1.
    """
    return [
        transform_record(record, i, commodity, source=source)
        for i, record in enumerate(records, start=1)
    ]
