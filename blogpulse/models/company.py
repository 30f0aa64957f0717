"""Reference company list model."""

from typing import List, Optional

from pydantic import Field

from .base import DBModel


class CompanyReference(DBModel):
    """An exchange-listed instrument used for entity resolution.

    Rows with ``market_cap_checked`` false form the enrichment work queue.
    """

    name: str = Field(..., description="Listed company name")
    nse_code: Optional[str] = Field(None, description="NSE trading symbol")
    bse_code: Optional[str] = Field(None, description="BSE scrip code")
    exchange: str = Field("NSE", description="Primary exchange")
    instrument_token: Optional[str] = Field(None, description="Upstream instrument token")
    isin: Optional[str] = Field(None, description="ISIN")
    market_cap: Optional[float] = Field(None, description="Market capitalization")
    market_cap_checked: bool = Field(False, description="Whether enrichment has run")
    search_tokens: List[str] = Field(default_factory=list, description="Upper-cased name tokens")
