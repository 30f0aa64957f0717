"""Enriched post models."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import DBModel


class Classification(str, Enum):
    """Article classification labels."""

    COMPANY_ANALYSIS = "Company_analysis"
    SECTOR_ANALYSIS = "Sector_analysis"
    MULTI_COMPANY_ANALYSIS = "Multiple_company_analysis"
    MULTI_COMPANY_UPDATE = "Multiple_company_update"
    GENERAL_GUIDE = "General_investment_guide"
    OTHER = "Other"


class Sentiment(str, Enum):
    """Single-valued sentiment tag."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


ANALYSIS_CLASSIFICATIONS = {
    Classification.COMPANY_ANALYSIS,
    Classification.MULTI_COMPANY_ANALYSIS,
    Classification.SECTOR_ANALYSIS,
}


class CompanyMatch(BaseModel):
    """A resolved company that survived contextual validation."""

    extracted_name: str = Field(..., description="Name as written in the article")
    resolved_name: str = Field(..., description="Reference list name")
    nse_code: Optional[str] = Field(None, description="NSE trading symbol")
    bse_code: Optional[str] = Field(None, description="BSE scrip code")
    market_cap: Optional[float] = Field(None, description="Market capitalization")
    confidence: float = Field(..., description="Resolution confidence", ge=0.0, le=1.0)


class EnrichedPost(DBModel):
    """A persisted post with classification, summary and company matches.

    ``link`` is the dedup key and never changes once stored.
    """

    link: str = Field(..., description="Canonical post URL")
    title: str = Field(..., description="Post title")
    published_at: datetime = Field(..., description="Publication time")
    author: Optional[str] = Field(None, description="Post author")
    image: Optional[str] = Field(None, description="Lead image URL")
    summary: str = Field("", description="Thesis-first summary")
    classification: Classification = Field(Classification.OTHER, description="Classification label")
    sentiment_tags: List[Sentiment] = Field(default_factory=list, description="Sentiment tags")
    company_matches: List[CompanyMatch] = Field(default_factory=list, description="Validated companies")
    source_id: Optional[int] = Field(None, description="Source database ID")
    source_name: Optional[str] = Field(None, description="Source name")
    is_valid_analysis: bool = Field(False, description="Substantive analysis with at least one company")
    last_checked_at: Optional[datetime] = Field(None, description="Last pipeline pass")

    @property
    def company_names(self) -> List[str]:
        """Resolved names of matched companies."""
        return [m.resolved_name for m in self.company_matches]
