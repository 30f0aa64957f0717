"""Schemas for inference responses."""

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models import Classification, Sentiment

_LABEL_LOOKUP = {
    label.value.lower().replace("_", " "): label for label in Classification
}


class ClassificationOutput(BaseModel):
    """Classify stage response."""

    classification: Classification = Field(Classification.OTHER)
    summary: str = Field("", description="1-2 sentence thesis summary")
    companies: List[str] = Field(default_factory=list, description="Company names from the main narrative")

    @field_validator("classification", mode="before")
    @classmethod
    def normalize_label(cls, v: Any) -> Any:
        """Accept labels regardless of case and underscores."""
        if isinstance(v, str):
            key = v.strip().lower().replace("_", " ").replace("-", " ")
            return _LABEL_LOOKUP.get(key, v)
        return v

    @field_validator("companies", mode="before")
    @classmethod
    def clean_companies(cls, v: Any) -> Any:
        """Drop blanks and duplicates, keeping order."""
        if v is None:
            return []
        if not isinstance(v, list):
            return v
        seen = set()
        names = []
        for item in v:
            if isinstance(item, dict):
                item = item.get("company") or item.get("name")
            if not isinstance(item, str) or not item.strip():
                continue
            key = item.strip().lower()
            if key not in seen:
                seen.add(key)
                names.append(item.strip())
        return names


class CompanyMention(BaseModel):
    """Extract stage item."""

    company: str = Field(..., min_length=1, validation_alias=AliasChoices("company", "name"))
    description: str = Field("", description="Why the company is in scope")


class ValidationVerdict(BaseModel):
    """Validate stage item."""

    company: str = Field("", validation_alias=AliasChoices("company", "name"))
    is_match: bool = Field(..., validation_alias=AliasChoices("isMatch", "is_match", "match"))
    reason: str = Field("")
    confidence: float = Field(0.0)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        """Clamp confidence into [0, 1]; percentages are scaled down."""
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if value > 1.0:
            value = value / 100.0
        return max(0.0, min(1.0, value))


class SummaryOutput(BaseModel):
    """Summarize stage response."""

    summary: str = Field(..., min_length=1)
    sentiment: Sentiment = Field(Sentiment.NEUTRAL, validation_alias=AliasChoices("sentiment", "tags"))

    @field_validator("sentiment", mode="before")
    @classmethod
    def pick_sentiment(cls, v: Any) -> Any:
        """Accept a list of tags and keep the first recognised one."""
        if isinstance(v, list):
            for item in v:
                if isinstance(item, str) and item.strip().lower() in {s.value for s in Sentiment}:
                    return item.strip().lower()
            return Sentiment.NEUTRAL
        if isinstance(v, str):
            return v.strip().lower()
        return v


class ExtractedPost(BaseModel):
    """Post listed on an HTML page, as returned by the LLM extractor."""

    title: str = Field(..., min_length=1)
    link: str = Field(..., min_length=1)
    published: Optional[str] = Field(None, validation_alias=AliasChoices("published", "publishedAt", "date"))
    author: Optional[str] = Field(None)
    image: Optional[str] = Field(None)
