"""Data models for ingestion."""

from typing import List, Optional

from pydantic import BaseModel, Field


class RawPost(BaseModel):
    """A post as returned by a source adapter.

    Never persisted as-is. ``link`` is the natural key.
    """

    title: str = Field(..., description="Post title")
    link: str = Field(..., description="Post URL")
    published: str = Field("", description="Publication date as found, possibly empty")
    author: Optional[str] = Field(None, description="Post author")
    image: Optional[str] = Field(None, description="Lead image URL")
    body_text: Optional[str] = Field(None, description="Body text when the source provides it")
    source_id: Optional[int] = Field(None, description="Source database ID")
    source_name: str = Field("", description="Source name")


class FetchResult(BaseModel):
    """Result of running one source adapter."""

    source_name: str = Field(..., description="Source name")
    source_url: str = Field(..., description="URL the adapter started from")
    success: bool = Field(..., description="Whether the fetch succeeded")
    posts: List[RawPost] = Field(default_factory=list, description="Extracted posts")
    error: Optional[str] = Field(None, description="Error message if failed")
    blocked: bool = Field(False, description="Whether an anti-bot response was seen")
    method: Optional[str] = Field(None, description="Strategy that produced the posts")

    @property
    def post_count(self) -> int:
        """Number of posts extracted."""
        return len(self.posts)


class ArticleContent(BaseModel):
    """Extracted article body."""

    url: str = Field(..., description="Article URL")
    text: str = Field("", description="Extracted main text")
    fetch_success: bool = Field(True, description="Whether fetch was successful")
    error: Optional[str] = Field(None, description="Error message if failed")

    @property
    def word_count(self) -> int:
        """Whitespace-delimited word count of the text."""
        return len(self.text.split())


class HarvestResult(BaseModel):
    """Merged output of a harvest across sources."""

    posts: List[RawPost] = Field(default_factory=list, description="Posts from all sources")
    results: List[FetchResult] = Field(default_factory=list, description="Per-source results")

    @property
    def failed_sources(self) -> List[str]:
        """Names of sources whose adapter failed."""
        return [r.source_name for r in self.results if not r.success]
