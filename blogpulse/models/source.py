"""Source model for tracked blogs."""

from datetime import datetime
from typing import Dict, Optional

from pydantic import Field

from .base import DBModel


class Source(DBModel):
    """A tracked blog or channel.

    Sources are deactivated, never deleted. ``extraction_method`` is only
    changed by platform detection.
    """

    name: str = Field(..., description="Source name")
    platform_kind: str = Field("feed", description="feed, sitemap, paginatedArchive or genericHTML")
    origin_url: str = Field(..., description="Blog home URL")
    feed_url: Optional[str] = Field(None, description="Feed URL when known")
    extraction_method: str = Field("RSS", description="How posts are extracted")
    post_path_pattern: str = Field("/p/", description="Post path fragment for sitemap sources")
    archive_style: str = Field("wordpress", description="Pagination style for archive sources")
    selectors: Dict[str, str] = Field(default_factory=dict, description="Listing page CSS selectors")
    enabled: bool = Field(True, description="Whether the source is harvested")
    last_checked_at: Optional[datetime] = Field(None, description="Last harvest attempt")
