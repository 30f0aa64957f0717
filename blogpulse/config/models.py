"""Configuration models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

PLATFORM_KINDS = ("feed", "sitemap", "paginatedArchive", "genericHTML")
ARCHIVE_STYLES = ("wordpress", "blogger")


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("blogpulse", description="Database name")
    user: str = Field("blogpulse_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field("BLOGPULSE_DB_PASSWORD", description="Environment variable for password")
    pool_size: int = Field(10, description="Maximum pooled connections", ge=1, le=100)


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API")
    timeout: float = Field(15.0, description="Seconds allowed per completion, retries included", gt=0, le=60)


class HarvestConfig(BaseModel):
    """Source harvesting parameters."""

    timeout: float = Field(15.0, description="Per-request timeout in seconds", gt=0, le=120)
    max_concurrent_sources: int = Field(5, ge=1, le=50)
    max_concurrent_pages: int = Field(4, description="Page fetches in flight per source", ge=1, le=20)
    max_pages: int = Field(20, description="Archive pages to walk per source", ge=1, le=500)
    page_delay: float = Field(0.5, description="Pause between archive pages in seconds", ge=0)
    max_sitemap_posts: int = Field(50, description="Post pages fetched per sitemap source", ge=1)
    max_sitemap_depth: int = Field(3, ge=1, le=10)
    llm_html_limit: int = Field(15000, description="HTML characters sent to the LLM extractor", ge=1000)


class PipelineConfig(BaseModel):
    """Classification pipeline parameters."""

    max_concurrent_posts: int = Field(4, ge=1, le=32)
    min_company_words: int = Field(500, description="Word floor for a single-company deep dive", ge=0)
    validation_retries: int = Field(2, description="Extra resolve/validate attempts", ge=0, le=5)
    content_limit: int = Field(10000, description="Article characters sent to inference", ge=500)
    min_body_chars: int = Field(200, description="Shortest body text worth classifying", ge=0)
    persist_batch_size: int = Field(100, ge=1, le=100)


class ResolverConfig(BaseModel):
    """Entity resolver parameters."""

    min_market_cap: float = Field(30_000_000, description="Minimum market cap to accept a match", ge=0)
    overlap_threshold: float = Field(0.70, ge=0.0, le=1.0)


class EnrichmentConfig(BaseModel):
    """Market-cap enrichment parameters."""

    batch_size: int = Field(10, ge=1, le=100)
    min_delay: float = Field(1.5, description="Lower bound of the polite delay in seconds", ge=0)
    max_delay: float = Field(3.0, description="Upper bound of the polite delay in seconds", ge=0)
    timeout: float = Field(15.0, gt=0)
    fallback_retries: int = Field(3, ge=0, le=10)
    backoff_step: float = Field(3.0, description="Rate-limit backoff step in seconds", ge=0)

    @field_validator("max_delay")
    @classmethod
    def validate_delay_range(cls, v: float, info) -> float:
        """Validate that the delay range is ordered."""
        if v < info.data.get("min_delay", 0):
            raise ValueError("max_delay must be >= min_delay")
        return v


class NotificationConfig(BaseModel):
    """Email delivery and alerting configuration."""

    smtp_host: Optional[str] = Field(None, description="SMTP server host; delivery is disabled when unset")
    smtp_port: int = Field(587, description="SMTP server port")
    smtp_user: Optional[str] = Field(None, description="SMTP login")
    smtp_password_env: Optional[str] = Field("BLOGPULSE_SMTP_PASSWORD", description="Environment variable for SMTP password")
    from_email: str = Field("Blogpulse <no-reply@blogpulse.local>", description="Sender address")
    alert_emails: List[str] = Field(default_factory=list, description="Operators receiving alerts")
    app_url: str = Field("http://localhost:3000", description="Base URL used in notification links")


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    harvest: HarvestConfig = Field(default_factory=HarvestConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)


class SourceConfig(BaseModel):
    """Source configuration from sources.yaml."""

    name: str = Field(..., description="Source name")
    platform_kind: str = Field("feed", description="feed, sitemap, paginatedArchive or genericHTML")
    origin_url: str = Field(..., description="Blog home URL")
    feed_url: Optional[str] = Field(None, description="Feed URL when known")
    extraction_method: str = Field("RSS", description="RSS, SITEMAP, ARCHIVE, SCRAPER or AI")
    post_path_pattern: str = Field("/p/", description="Path fragment identifying posts in a sitemap")
    archive_style: str = Field("wordpress", description="Pagination style for archive sources")
    selectors: Dict[str, str] = Field(default_factory=dict, description="CSS selectors for a static listing page")
    enabled: bool = Field(True, description="Whether source is enabled")

    @field_validator("platform_kind")
    @classmethod
    def validate_platform_kind(cls, v: str) -> str:
        """Validate platform kind."""
        if v not in PLATFORM_KINDS:
            raise ValueError(f"platform_kind must be one of {', '.join(PLATFORM_KINDS)}")
        return v

    @field_validator("archive_style")
    @classmethod
    def validate_archive_style(cls, v: str) -> str:
        """Validate archive pagination style."""
        if v not in ARCHIVE_STYLES:
            raise ValueError(f"archive_style must be one of {', '.join(ARCHIVE_STYLES)}")
        return v

    @field_validator("origin_url")
    @classmethod
    def validate_origin_url(cls, v: str) -> str:
        """Prefix bare domains with https."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            v = "https://" + v
        return v.rstrip("/")
