"""Database initialization and schema management."""

from typing import Any, Dict

from psycopg.errors import DatabaseError
from rich.console import Console

from .connection import get_connection

console = Console()

UPDATED_AT_TABLES = (
    "sources",
    "runs",
    "posts",
    "companies",
    "trackers",
    "notifications",
    "users",
    "job_state",
)

SCHEMA_SQL = """
-- Sources table
CREATE TABLE IF NOT EXISTS sources (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    platform_kind TEXT NOT NULL DEFAULT 'feed'
        CHECK (platform_kind IN ('feed', 'sitemap', 'paginatedArchive', 'genericHTML')),
    origin_url TEXT NOT NULL,
    feed_url TEXT,
    extraction_method TEXT NOT NULL DEFAULT 'RSS',
    post_path_pattern TEXT NOT NULL DEFAULT '/p/',
    archive_style TEXT NOT NULL DEFAULT 'wordpress',
    selectors JSONB NOT NULL DEFAULT '{}'::jsonb,
    enabled BOOLEAN NOT NULL DEFAULT TRUE,
    last_checked_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Runs table
CREATE TABLE IF NOT EXISTS runs (
    id SERIAL PRIMARY KEY,
    run_date DATE NOT NULL,
    started_at TIMESTAMPTZ NOT NULL,
    finished_at TIMESTAMPTZ,
    status TEXT NOT NULL DEFAULT 'running' CHECK (status IN ('running', 'success', 'failed')),
    stats_json JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Enriched posts; link is the dedup key
CREATE TABLE IF NOT EXISTS posts (
    id SERIAL PRIMARY KEY,
    link TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    published_at TIMESTAMPTZ NOT NULL,
    author TEXT,
    image TEXT,
    summary TEXT NOT NULL DEFAULT '',
    classification TEXT NOT NULL DEFAULT 'Other',
    sentiment_tags TEXT[] NOT NULL DEFAULT '{}',
    source_id INTEGER REFERENCES sources(id),
    source_name TEXT,
    is_valid_analysis BOOLEAN NOT NULL DEFAULT FALSE,
    last_checked_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Validated company matches per post
CREATE TABLE IF NOT EXISTS post_companies (
    post_id INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    resolved_name TEXT NOT NULL,
    extracted_name TEXT NOT NULL,
    nse_code TEXT,
    bse_code TEXT,
    market_cap DOUBLE PRECISION,
    confidence REAL NOT NULL,
    PRIMARY KEY (post_id, resolved_name)
);

-- Reference company list
CREATE TABLE IF NOT EXISTS companies (
    id SERIAL PRIMARY KEY,
    symbol_key TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    nse_code TEXT,
    bse_code TEXT,
    exchange TEXT NOT NULL,
    instrument_token TEXT,
    isin TEXT,
    market_cap DOUBLE PRECISION,
    market_cap_checked BOOLEAN NOT NULL DEFAULT FALSE,
    search_tokens TEXT[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Users (identity is managed elsewhere; only the delivery address is kept)
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Trackers
CREATE TABLE IF NOT EXISTS trackers (
    id SERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    target_type TEXT NOT NULL CHECK (target_type IN ('company', 'author')),
    target_id TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, target_type, target_id)
);

-- Notifications
CREATE TABLE IF NOT EXISTS notifications (
    id SERIAL PRIMARY KEY,
    user_id TEXT NOT NULL,
    post_id INTEGER NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    target_type TEXT NOT NULL,
    target_id TEXT NOT NULL,
    is_read BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, post_id, target_type, target_id)
);

-- Background job cursors
CREATE TABLE IF NOT EXISTS job_state (
    name TEXT PRIMARY KEY,
    cursor_value TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_posts_published_at ON posts(published_at DESC, id DESC);
CREATE INDEX IF NOT EXISTS idx_posts_classification ON posts(classification, published_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_author ON posts(author);
CREATE INDEX IF NOT EXISTS idx_post_companies_name ON post_companies(resolved_name);
CREATE INDEX IF NOT EXISTS idx_companies_unchecked ON companies(created_at, id) WHERE NOT market_cap_checked;
CREATE INDEX IF NOT EXISTS idx_trackers_target ON trackers(target_type, target_id);
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id, is_read);
CREATE INDEX IF NOT EXISTS idx_runs_run_date ON runs(run_date);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';
"""


def trigger_sql(table: str) -> str:
    """updated_at trigger for a table."""
    return (
        f"CREATE OR REPLACE TRIGGER update_{table}_updated_at BEFORE UPDATE ON {table} "
        "FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();"
    )


def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except Exception as e:
        console.print(f"[red]Database connection failed: {e}[/red]")
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                for table in UPDATED_AT_TABLES:
                    cur.execute(trigger_sql(table))
            conn.commit()
    except DatabaseError as e:
        console.print(f"[red]Failed to initialize database schema: {e}[/red]")
        raise
