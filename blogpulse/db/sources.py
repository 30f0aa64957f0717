"""Source management in database."""

from typing import List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..config import SourceConfig
from ..models import Source


class SourceManager:
    """Manage sources in database.

    Sources are never deleted; removal from the config deactivates them.
    """

    def sync_sources(
        self,
        conn: Connection,
        sources: List[SourceConfig],
    ) -> List[Source]:
        """Upsert configured sources and deactivate the ones no longer listed."""
        synced = []

        with conn.cursor() as cur:
            for source in sources:
                cur.execute(
                    """
                    INSERT INTO sources (
                        name, platform_kind, origin_url, feed_url, extraction_method,
                        post_path_pattern, archive_style, selectors, enabled
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (name) DO UPDATE SET
                        platform_kind = EXCLUDED.platform_kind,
                        origin_url = EXCLUDED.origin_url,
                        feed_url = EXCLUDED.feed_url,
                        extraction_method = EXCLUDED.extraction_method,
                        post_path_pattern = EXCLUDED.post_path_pattern,
                        archive_style = EXCLUDED.archive_style,
                        selectors = EXCLUDED.selectors,
                        enabled = EXCLUDED.enabled
                    RETURNING *
                    """,
                    (
                        source.name,
                        source.platform_kind,
                        source.origin_url,
                        source.feed_url,
                        source.extraction_method,
                        source.post_path_pattern,
                        source.archive_style,
                        Jsonb(source.selectors),
                        source.enabled,
                    ),
                )
                synced.append(Source.model_validate(cur.fetchone()))

            cur.execute(
                "UPDATE sources SET enabled = FALSE WHERE enabled AND NOT (name = ANY(%s))",
                ([s.name for s in sources],),
            )

        conn.commit()
        return synced

    def get_sources(self, conn: Connection, active_only: bool = False) -> List[Source]:
        """Get sources from database."""
        query = "SELECT * FROM sources"
        if active_only:
            query += " WHERE enabled"
        with conn.cursor() as cur:
            cur.execute(query + " ORDER BY name")
            return [Source.model_validate(row) for row in cur.fetchall()]

    def get_source(self, conn: Connection, name: str) -> Optional[Source]:
        """Get a source by name."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM sources WHERE name = %s", (name,))
            row = cur.fetchone()
        return Source.model_validate(row) if row else None

    def mark_checked(self, conn: Connection, source_ids: List[int]) -> None:
        """Stamp last_checked_at after a harvest attempt."""
        if not source_ids:
            return
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE sources SET last_checked_at = CURRENT_TIMESTAMP WHERE id = ANY(%s)",
                (source_ids,),
            )
        conn.commit()

    def set_extraction(
        self,
        conn: Connection,
        name: str,
        platform_kind: str,
        extraction_method: str,
        feed_url: Optional[str],
        archive_style: str = "wordpress",
    ) -> None:
        """Record the adapter chosen by platform detection."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE sources
                SET platform_kind = %s, extraction_method = %s, feed_url = %s, archive_style = %s
                WHERE name = %s
                """,
                (platform_kind, extraction_method, feed_url, archive_style, name),
            )
        conn.commit()
