"""Cursor persistence for background jobs."""

from datetime import datetime
from typing import Optional

from psycopg import Connection


class JobStateManager:
    """Store one resumable cursor per named job."""

    def get_cursor(self, conn: Connection, name: str) -> Optional[datetime]:
        with conn.cursor() as cur:
            cur.execute("SELECT cursor_value FROM job_state WHERE name = %s", (name,))
            row = cur.fetchone()
        return row["cursor_value"] if row else None

    def set_cursor(self, conn: Connection, name: str, value: Optional[datetime]) -> None:
        """Save the cursor; None restarts the job from the beginning."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO job_state (name, cursor_value)
                VALUES (%s, %s)
                ON CONFLICT (name) DO UPDATE SET cursor_value = EXCLUDED.cursor_value
                """,
                (name, value),
            )
        conn.commit()
