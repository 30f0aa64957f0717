"""Run management in database."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import Run


class RunManager:
    """Manage harvest runs in database.

    Every trigger gets its own run row, so invoking the harvest twice on the
    same day leaves two records.
    """

    def create_run(
        self,
        conn: Connection,
        run_date: str,
        started_at: Optional[datetime] = None,
    ) -> int:
        """Create a new run record and return its id."""
        if started_at is None:
            started_at = datetime.now(timezone.utc)

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO runs (run_date, started_at, status)
                VALUES (%s, %s, 'running')
                RETURNING id
                """,
                (run_date, started_at),
            )
            run_id = cur.fetchone()["id"]

        conn.commit()
        return run_id

    def update_run_status(
        self,
        conn: Connection,
        run_id: int,
        status: str,
        stats_json: Optional[Dict] = None,
    ) -> None:
        """Close a run with its status and statistics."""
        finished_at = datetime.now(timezone.utc) if status in ("success", "failed") else None

        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE runs
                SET status = %s, finished_at = %s, stats_json = %s
                WHERE id = %s
                """,
                (status, finished_at, Jsonb(stats_json) if stats_json else None, run_id),
            )

        conn.commit()

    def get_recent_runs(self, conn: Connection, limit: int = 10) -> List[Run]:
        """Most recent runs first."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM runs ORDER BY started_at DESC LIMIT %s", (limit,))
            return [Run.model_validate(row) for row in cur.fetchall()]
