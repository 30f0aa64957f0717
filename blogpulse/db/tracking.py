"""Trackers, users and notifications."""

from typing import Dict, List, Optional

from psycopg import Connection

from ..models import Notification, Tracker
from ..models.tracking import TargetType


class TrackingManager:
    """Manage user trackers and the notifications they produce."""

    def upsert_user(self, conn: Connection, user_id: str, email: str) -> None:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO users (id, email) VALUES (%s, %s)
                ON CONFLICT (id) DO UPDATE SET email = EXCLUDED.email
                """,
                (user_id, email),
            )
        conn.commit()

    def get_user_emails(self, conn: Connection, user_ids: List[str]) -> Dict[str, str]:
        """Delivery addresses for a set of users."""
        if not user_ids:
            return {}
        with conn.cursor() as cur:
            cur.execute("SELECT id, email FROM users WHERE id = ANY(%s)", (list(user_ids),))
            return {row["id"]: row["email"] for row in cur.fetchall()}

    def track(self, conn: Connection, user_id: str, target_type: TargetType, target_id: str) -> bool:
        """Subscribe a user; returns False when the tracker already existed."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO trackers (user_id, target_type, target_id)
                VALUES (%s, %s, %s)
                ON CONFLICT (user_id, target_type, target_id) DO NOTHING
                RETURNING id
                """,
                (user_id, target_type, target_id),
            )
            created = cur.fetchone() is not None
        conn.commit()
        return created

    def untrack(self, conn: Connection, user_id: str, target_type: TargetType, target_id: str) -> bool:
        with conn.cursor() as cur:
            cur.execute(
                "DELETE FROM trackers WHERE user_id = %s AND target_type = %s AND target_id = %s",
                (user_id, target_type, target_id),
            )
            removed = cur.rowcount > 0
        conn.commit()
        return removed

    def list_trackers(self, conn: Connection, user_id: Optional[str] = None) -> List[Tracker]:
        with conn.cursor() as cur:
            if user_id:
                cur.execute(
                    "SELECT * FROM trackers WHERE user_id = %s ORDER BY target_type, target_id",
                    (user_id,),
                )
            else:
                cur.execute("SELECT * FROM trackers ORDER BY user_id, target_type, target_id")
            return [Tracker.model_validate(row) for row in cur.fetchall()]

    def trackers_for_targets(
        self,
        conn: Connection,
        target_type: TargetType,
        target_ids: List[str],
    ) -> List[Tracker]:
        """Trackers following any of the given targets."""
        if not target_ids:
            return []
        with conn.cursor() as cur:
            cur.execute(
                "SELECT * FROM trackers WHERE target_type = %s AND target_id = ANY(%s)",
                (target_type, list(target_ids)),
            )
            return [Tracker.model_validate(row) for row in cur.fetchall()]

    def create_notification(self, conn: Connection, notification: Notification) -> Optional[int]:
        """Insert a notification; returns None when it already existed."""
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO notifications (user_id, post_id, target_type, target_id)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, post_id, target_type, target_id) DO NOTHING
                RETURNING id
                """,
                (
                    notification.user_id,
                    notification.post_id,
                    notification.target_type,
                    notification.target_id,
                ),
            )
            row = cur.fetchone()
        conn.commit()
        return row["id"] if row else None
