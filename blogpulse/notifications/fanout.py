"""Match new posts against trackers and schedule deliveries."""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Set, Tuple

from psycopg import Connection
from pydantic import BaseModel, Field
from rich.console import Console

from ..db.tracking import TrackingManager
from ..models import EnrichedPost, Notification
from .email import DeliveryResult, EmailDelivery, build_post_email

console = Console()

Target = Tuple[str, str]


class FanoutResult(BaseModel):
    """Counts from one fan-out pass."""

    notifications: int = Field(0, description="Notification rows created")
    skipped: int = Field(0, description="Pairs that already had a notification")
    scheduled: int = Field(0, description="Deliveries scheduled")


def post_targets(post: EnrichedPost) -> Set[Target]:
    """(target_type, target_id) pairs a post can match."""
    targets: Set[Target] = {("company", name) for name in post.company_names}
    if post.author and post.author.strip():
        targets.add(("author", post.author.strip()))
    return targets


class NotificationFanout:
    """Create one notification per (user, post, target) and send it.

    Deliveries run on a thread pool. A failed delivery is logged and leaves
    the notification row in place.
    """

    def __init__(
        self,
        tracking: TrackingManager,
        delivery: Optional[EmailDelivery] = None,
        app_url: str = "http://localhost:3000",
        max_workers: int = 4,
    ) -> None:
        self.tracking = tracking
        self.delivery = delivery
        self.app_url = app_url
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: List[Future] = []

    def matches_by_user(self, conn: Connection, post: EnrichedPost) -> Dict[str, Set[Target]]:
        """Per-user set of targets this post matches."""
        targets = post_targets(post)
        by_user: Dict[str, Set[Target]] = {}

        for target_type in ("company", "author"):
            ids = [target_id for kind, target_id in targets if kind == target_type]
            for tracker in self.tracking.trackers_for_targets(conn, target_type, ids):
                by_user.setdefault(tracker.user_id, set()).add((tracker.target_type, tracker.target_id))

        return by_user

    def schedule(self, to: str, post: EnrichedPost, target: Target) -> None:
        """Queue one email delivery."""
        if self.delivery is None:
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers)
        subject, html = build_post_email(post, target[0], target[1], self.app_url)
        self._pending.append(self._executor.submit(self.delivery.send, to, subject, html))

    def fan_out(self, conn: Connection, posts: List[EnrichedPost]) -> FanoutResult:
        """Notify trackers of newly persisted posts."""
        result = FanoutResult()

        for post in posts:
            if post.id is None:
                continue
            by_user = self.matches_by_user(conn, post)
            if not by_user:
                continue

            emails = self.tracking.get_user_emails(conn, list(by_user))
            for user_id, targets in by_user.items():
                for target in sorted(targets):
                    notification_id = self.tracking.create_notification(
                        conn,
                        Notification(
                            user_id=user_id,
                            post_id=post.id,
                            target_type=target[0],
                            target_id=target[1],
                        ),
                    )
                    if notification_id is None:
                        result.skipped += 1
                        continue
                    result.notifications += 1

                    email = emails.get(user_id)
                    if email and self.delivery is not None:
                        self.schedule(email, post, target)
                        result.scheduled += 1

        return result

    def wait(self) -> List[DeliveryResult]:
        """Block until scheduled deliveries finish and report failures."""
        results: List[DeliveryResult] = []
        for future in self._pending:
            try:
                results.append(future.result())
            except Exception as e:
                console.print(f"[red]Delivery task failed: {e}[/red]")
        self._pending = []

        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

        failed = sum(1 for r in results if not r.success)
        if failed:
            console.print(f"[yellow]{failed} of {len(results)} notification emails failed[/yellow]")
        return results
