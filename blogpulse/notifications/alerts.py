"""Operator alerts for resolution failures and failed runs."""

from html import escape
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from .email import EmailDelivery

console = Console()


class OperatorAlerter:
    """Print alerts and email them to operators when SMTP is configured.

    Raised alerts are kept in ``alerts`` as (kind, message) pairs.
    """

    def __init__(self, delivery: Optional[EmailDelivery] = None, recipients: Optional[List[str]] = None) -> None:
        self.delivery = delivery
        self.recipients = list(recipients or [])
        self.alerts: List[tuple] = []

    def _raise(self, kind: str, title: str, message: str) -> None:
        self.alerts.append((kind, message))
        console.print(Panel(message, title=title, style="red"))

        if self.delivery is None:
            return
        for recipient in self.recipients:
            self.delivery.send(
                recipient,
                f"[blogpulse] {title}",
                f"<html><body><pre>{escape(message)}</pre></body></html>",
            )

    def resolution_failure(self, link: str, title: str, names: List[str]) -> None:
        """No company survived validation after all retries."""
        self._raise(
            "resolution",
            "Resolution failure",
            f"{title}\n{link}\nExtracted: {', '.join(names)}\nStored without company matches.",
        )

    def catastrophic(self, error: str, stats: Optional[dict] = None) -> None:
        """The harvest run failed without producing any new post."""
        details = "\n".join(f"{k}: {v}" for k, v in (stats or {}).items())
        self._raise(
            "catastrophic",
            "Harvest run failed",
            f"{error}\n{details}".strip(),
        )
