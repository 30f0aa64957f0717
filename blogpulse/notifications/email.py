"""SMTP email delivery."""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

from pydantic import BaseModel, Field
from rich.console import Console

from ..config import NotificationConfig
from ..models import EnrichedPost

console = Console()


class DeliveryResult(BaseModel):
    """Outcome of one email send."""

    to: str = Field(..., description="Recipient address")
    success: bool = Field(..., description="Whether the server accepted the message")
    error: Optional[str] = Field(None, description="Error message if failed")


class EmailDelivery:
    """Send HTML email through an SMTP server with STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_email: str = "Blogpulse <no-reply@blogpulse.local>",
        timeout: float = 15.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: NotificationConfig, password: Optional[str]) -> Optional["EmailDelivery"]:
        """Delivery for the configured server, or None when SMTP is not configured."""
        if not config.smtp_host:
            return None
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            user=config.smtp_user,
            password=password,
            from_email=config.from_email,
        )

    def send(self, to: str, subject: str, html: str) -> DeliveryResult:
        """Send one message; failures are returned, not raised."""
        msg = MIMEMultipart()
        msg["From"] = self.from_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            console.print(f"[red]Failed to send email to {to}: {e}[/red]")
            return DeliveryResult(to=to, success=False, error=str(e))

        return DeliveryResult(to=to, success=True)


def build_post_email(post: EnrichedPost, target_type: str, target_id: str, app_url: str) -> tuple:
    """Subject and HTML body announcing a new post for a tracked target."""
    label = "company" if target_type == "company" else "author"
    subject = f"New post on {target_id}: {post.title}"
    companies = ", ".join(escape(name) for name in post.company_names) or "-"
    sentiment = ", ".join(tag.value for tag in post.sentiment_tags) or "neutral"

    html = f"""
    <html>
        <body>
            <p>A new post matches the {label} you follow, <b>{escape(target_id)}</b>.</p>
            <h3><a href="{escape(post.link, quote=True)}">{escape(post.title)}</a></h3>
            <p>{escape(post.summary)}</p>
            <table border="1" cellpadding="5" cellspacing="0">
                <tr><th>Classification</th><td>{escape(post.classification.value)}</td></tr>
                <tr><th>Sentiment</th><td>{escape(sentiment)}</td></tr>
                <tr><th>Companies</th><td>{companies}</td></tr>
                <tr><th>Source</th><td>{escape(post.source_name or "-")}</td></tr>
            </table>
            <p><a href="{escape(app_url.rstrip('/'), quote=True)}/notifications">Manage notifications</a></p>
        </body>
    </html>
    """
    return subject, html
