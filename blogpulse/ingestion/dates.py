"""Best-effort publication date parsing."""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import pendulum
from pendulum.parsing.exceptions import ParserError


def parse_published(value: Optional[str]) -> Optional[datetime]:
    """Parse a feed or page date string into an aware UTC datetime.

    Handles RFC 822 feed dates, ISO 8601 and loose forms such as
    "March 5, 2024". Returns None when nothing parses.
    """
    if not value or not value.strip():
        return None
    value = value.strip()

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    try:
        dt = pendulum.parse(value, strict=False)
    except (ValueError, OverflowError, ParserError):
        return None
    if not isinstance(dt, datetime):
        # pendulum returns Date/Time objects for partial inputs
        try:
            dt = pendulum.datetime(dt.year, dt.month, dt.day)
        except AttributeError:
            return None
    return pendulum.instance(dt).in_timezone("UTC")
