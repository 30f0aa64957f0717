"""In-memory stand-ins for storage, mail and HTTP used across the tests."""

from datetime import datetime, timedelta, timezone
from html import escape
from typing import Callable, Dict, Iterable, List, Optional, Union

import httpx

from blogpulse.models import CompanyReference, EnrichedPost, Notification, Source, Tracker
from blogpulse.notifications import DeliveryResult

Handler = Union[str, httpx.Response, Callable[[httpx.Request], httpx.Response]]


def route_transport(routes: Dict[str, Handler], requests: Optional[List[str]] = None) -> httpx.MockTransport:
    """MockTransport serving fixed URLs; anything else answers 404.

    A route may be a body string, a prepared response or a handler.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if requests is not None:
            requests.append(url)
        # httpx renders a bare origin with a trailing slash
        route = routes.get(url)
        if route is None and request.url.path == "/":
            route = routes.get(url.rstrip("/"))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, text=route)

    return httpx.MockTransport(handler)


def rss_item(
    title: str,
    link: str,
    pub_date: Optional[str] = "Tue, 05 Mar 2024 10:00:00 +0000",
    author: Optional[str] = "Jane Analyst",
    image: Optional[str] = "https://x.test/img/lead.jpg",
    content: Optional[str] = None,
) -> str:
    parts = [f"<title>{escape(title)}</title>", f"<link>{escape(link)}</link>"]
    if pub_date:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if author:
        parts.append(f"<dc:creator>{escape(author)}</dc:creator>")
    if image:
        parts.append(f'<enclosure url="{escape(image)}" type="image/jpeg" length="100"/>')
    if content:
        parts.append(f"<content:encoded><![CDATA[{content}]]></content:encoded>")
    return "<item>" + "".join(parts) + "</item>"


def rss_feed(items: Iterable[str], title: str = "Test blog") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:content="http://purl.org/rss/1.0/modules/content/">'
        f"<channel><title>{escape(title)}</title><link>https://x.test</link>"
        + "".join(items)
        + "</channel></rss>"
    )


def article_page(
    title: str = "A post",
    body: str = "",
    author: Optional[str] = None,
    image: Optional[str] = None,
    published: Optional[str] = None,
) -> str:
    meta = [f'<meta property="og:title" content="{escape(title)}">']
    if author:
        meta.append(f'<meta name="author" content="{escape(author)}">')
    if image:
        meta.append(f'<meta property="og:image" content="{escape(image)}">')
    if published:
        meta.append(f'<meta property="article:published_time" content="{published}">')
    paragraphs = "".join(f"<p>{escape(p)}</p>" for p in body.split("\n\n") if p)
    return (
        f"<html><head><title>{escape(title)}</title>{''.join(meta)}</head>"
        f"<body><nav>Home</nav><article><h1>{escape(title)}</h1>{paragraphs}</article></body></html>"
    )


def words(count: int, word: str = "word") -> str:
    return " ".join([word] * count)


def make_source(**overrides) -> Source:
    values = {
        "id": 1,
        "name": "Test blog",
        "platform_kind": "feed",
        "origin_url": "https://x.test",
        "feed_url": "https://x.test/feed",
    }
    values.update(overrides)
    return Source(**values)


def make_company(name: str, nse_code: Optional[str] = None, market_cap: Optional[float] = 5e9, **overrides) -> CompanyReference:
    return CompanyReference(name=name, nse_code=nse_code, market_cap=market_cap, **overrides)


class FakePostStorage:
    """Post storage keyed by link, assigning ids on insert."""

    def __init__(self, existing: Iterable[str] = ()) -> None:
        self.posts: Dict[str, EnrichedPost] = {}
        self.existing = set(existing)
        self.lookups: List[List[str]] = []
        self._next_id = 1

    def links_exist(self, conn, links: List[str]) -> Dict[str, bool]:
        self.lookups.append(list(links))
        known = self.existing | set(self.posts)
        return {link: link in known for link in links}

    def insert_posts(self, conn, posts: List[EnrichedPost], batch_size: int = 100) -> List[EnrichedPost]:
        inserted = []
        for post in posts:
            if post.link in self.posts or post.link in self.existing:
                continue
            stored = post.model_copy(update={"id": self._next_id, "created_at": datetime.now(timezone.utc)})
            self._next_id += 1
            self.posts[post.link] = stored
            inserted.append(stored)
        return inserted


class FakeSourceManager:
    """Source registry that mirrors the YAML entries it is given."""

    def __init__(self) -> None:
        self.checked: List[int] = []

    def sync_sources(self, conn, configs) -> List[Source]:
        return [Source(id=index, **config.model_dump()) for index, config in enumerate(configs, start=1)]

    def mark_checked(self, conn, source_ids: List[int]) -> None:
        self.checked.extend(source_ids)


class FakeCompanyStorage:
    """Reference list with created_at stamps one second apart."""

    def __init__(self, companies: Iterable[CompanyReference] = ()) -> None:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.companies: List[CompanyReference] = []
        for index, company in enumerate(companies, start=1):
            self.companies.append(
                company.model_copy(update={"id": index, "created_at": base + timedelta(seconds=index)})
            )
        self.updates: List[tuple] = []

    def load_reference(self, conn) -> List[CompanyReference]:
        return list(self.companies)

    def fetch_unchecked_batch(self, conn, after: Optional[datetime], limit: int) -> List[CompanyReference]:
        rows = [
            c for c in self.companies
            if not c.market_cap_checked and (after is None or c.created_at >= after)
        ]
        return sorted(rows, key=lambda c: (c.created_at, c.id))[:limit]

    def update_market_cap(self, conn, company_id: int, market_cap: Optional[float]) -> None:
        self.updates.append((company_id, market_cap))
        for index, company in enumerate(self.companies):
            if company.id == company_id:
                self.companies[index] = company.model_copy(
                    update={
                        "market_cap": market_cap if market_cap is not None else company.market_cap,
                        "market_cap_checked": True,
                    }
                )

    def get(self, company_id: int) -> CompanyReference:
        return next(c for c in self.companies if c.id == company_id)


class FakeJobStateManager:
    def __init__(self) -> None:
        self.cursors: Dict[str, Optional[datetime]] = {}

    def get_cursor(self, conn, name: str) -> Optional[datetime]:
        return self.cursors.get(name)

    def set_cursor(self, conn, name: str, value: Optional[datetime]) -> None:
        self.cursors[name] = value


class FakeTrackingManager:
    """Trackers and notifications held in lists."""

    def __init__(self, trackers: Iterable[Tracker] = (), emails: Optional[Dict[str, str]] = None) -> None:
        self.trackers = list(trackers)
        self.emails = dict(emails or {})
        self.notifications: List[Notification] = []

    def trackers_for_targets(self, conn, target_type: str, target_ids: List[str]) -> List[Tracker]:
        return [t for t in self.trackers if t.target_type == target_type and t.target_id in target_ids]

    def get_user_emails(self, conn, user_ids: List[str]) -> Dict[str, str]:
        return {u: self.emails[u] for u in user_ids if u in self.emails}

    def create_notification(self, conn, notification: Notification) -> Optional[int]:
        key = (notification.user_id, notification.post_id, notification.target_type, notification.target_id)
        for existing in self.notifications:
            if (existing.user_id, existing.post_id, existing.target_type, existing.target_id) == key:
                return None
        stored = notification.model_copy(update={"id": len(self.notifications) + 1})
        self.notifications.append(stored)
        return stored.id


class FakeDelivery:
    """Records sends instead of talking to an SMTP server."""

    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.sent: List[tuple] = []
        self.fail_for = set(fail_for)

    def send(self, to: str, subject: str, html: str) -> DeliveryResult:
        self.sent.append((to, subject, html))
        if to in self.fail_for:
            return DeliveryResult(to=to, success=False, error="rejected")
        return DeliveryResult(to=to, success=True)
