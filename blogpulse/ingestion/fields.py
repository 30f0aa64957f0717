"""Author, image and date extraction with ordered fallbacks.

Each field is extracted by trying an ordered list of strategies and keeping
the first non-empty answer. Feed-level strategies run first; the article page
is only fetched when they come up empty.
"""

import json
import re
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, TypeVar

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field
from rich.console import Console

from .http import absolutize

console = Console()

T = TypeVar("T")

AUTHOR_FIELDS = (
    "author",
    "dc_creator",
    "creator",
    "itunes_author",
    "meta_author",
    "article_author",
    "atom_author",
)
IMAGE_FIELDS = ("post-thumbnail", "post_thumbnail", "featuredimage", "featured_image", "image")
DATE_FIELDS = ("published", "pubdate", "updated", "created", "issued", "dc_date", "date")

AUTHOR_META = (
    {"name": "author"},
    {"property": "article:author"},
    {"name": "article:author"},
    {"name": "twitter:creator"},
)
AUTHOR_SELECTORS = (
    "[rel='author']",
    "[itemprop='author']",
    ".author-name",
    ".post-author",
    ".entry-author",
    ".author",
    ".byline",
)
IMAGE_META = (
    {"property": "og:image"},
    {"name": "og:image"},
    {"name": "twitter:image"},
    {"property": "twitter:image"},
    {"name": "twitter:image:src"},
)
DATE_META = (
    {"property": "article:published_time"},
    {"name": "article:published_time"},
    {"name": "publish-date"},
    {"name": "pubdate"},
    {"name": "date"},
    {"itemprop": "datePublished"},
    {"property": "og:published_time"},
)
DATE_SELECTORS = (
    ".post-date",
    ".entry-date",
    ".published",
    ".post-meta time",
    ".date",
    ".meta-date",
)

MONTHS = (
    "Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|Jun(?:e)?|Jul(?:y)?|"
    "Aug(?:ust)?|Sep(?:t(?:ember)?)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?"
)
DATE_PATTERNS = (
    re.compile(r"\b\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?(?:\.\d+)?(?:Z|[+-]\d{2}:?\d{2})?)?\b"),
    re.compile(rf"\b(?:{MONTHS})\.? \d{{1,2}},? \d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}} (?:{MONTHS})\.?,? \d{{4}}\b", re.IGNORECASE),
)


def first_success(strategies: Iterable[Callable[[], Optional[T]]]) -> Optional[T]:
    """Run strategies in order and return the first non-empty result.

    A strategy that raises counts as yielding nothing.
    """
    for strategy in strategies:
        try:
            value = strategy()
        except Exception as e:
            console.print(f"[dim]Strategy {getattr(strategy, '__name__', strategy)} failed: {e}[/dim]")
            continue
        if value:
            return value
    return None


def parse_html(html: Optional[str]) -> Optional[BeautifulSoup]:
    """Parse an HTML document or fragment, None for empty input."""
    if not html or not html.strip():
        return None
    return BeautifulSoup(html, "html.parser")


def clean_author(value: Any) -> Optional[str]:
    """Strip a leading 'By' and collapse whitespace."""
    if not isinstance(value, str):
        return None
    value = re.sub(r"^\s*by\s+", "", value, flags=re.IGNORECASE)
    value = re.sub(r"\s+", " ", value).strip()
    # feedparser renders "email (Name)" for RSS <author>
    match = re.match(r"^\S+@\S+\s+\((.+)\)$", value)
    if match:
        value = match.group(1).strip()
    return value or None


def _meta_content(soup: Optional[BeautifulSoup], candidates: Iterable[Mapping[str, str]]) -> Optional[str]:
    if soup is None:
        return None
    for attrs in candidates:
        tag = soup.find("meta", attrs=dict(attrs))
        if tag and tag.get("content", "").strip():
            return tag["content"].strip()
    return None


def _first_text(soup: Optional[BeautifulSoup], selectors: Iterable[str]) -> Optional[str]:
    if soup is None:
        return None
    for selector in selectors:
        for element in soup.select(selector):
            text = element.get_text(" ", strip=True)
            if text:
                return text
    return None


def entry_html(entry: Mapping[str, Any]) -> Optional[str]:
    """HTML body carried by a feed entry (content:encoded, then description)."""
    content = entry.get("content")
    if content:
        values = [c.get("value", "") for c in content if isinstance(c, Mapping)]
        joined = "\n".join(v for v in values if v)
        if joined.strip():
            return joined
    for key in ("summary", "description"):
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


# --- author ---------------------------------------------------------------

def author_from_entry(entry: Mapping[str, Any]) -> Optional[str]:
    """Author from feed entry fields, in priority order."""
    for field in AUTHOR_FIELDS:
        value = entry.get(field)
        if isinstance(value, Mapping):
            value = value.get("name")
        author = clean_author(value)
        if author:
            return author
    detail = entry.get("author_detail")
    if isinstance(detail, Mapping):
        author = clean_author(detail.get("name"))
        if author:
            return author
    for item in entry.get("authors") or []:
        if isinstance(item, Mapping):
            author = clean_author(item.get("name"))
            if author:
                return author
    return None


def author_from_meta(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Author from meta tags; URL-valued article:author tags are ignored."""
    value = _meta_content(soup, AUTHOR_META)
    if value and value.startswith(("http://", "https://")):
        return None
    return clean_author(value)


def author_from_byline(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Author from visible byline elements."""
    return clean_author(_first_text(soup, AUTHOR_SELECTORS))


# --- image ----------------------------------------------------------------

def _looks_like_image(url: str, mime: str = "") -> bool:
    if mime.startswith("image/"):
        return True
    return bool(re.search(r"\.(jpe?g|png|gif|webp|avif)(\?|$)", url, re.IGNORECASE))


def image_from_entry(entry: Mapping[str, Any]) -> Optional[str]:
    """Image from enclosure and media fields, in priority order."""
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href and _looks_like_image(href, enclosure.get("type", "")):
            return href
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if not url:
                continue
            if key == "media_thumbnail" or media.get("medium") == "image" or _looks_like_image(url, media.get("type", "")):
                return url
    for field in IMAGE_FIELDS:
        value = entry.get(field)
        if isinstance(value, Mapping):
            value = value.get("href") or value.get("url")
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def image_from_html(soup: Optional[BeautifulSoup], base_url: str = "") -> Optional[str]:
    """First usable <img> in an HTML fragment, then its og:image."""
    if soup is None:
        return None
    for img in soup.find_all("img"):
        src = absolutize(img.get("src") or img.get("data-src"), base_url)
        if src:
            return src
    return absolutize(_meta_content(soup, IMAGE_META), base_url)


def image_from_meta(soup: Optional[BeautifulSoup], base_url: str = "") -> Optional[str]:
    """og:image, then twitter:image."""
    return absolutize(_meta_content(soup, IMAGE_META), base_url)


def image_from_page(soup: Optional[BeautifulSoup], base_url: str = "") -> Optional[str]:
    """Most prominent on-page image: inside <article>, else the first <img>."""
    if soup is None:
        return None
    for selector in ("article img", "main img", ".post img", "img"):
        for img in soup.select(selector):
            src = absolutize(img.get("src") or img.get("data-src"), base_url)
            if src:
                return src
    return None


# --- date -----------------------------------------------------------------

def date_from_entry(entry: Mapping[str, Any]) -> Optional[str]:
    """Raw publication date string from feed entry fields."""
    for field in DATE_FIELDS:
        value = entry.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def date_from_text(text: Optional[str]) -> Optional[str]:
    """First date-looking substring in free text."""
    if not text:
        return None
    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def date_from_html(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Date pattern in the text of an HTML fragment."""
    if soup is None:
        return None
    return date_from_text(soup.get_text(" ", strip=True))


def date_from_meta(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Explicit article metadata: meta tags, then JSON-LD datePublished."""
    value = _meta_content(soup, DATE_META)
    if value:
        return value
    if soup is None:
        return None
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        found = _find_json_key(data, "datePublished")
        if found:
            return found
    return None


def _find_json_key(data: Any, key: str) -> Optional[str]:
    if isinstance(data, dict):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        children: List[Any] = list(data.values())
    elif isinstance(data, list):
        children = data
    else:
        return None
    for child in children:
        found = _find_json_key(child, key)
        if found:
            return found
    return None


def date_from_time_element(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Structured <time datetime=...> element."""
    if soup is None:
        return None
    for element in soup.select("time[datetime], [itemprop='datePublished'][datetime]"):
        value = element.get("datetime", "").strip()
        if value:
            return value
    return None


def date_from_visible(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """Visible date text near the post header, then anywhere in the body."""
    if soup is None:
        return None
    value = date_from_text(_first_text(soup, DATE_SELECTORS))
    if value:
        return value
    body = soup.find("article") or soup.find("main")
    if body is not None:
        return date_from_text(body.get_text(" ", strip=True))
    return None


def title_from_page(soup: Optional[BeautifulSoup]) -> Optional[str]:
    """og:title, then the first <h1>, then <title>."""
    value = _meta_content(soup, ({"property": "og:title"}, {"name": "twitter:title"}))
    if value:
        return value
    if soup is None:
        return None
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return h1.get_text(" ", strip=True)
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return None


# --- chains ---------------------------------------------------------------

class PostFields(BaseModel):
    """Author, image and date resolved for one post."""

    author: Optional[str] = Field(None)
    image: Optional[str] = Field(None)
    published: Optional[str] = Field(None)

    @property
    def complete(self) -> bool:
        return bool(self.author and self.image and self.published)


def fields_from_page(soup: Optional[BeautifulSoup], base_url: str) -> PostFields:
    """Resolve fields from a fetched article page: meta tags, then on-page elements."""
    return PostFields(
        author=first_success([
            lambda: author_from_meta(soup),
            lambda: author_from_byline(soup),
        ]),
        image=first_success([
            lambda: image_from_meta(soup, base_url),
            lambda: image_from_page(soup, base_url),
        ]),
        published=first_success([
            lambda: date_from_meta(soup),
            lambda: date_from_time_element(soup),
            lambda: date_from_visible(soup),
        ]),
    )


async def resolve_entry_fields(
    entry: Mapping[str, Any],
    link: str,
    load_page: Callable[[str], Awaitable[Optional[str]]],
) -> PostFields:
    """Resolve author, image and date for a feed entry.

    Feed fields are tried first, then HTML embedded in the entry. The article
    page is fetched at most once and only when a field is still missing.
    """
    fragment = parse_html(entry_html(entry))

    fields = PostFields(
        author=first_success([
            lambda: author_from_entry(entry),
            lambda: author_from_meta(fragment),
        ]),
        image=first_success([
            lambda: image_from_entry(entry),
            lambda: image_from_html(fragment, link),
        ]),
        published=first_success([
            lambda: date_from_entry(entry),
            lambda: date_from_html(fragment),
        ]),
    )
    if fields.complete or not link:
        return fields

    page = parse_html(await load_page(link))
    if page is None:
        return fields

    page_fields = fields_from_page(page, link)
    return PostFields(
        author=fields.author or page_fields.author,
        image=fields.image or page_fields.image,
        published=fields.published or page_fields.published,
    )
