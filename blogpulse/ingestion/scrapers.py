"""Site-specific scrapers for listing pages without a feed."""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from rich.console import Console

from ..models import Source
from .fields import clean_author, date_from_text, first_success
from .http import absolutize, is_http_url
from .models import RawPost

console = Console()

UrlPredicate = Callable[[str], bool]


class Scraper(ABC):
    """A listing-page scraper with a URL predicate."""

    name = "scraper"

    def can_handle(self, url: str) -> bool:
        return True

    @abstractmethod
    def scrape(self, html: str, base_url: str) -> List[RawPost]:
        """Posts found on a listing page."""
        pass


class StaticListScraper(Scraper):
    """Scrape a static post list driven by CSS selectors.

    ``item`` selects one element per post; the other selectors are relative to
    it. When ``link`` is empty the item itself (or its first anchor) supplies
    the href. Links are absolutized and deduplicated.
    """

    def __init__(
        self,
        name: str,
        item: str,
        title: str = "h2, h3",
        link: str = "",
        image: str = "img",
        author: str = "",
        date: str = "time",
        predicate: Optional[UrlPredicate] = None,
    ) -> None:
        self.name = name
        self.selectors = {
            "item": item,
            "title": title,
            "link": link,
            "image": image,
            "author": author,
            "date": date,
        }
        self.predicate = predicate

    @classmethod
    def from_selectors(cls, name: str, selectors: Dict[str, str]) -> "StaticListScraper":
        """Build a scraper from a source's configured selectors."""
        known = {k: v for k, v in selectors.items() if k in ("item", "title", "link", "image", "author", "date")}
        if "item" not in known:
            raise ValueError(f"Selectors for {name} need an 'item' entry")
        return cls(name=name, **known)

    def can_handle(self, url: str) -> bool:
        return self.predicate(url) if self.predicate else True

    def scrape(self, html: str, base_url: str) -> List[RawPost]:
        soup = BeautifulSoup(html, "html.parser")
        posts: List[RawPost] = []
        seen = set()

        for item in soup.select(self.selectors["item"]):
            title_el = item.select_one(self.selectors["title"]) if self.selectors["title"] else None
            title = title_el.get_text(" ", strip=True) if title_el else ""

            link_el = item.select_one(self.selectors["link"]) if self.selectors["link"] else None
            if link_el is None:
                link_el = item if item.name == "a" else item.find("a", href=True)
            link = absolutize(link_el.get("href") if link_el else None, base_url)

            if not title and link_el is not None:
                title = link_el.get_text(" ", strip=True)
            if not title or not is_http_url(link) or link in seen:
                continue
            seen.add(link)

            image = None
            if self.selectors["image"]:
                img = item.select_one(self.selectors["image"])
                if img is not None:
                    image = absolutize(img.get("src") or img.get("data-src"), base_url)

            author = None
            if self.selectors["author"]:
                author_el = item.select_one(self.selectors["author"])
                author = clean_author(author_el.get_text(" ", strip=True)) if author_el else None

            published = ""
            if self.selectors["date"]:
                date_el = item.select_one(self.selectors["date"])
                if date_el is not None:
                    published = date_el.get("datetime") or date_from_text(date_el.get_text(" ", strip=True)) or date_el.get_text(" ", strip=True)

            posts.append(
                RawPost(title=title, link=link, published=published, author=author, image=image)
            )

        return posts


DEFAULT_SCRAPERS: List[Scraper] = [
    StaticListScraper(
        name="load-more-list",
        item="a.blog-item",
        title=".bi-title",
        author=".blog-item-author",
        date=".blog-item-info span:first-child",
        predicate=lambda url: "motilaloswal.com/learning-centre" in url,
    ),
    StaticListScraper(
        name="static-post-list",
        item=".blog-list-item",
        title="h3",
        predicate=lambda url: "/blogs" in url and "page" not in url,
    ),
    StaticListScraper(
        name="wordpress",
        item="article.post, article.type-post",
        title=".entry-title a, .entry-title",
        link=".entry-title a",
        author=".author.vcard a, .author a",
        date="time.entry-date.published, time.entry-date",
    ),
]


class ScraperRegistry:
    """Ordered scrapers; the first one returning at least one post wins."""

    def __init__(self, scrapers: Optional[List[Scraper]] = None) -> None:
        self.scrapers: List[Scraper] = list(DEFAULT_SCRAPERS if scrapers is None else scrapers)

    def register(self, scraper: Scraper, first: bool = False) -> None:
        """Add a scraper at the end (or the front) of the order."""
        if first:
            self.scrapers.insert(0, scraper)
        else:
            self.scrapers.append(scraper)

    def candidates(self, source: Source, url: str) -> List[Scraper]:
        """Scrapers to try for a page, source-configured selectors first."""
        scrapers: List[Scraper] = []
        if source.selectors:
            scrapers.append(StaticListScraper.from_selectors(source.name, source.selectors))
        scrapers.extend(s for s in self.scrapers if s.can_handle(url))
        return scrapers

    def scrape(self, source: Source, html: str, url: str) -> Tuple[Optional[str], List[RawPost]]:
        """Run matching scrapers in order; returns (scraper name, posts)."""
        def attempt(scraper: Scraper):
            def run() -> Optional[Tuple[str, List[RawPost]]]:
                posts = scraper.scrape(html, url)
                return (scraper.name, posts) if posts else None
            run.__name__ = scraper.name
            return run

        found = first_success(attempt(s) for s in self.candidates(source, url))
        if found is None:
            return None, []
        return found
