"""Tests for field extraction fallbacks."""

import asyncio

from bs4 import BeautifulSoup

from blogpulse.ingestion.fields import (
    author_from_entry,
    clean_author,
    date_from_meta,
    date_from_text,
    first_success,
    image_from_entry,
    resolve_entry_fields,
)

from .helpers import article_page


class PageLoader:
    """Async page loader that records requested URLs."""

    def __init__(self, html=None):
        self.html = html
        self.requested = []

    async def __call__(self, url):
        self.requested.append(url)
        return self.html


def resolve(entry, loader, link="https://x.test/p/1"):
    return asyncio.run(resolve_entry_fields(entry, link, loader))


class TestResolveEntryFields:
    """Feed fields win; the article page fills in only what is missing."""

    def test_feed_fields_are_used_without_loading_the_page(self):
        entry = {
            "author": "RSS Author",
            "published": "Tue, 05 Mar 2024 10:00:00 +0000",
            "enclosures": [{"href": "https://x.test/rss.jpg", "type": "image/jpeg"}],
        }
        loader = PageLoader(article_page(author="Meta Author", image="https://x.test/og.jpg"))

        fields = resolve(entry, loader)

        assert fields.author == "RSS Author"
        assert fields.image == "https://x.test/rss.jpg"
        assert fields.published == "Tue, 05 Mar 2024 10:00:00 +0000"
        assert loader.requested == []

    def test_rss_value_beats_meta_value(self):
        entry = {"author": "RSS Author"}
        loader = PageLoader(article_page(author="Meta Author", published="2024-03-05T10:00:00Z"))

        fields = resolve(entry, loader)

        assert fields.author == "RSS Author"
        assert fields.published == "2024-03-05T10:00:00Z"
        assert loader.requested == ["https://x.test/p/1"]

    def test_meta_value_used_when_feed_has_none(self):
        loader = PageLoader(
            article_page(
                author="Meta Author",
                image="/img/og.jpg",
                published="2024-03-05T10:00:00+05:30",
            )
        )

        fields = resolve({}, loader)

        assert fields.author == "Meta Author"
        assert fields.image == "https://x.test/img/og.jpg"
        assert fields.published == "2024-03-05T10:00:00+05:30"

    def test_missing_everywhere_yields_none(self):
        fields = resolve({}, PageLoader(None))

        assert fields.author is None
        assert fields.image is None
        assert fields.published is None

    def test_entry_html_is_searched_before_the_page(self):
        entry = {"summary": '<p>Posted on March 5, 2024</p><img src="/inline.png">'}
        loader = PageLoader(None)

        fields = resolve(entry, loader)

        assert fields.published == "March 5, 2024"
        assert fields.image == "https://x.test/inline.png"


class TestEntryStrategies:
    def test_author_detail_and_authors_list(self):
        assert author_from_entry({"author_detail": {"name": "Detail Name"}}) == "Detail Name"
        assert author_from_entry({"authors": [{"name": "Listed Name"}]}) == "Listed Name"

    def test_media_thumbnail_is_an_image(self):
        entry = {"media_thumbnail": [{"url": "https://x.test/thumb"}]}
        assert image_from_entry(entry) == "https://x.test/thumb"

    def test_non_image_enclosure_is_ignored(self):
        entry = {"enclosures": [{"href": "https://x.test/a.mp3", "type": "audio/mpeg"}]}
        assert image_from_entry(entry) is None

    def test_clean_author(self):
        assert clean_author("By  Jane   Doe") == "Jane Doe"
        assert clean_author("jane@x.test (Jane Doe)") == "Jane Doe"
        assert clean_author("   ") is None
        assert clean_author(None) is None

    def test_date_from_json_ld(self):
        soup = BeautifulSoup(
            '<script type="application/ld+json">{"@graph": [{"datePublished": "2024-01-02"}]}</script>',
            "html.parser",
        )
        assert date_from_meta(soup) == "2024-01-02"

    def test_date_from_text_patterns(self):
        assert date_from_text("updated 2024-02-01 by admin") == "2024-02-01"
        assert date_from_text("on 5 Mar 2024") == "5 Mar 2024"
        assert date_from_text("no date here") is None


class TestFirstSuccess:
    def test_returns_first_non_empty(self):
        assert first_success([lambda: None, lambda: "", lambda: "b", lambda: "c"]) == "b"

    def test_raising_strategy_counts_as_empty(self):
        def broken():
            raise RuntimeError("boom")

        assert first_success([broken, lambda: "ok"]) == "ok"

    def test_all_empty(self):
        assert first_success([lambda: None]) is None
