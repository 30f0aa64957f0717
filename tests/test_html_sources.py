"""Tests for the sitemap, generic HTML and LLM-backed adapters."""

import json

from blogpulse.inference import MockLLMProvider
from blogpulse.ingestion import HTMLFetcher, LLMPostExtractor, PlatformDetector, SitemapFetcher
from blogpulse.ingestion.html_fetcher import discover_feed_links
from blogpulse.ingestion.scrapers import ScraperRegistry, StaticListScraper

from .helpers import article_page, make_source, route_transport, rss_feed, rss_item

SITEMAP_INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>https://s.test/sitemap-posts.xml</loc></sitemap>
  <sitemap><loc>https://s.test/sitemap-broken.xml</loc></sitemap>
</sitemapindex>"""

SITEMAP_POSTS = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://s.test/p/older</loc><lastmod>2024-01-01</lastmod></url>
  <url><loc>https://s.test/p/newer</loc><lastmod>2024-02-01</lastmod></url>
  <url><loc>https://s.test/about</loc><lastmod>2024-03-01</lastmod></url>
</urlset>"""


class TestSitemapFetcher:
    def source(self):
        return make_source(
            name="Sitemap blog",
            platform_kind="sitemap",
            origin_url="https://s.test",
            feed_url=None,
            post_path_pattern="/p/",
        )

    def routes(self):
        return {
            "https://s.test/sitemap.xml": SITEMAP_INDEX,
            "https://s.test/sitemap-posts.xml": SITEMAP_POSTS,
            "https://s.test/p/older": article_page(title="Older", author="Sam", published="2024-01-01T08:00:00Z"),
            "https://s.test/p/newer": article_page(title="Newer", author="Sam"),
        }

    def test_collects_matching_posts_newest_first(self):
        fetcher = SitemapFetcher(transport=route_transport(self.routes()))

        result = fetcher.fetch_source_sync(self.source())

        assert result.success
        assert result.method == "SITEMAP"
        assert [p.link for p in result.posts] == ["https://s.test/p/newer", "https://s.test/p/older"]
        assert [p.title for p in result.posts] == ["Newer", "Older"]

    def test_lastmod_stands_in_for_a_missing_date(self):
        result = SitemapFetcher(transport=route_transport(self.routes())).fetch_source_sync(self.source())

        by_link = {p.link: p for p in result.posts}
        assert by_link["https://s.test/p/older"].published == "2024-01-01T08:00:00Z"
        assert by_link["https://s.test/p/newer"].published == "2024-02-01"

    def test_max_posts_caps_page_fetches(self):
        requested = []
        transport = route_transport(self.routes(), requests=requested)

        result = SitemapFetcher(transport=transport, max_posts=1).fetch_source_sync(self.source())

        assert [p.link for p in result.posts] == ["https://s.test/p/newer"]
        assert "https://s.test/p/older" not in requested

    def test_mixed_lastmod_formats_are_ordered_by_instant(self):
        sitemap = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://s.test/p/midnight</loc><lastmod>2024-02-01</lastmod></url>
  <url><loc>https://s.test/p/late</loc><lastmod>2024-01-31T23:30:00-05:00</lastmod></url>
  <url><loc>https://s.test/p/undated</loc></url>
</urlset>"""
        transport = route_transport({
            "https://s.test/sitemap.xml": sitemap,
            "https://s.test/p/midnight": article_page(title="Midnight", author="Sam"),
            "https://s.test/p/late": article_page(title="Late", author="Sam"),
            "https://s.test/p/undated": article_page(title="Undated", author="Sam"),
        })

        result = SitemapFetcher(transport=transport).fetch_source_sync(self.source())

        assert [p.title for p in result.posts] == ["Late", "Midnight", "Undated"]

    def test_missing_top_level_sitemap_fails(self):
        result = SitemapFetcher(transport=route_transport({})).fetch_source_sync(self.source())

        assert not result.success


LISTING = """<html><body>
  <div class="blog-list-item"><a href="/blogs/one"><h3>One</h3></a><time datetime="2024-03-01">1 Mar</time></div>
  <div class="blog-list-item"><a href="/blogs/two"><h3>Two</h3></a><time datetime="2024-03-02">2 Mar</time></div>
  <div class="blog-list-item"><a href="/blogs/one"><h3>One again</h3></a></div>
</body></html>"""


class TestHTMLFetcher:
    def test_registry_scraper_wins(self):
        transport = route_transport({"https://h.test/blogs": LISTING})
        source = make_source(platform_kind="genericHTML", origin_url="https://h.test", feed_url="https://h.test/blogs")

        result = HTMLFetcher(transport=transport).fetch_source_sync(source)

        assert result.success
        assert [(p.title, p.link, p.published) for p in result.posts] == [
            ("One", "https://h.test/blogs/one", "2024-03-01"),
            ("Two", "https://h.test/blogs/two", "2024-03-02"),
        ]

    def test_source_selectors_run_first(self):
        html = '<ul><li class="entry"><a class="t" href="/x/1">Configured</a><span class="d">Mar 3, 2024</span></li></ul>'
        source = make_source(
            platform_kind="genericHTML",
            origin_url="https://h.test",
            feed_url="https://h.test/list",
            selectors={"item": "li.entry", "title": "a.t", "date": "span.d"},
        )
        transport = route_transport({"https://h.test/list": html})

        result = HTMLFetcher(transport=transport, registry=ScraperRegistry([])).fetch_source_sync(source)

        assert [(p.title, p.link, p.published) for p in result.posts] == [
            ("Configured", "https://h.test/x/1", "Mar 3, 2024"),
        ]

    def test_discovered_feed_is_used(self):
        page = (
            '<html><head><link rel="alternate" type="application/rss+xml" href="/rss.xml"></head>'
            "<body><p>No listing</p></body></html>"
        )
        feed = rss_feed([rss_item("From feed", "https://h.test/p/1")])
        transport = route_transport({"https://h.test": page, "https://h.test/rss.xml": feed})
        source = make_source(platform_kind="genericHTML", origin_url="https://h.test", feed_url=None)

        result = HTMLFetcher(transport=transport).fetch_source_sync(source)

        assert [p.title for p in result.posts] == ["From feed"]

    def test_llm_extractor_is_last_resort(self):
        llm = MockLLMProvider(responses=[json.dumps({
            "posts": [{"title": "Found by model", "link": "/p/9", "publishedAt": "2024-04-01"}]
        })])
        transport = route_transport({"https://h.test": "<html><body><div>Cards</div></body></html>"})
        source = make_source(platform_kind="genericHTML", origin_url="https://h.test", feed_url=None)

        fetcher = HTMLFetcher(transport=transport, llm_extractor=LLMPostExtractor(llm))
        result = fetcher.fetch_source_sync(source)

        assert result.success
        assert [(p.title, p.link, p.published) for p in result.posts] == [
            ("Found by model", "https://h.test/p/9", "2024-04-01"),
        ]

    def test_no_strategy_yields_empty_success(self):
        transport = route_transport({"https://h.test": "<html><body></body></html>"})
        source = make_source(platform_kind="genericHTML", origin_url="https://h.test", feed_url=None)

        result = HTMLFetcher(transport=transport).fetch_source_sync(source)

        assert result.success
        assert result.posts == []

    def test_discover_feed_links(self):
        html = (
            '<link rel="alternate" type="application/atom+xml" href="https://h.test/atom.xml">'
            '<link rel="stylesheet" href="/style.css">'
        )
        assert discover_feed_links(html, "https://h.test") == ["https://h.test/atom.xml"]

    def test_selectors_without_item_are_rejected(self):
        try:
            StaticListScraper.from_selectors("bad", {"title": "h2"})
        except ValueError as e:
            assert "item" in str(e)
        else:
            raise AssertionError("expected ValueError")


class TestLLMPostExtractor:
    def test_fenced_reply_is_parsed_and_links_absolutized(self):
        reply = "```json\n" + json.dumps({"posts": [
            {"title": "A", "link": "/a", "author": "Ann", "image": "/a.jpg"},
            {"title": "Dup", "link": "https://h.test/a"},
            {"title": "Script", "link": "javascript:void(0)"},
        ]}) + "\n```"
        extractor = LLMPostExtractor(MockLLMProvider(responses=[reply]))

        posts = extractor.extract("<html><script>x()</script></html>", "https://h.test/blog")

        assert [(p.title, p.link, p.image) for p in posts] == [("A", "https://h.test/a", "https://h.test/a.jpg")]

    def test_unparsable_reply_yields_nothing(self):
        extractor = LLMPostExtractor(MockLLMProvider(responses=["I could not find posts."]))

        assert extractor.extract("<html></html>", "https://h.test") == []

    def test_html_is_condensed_and_truncated(self):
        llm = MockLLMProvider(responses=["[]"])
        LLMPostExtractor(llm, max_chars=1000).extract(
            "<html><script>" + "x" * 5000 + "</script><body>" + "y" * 5000 + "</body></html>",
            "https://h.test",
        )

        prompt = llm.calls[0][1]
        assert "xxxx" not in prompt
        assert "y" * 1000 not in prompt


class TestPlatformDetector:
    def test_blogspot_uses_blogger_archive(self):
        detection = PlatformDetector(transport=route_transport({})).detect_sync("https://vim.blogspot.com")

        assert detection.platform_kind == "paginatedArchive"
        assert detection.archive_style == "blogger"

    def test_wordpress_with_feed_uses_paged_archive(self):
        home = (
            '<html><head><link rel="stylesheet" href="/wp-content/theme.css">'
            '<link rel="alternate" type="application/rss+xml" href="https://w.test/feed/"></head></html>'
        )
        routes = {"https://w.test": home, "https://w.test/feed/": rss_feed([])}

        detection = PlatformDetector(transport=route_transport(routes)).detect_sync("https://w.test/")

        assert detection.platform == "wordpress"
        assert detection.platform_kind == "paginatedArchive"
        assert detection.feed_url == "https://w.test/feed/"

    def test_plain_feed(self):
        routes = {"https://f.test": "<html></html>", "https://f.test/rss.xml": rss_feed([])}

        detection = PlatformDetector(transport=route_transport(routes)).detect_sync("https://f.test")

        assert detection.platform_kind == "feed"
        assert detection.extraction_method == "RSS"
        assert detection.feed_url == "https://f.test/rss.xml"

    def test_listing_page_uses_scraper(self):
        listing = "<html><body><article><a href='/a'>A</a></article></body></html>"
        routes = {"https://l.test": "<html></html>", "https://l.test/blog": listing}

        detection = PlatformDetector(transport=route_transport(routes)).detect_sync("https://l.test")

        assert detection.platform_kind == "genericHTML"
        assert detection.extraction_method == "SCRAPER"
        assert detection.feed_url == "https://l.test/blog"

    def test_unreachable_site_falls_back_to_llm(self):
        detection = PlatformDetector(transport=route_transport({})).detect_sync("https://n.test")

        assert detection.platform_kind == "genericHTML"
        assert detection.extraction_method == "AI"
        assert detection.feed_url is None
