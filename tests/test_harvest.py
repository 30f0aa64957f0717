"""Tests for harvesting, dedup and date parsing."""

from datetime import datetime, timezone

from blogpulse.config import HarvestConfig
from blogpulse.ingestion import (
    ArchiveFetcher,
    DedupGateway,
    FeedFetcher,
    Harvester,
    HTMLFetcher,
    RawPost,
    SitemapFetcher,
    SourceFetcher,
    parse_published,
    validate_raw_post,
)

from .helpers import FakePostStorage, make_source


class StaticFetcher(SourceFetcher):
    """Adapter returning canned posts, or raising for named sources."""

    def __init__(self, posts_by_source, failing=()):
        super().__init__()
        self.posts_by_source = posts_by_source
        self.failing = set(failing)

    async def _fetch_posts(self, client, source):
        if source.name in self.failing:
            raise RuntimeError("parser exploded")
        return [post.model_copy() for post in self.posts_by_source.get(source.name, [])]


def raw(link, title="Title", published="2024-03-05", source_name="Blog"):
    return RawPost(title=title, link=link, published=published, source_name=source_name)


class TestHarvester:
    def test_one_failing_source_does_not_block_the_rest(self):
        fetcher = StaticFetcher(
            {"good": [raw("https://g.test/p/1"), raw("https://g.test/p/2")]},
            failing={"bad"},
        )
        harvester = Harvester({"feed": fetcher, "genericHTML": fetcher})
        sources = [make_source(id=1, name="good"), make_source(id=2, name="bad")]

        result = harvester.harvest_sync(sources)

        assert [p.link for p in result.posts] == ["https://g.test/p/1", "https://g.test/p/2"]
        assert result.failed_sources == ["bad"]
        assert all(p.source_id == 1 and p.source_name == "good" for p in result.posts)
        failed = next(r for r in result.results if not r.success)
        assert "parser exploded" in failed.error

    def test_disabled_sources_are_skipped(self):
        fetcher = StaticFetcher({"off": [raw("https://o.test/p/1")]})
        harvester = Harvester({"feed": fetcher, "genericHTML": fetcher})

        result = harvester.harvest_sync([make_source(name="off", enabled=False)])

        assert result.posts == []
        assert result.results == []

    def test_adapter_choice_by_platform_kind(self):
        harvester = Harvester.from_config(HarvestConfig())

        assert isinstance(harvester.fetcher_for(make_source(platform_kind="feed")), FeedFetcher)
        assert isinstance(harvester.fetcher_for(make_source(platform_kind="sitemap")), SitemapFetcher)
        assert isinstance(harvester.fetcher_for(make_source(platform_kind="paginatedArchive")), ArchiveFetcher)
        assert isinstance(harvester.fetcher_for(make_source(platform_kind="genericHTML")), HTMLFetcher)
        assert isinstance(harvester.fetcher_for(make_source(platform_kind="unknown")), HTMLFetcher)

    def test_without_llm_the_html_adapter_has_no_extractor(self):
        harvester = Harvester.from_config(HarvestConfig())

        assert harvester.fetchers["genericHTML"].llm_extractor is None


class TestDedupGateway:
    def test_known_links_never_reach_the_pipeline(self, conn):
        storage = FakePostStorage(existing=["https://b.test/p/old"])
        posts = [raw("https://b.test/p/old"), raw("https://b.test/p/new")]

        result = DedupGateway(storage).filter_new(conn, posts)

        assert [p.link for p in result.new_posts] == ["https://b.test/p/new"]
        assert result.existing == 1

    def test_existence_is_checked_in_one_query(self, conn):
        storage = FakePostStorage()
        posts = [raw(f"https://b.test/p/{i}") for i in range(25)]

        DedupGateway(storage).filter_new(conn, posts)

        assert len(storage.lookups) == 1
        assert len(storage.lookups[0]) == 25

    def test_invalid_and_repeated_posts_are_dropped(self, conn):
        storage = FakePostStorage()
        posts = [
            raw("https://b.test/p/1"),
            raw("https://b.test/p/1 "),
            raw("/relative/link"),
            raw("https://b.test/p/2", source_name=""),
            raw("https://b.test/p/3", title="  "),
        ]

        result = DedupGateway(storage).filter_new(conn, posts)

        assert [p.link for p in result.new_posts] == ["https://b.test/p/1"]
        assert result.duplicates == 1
        assert result.invalid == 3
        assert result.stats() == {"new": 1, "invalid": 3, "existing": 0, "duplicates": 1}

    def test_nothing_valid_skips_the_lookup(self, conn):
        storage = FakePostStorage()

        DedupGateway(storage).filter_new(conn, [raw("ftp://b.test/p/1")])

        assert storage.lookups == []

    def test_validation_reasons(self):
        assert validate_raw_post(raw("https://b.test/p/1")) is None
        assert validate_raw_post(raw("https://b.test/p/1", published="not a date")) is None
        assert validate_raw_post(raw("https://b.test/p/1", source_name="")) == "missing source tag"
        assert validate_raw_post(raw("https://b.test/p/1", published=" ")) is None
        assert validate_raw_post(raw("https://b.test/p/1", published="")) is None


class TestParsePublished:
    def test_rfc822(self):
        assert parse_published("Tue, 05 Mar 2024 10:00:00 +0530") == datetime(2024, 3, 5, 4, 30, tzinfo=timezone.utc)

    def test_iso(self):
        parsed = parse_published("2024-03-05T10:00:00Z")
        assert parsed == datetime(2024, 3, 5, 10, 0, tzinfo=timezone.utc)

    def test_date_only(self):
        parsed = parse_published("2024-03-05")
        assert (parsed.year, parsed.month, parsed.day) == (2024, 3, 5)

    def test_unparsable_and_empty(self):
        assert parse_published("sometime last week") is None
        assert parse_published("") is None
        assert parse_published(None) is None
