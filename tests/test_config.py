"""Tests for configuration loading."""

import pytest
import yaml
from pydantic import ValidationError

from blogpulse.config import (
    Config,
    ConfigModel,
    EnrichmentConfig,
    SourceConfig,
    load_config,
    load_sources,
    save_sources,
)
from blogpulse.db.connection import build_conninfo


class TestLoadConfig:
    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        config = load_config(path)

        assert config == ConfigModel()
        assert config.resolver.min_market_cap == 30_000_000
        assert config.resolver.overlap_threshold == 0.70
        assert config.pipeline.min_company_words == 500
        assert config.pipeline.validation_retries == 2
        assert config.enrichment.batch_size == 10
        assert config.llm.timeout == 15.0
        assert config.harvest.timeout == 15.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_values_raise_value_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"pipeline": {"max_concurrent_posts": 0}}))

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)

    def test_secrets_come_from_the_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"llm": {"api_key_env": "TEST_LLM_KEY"}}))
        monkeypatch.setenv("TEST_LLM_KEY", "sk-test")
        monkeypatch.setenv("BLOGPULSE_DB_PASSWORD", "dbpass")
        monkeypatch.setenv("BLOGPULSE_SMTP_PASSWORD", "mailpass")

        config = Config(path)

        assert config.get_llm_config()["api_key"] == "sk-test"
        assert config.get_db_config()["password"] == "dbpass"
        assert config.get_smtp_password() == "mailpass"
        assert config.sources_path == tmp_path / "sources.yaml"

    def test_delay_range_must_be_ordered(self):
        with pytest.raises(ValidationError):
            EnrichmentConfig(min_delay=3.0, max_delay=1.0)


class TestSources:
    def test_round_trip_and_invalid_entries_skipped(self, tmp_path):
        path = tmp_path / "sources.yaml"
        save_sources([SourceConfig(name="Blog", origin_url="blog.test/")], path)
        data = yaml.safe_load(path.read_text())
        data["sources"].append({"name": "Broken", "origin_url": "b.test", "platform_kind": "telegram"})
        path.write_text(yaml.safe_dump(data))

        sources = load_sources(path)

        assert [s.name for s in sources] == ["Blog"]
        assert sources[0].origin_url == "https://blog.test"

    def test_empty_sources_file(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text("sources:\n")

        assert load_sources(path) == []

    def test_archive_style_is_validated(self):
        with pytest.raises(ValidationError):
            SourceConfig(name="x", origin_url="https://x.test", archive_style="tumblr")


class TestConnInfo:
    def test_password_from_environment(self, monkeypatch):
        monkeypatch.setenv("PGPASS_TEST", "s3cret")

        conninfo = build_conninfo({"host": "db", "database": "bp", "user": "u", "password_env": "PGPASS_TEST"})

        assert "password=s3cret" in conninfo
        assert "dbname=bp" in conninfo
