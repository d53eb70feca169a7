"""Tests for loading the sources configuration file."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.sources import ConfigError, GlobalSettings, SourceConfig, load_sources, parse_sources
from tests.conftest import DOC_URL, WEBHOOK_URL, write_json


def _entry(name: str, **overrides) -> dict:
    entry = {"name": name, "markdownURL": DOC_URL, "webhookURL": WEBHOOK_URL}
    entry.update(overrides)
    return entry


class TestSourceConfig:
    def test_aliases(self):
        source = SourceConfig.model_validate(_entry("rules"))

        assert source.name == "rules"
        assert source.markdown_url == DOC_URL
        assert source.webhook_url == WEBHOOK_URL

    def test_trailing_slash_stripped_from_webhook(self):
        source = SourceConfig.model_validate(_entry("rules", webhookURL=WEBHOOK_URL + "/"))

        assert source.webhook_url == WEBHOOK_URL

    def test_unknown_fields_ignored(self):
        source = SourceConfig.model_validate(_entry("rules", color="blue"))

        assert source.name == "rules"

    def test_frozen(self):
        source = SourceConfig.model_validate(_entry("rules"))

        with pytest.raises(ValidationError):
            source.name = "other"


class TestGlobalSettings:
    def test_polling_rate_in_seconds(self):
        assert GlobalSettings(pollingRateMS=1500).poll_interval_seconds == 1.5

    def test_unset_interval(self):
        assert GlobalSettings().poll_interval_seconds is None


class TestParseSources:
    """Tests for parse_sources()."""

    def test_keeps_configuration_order(self):
        parsed = parse_sources([_entry("b"), _entry("a"), _entry("c")])

        assert parsed.names == ["b", "a", "c"]
        assert parsed.global_settings == GlobalSettings()

    def test_leading_global_record(self):
        parsed = parse_sources(
            [{"timezone": "Europe/Berlin", "pollingRateMS": 60000}, _entry("rules")]
        )

        assert parsed.names == ["rules"]
        assert parsed.global_settings.timezone == "Europe/Berlin"
        assert parsed.global_settings.poll_interval_seconds == 60

    def test_global_record_only_recognized_first(self):
        with pytest.raises(ConfigError, match="position 1"):
            parse_sources([_entry("rules"), {"timezone": "UTC"}])

    def test_invalid_polling_rate(self):
        with pytest.raises(ConfigError, match="global settings"):
            parse_sources([{"pollingRateMS": 0}, _entry("rules")])

    def test_not_a_list(self):
        with pytest.raises(ConfigError, match="JSON array"):
            parse_sources({"rules": _entry("rules")})

    def test_empty_list(self):
        with pytest.raises(ConfigError, match="any sources"):
            parse_sources([])

    def test_only_global_record(self):
        with pytest.raises(ConfigError, match="any sources"):
            parse_sources([{"timezone": "UTC"}])

    def test_missing_field(self):
        with pytest.raises(ConfigError, match="position 0"):
            parse_sources([{"name": "rules", "markdownURL": DOC_URL}])

    def test_empty_name(self):
        with pytest.raises(ConfigError):
            parse_sources([_entry("")])

    def test_duplicate_names(self):
        with pytest.raises(ConfigError, match="Duplicate source name: 'rules'"):
            parse_sources([_entry("rules"), _entry("rules")])


class TestLoadSources:
    """Tests for load_sources()."""

    def test_loads_file(self, tmp_path: Path):
        path = write_json(tmp_path / "config.json", [_entry("rules"), _entry("faq")])

        assert load_sources(path).names == ["rules", "faq"]

    def test_accepts_string_path(self, tmp_path: Path):
        path = write_json(tmp_path / "config.json", [_entry("rules")])

        assert load_sources(str(path)).names == ["rules"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_sources(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(ConfigError, match="not valid JSON"):
            load_sources(path)
