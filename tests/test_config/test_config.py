"""Tests for configuration loading and overrides."""

import json

import pytest

from macro_compass.config import MacroCompassConfig, SeriesAliases, config_from_dict, load_config
from macro_compass.exceptions import ConfigurationError


class TestConfigFromDict:

    def test_defaults(self):
        config = MacroCompassConfig()

        assert config.signal.blocked_window_hours == 4.0
        assert config.sizing.rounding_step == 0.25
        assert config.deltas.max_deltas == 6
        assert config.quality.min_drivers == 3
        assert config.aliases.aliases("pce") == ("pce_yoy", "pcepi", "corepce_yoy")

    def test_partial_override_keeps_other_defaults(self):
        config = config_from_dict({"signal": {"long_above": 25}, "quality": {"usd_base_pairs": ["USDJPY"]}})

        assert config.signal.long_above == 25
        assert config.signal.short_below == -20.0
        assert config.quality.usd_base_pairs == ("USDJPY",)
        assert config.usd == MacroCompassConfig().usd

    def test_alias_override_merges_with_defaults(self):
        config = config_from_dict({"aliases": {"twex": ["usd_index"]}})

        assert config.aliases.aliases("twex") == ("usd_index",)
        assert config.aliases.aliases("cpi") == SeriesAliases().aliases("cpi")

    @pytest.mark.parametrize(
        "data",
        [
            {"signals": {}},
            {"signal": {"long_abov": 25}},
            {"signal": 5},
            {"aliases": ["twex"]},
        ],
    )
    def test_invalid_overrides(self, data):
        with pytest.raises(ConfigurationError):
            config_from_dict(data)


class TestLoadConfig:

    def test_no_path_uses_defaults(self, monkeypatch):
        monkeypatch.delenv("MACRO_COMPASS_API_URL", raising=False)
        assert load_config() == MacroCompassConfig()

    def test_file_and_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"deltas": {"score_delta": 10}}))
        monkeypatch.setenv("MACRO_COMPASS_API_URL", "http://macro.internal:9000")

        config = load_config(path)

        assert config.deltas.score_delta == 10
        assert config.sources.base_url == "http://macro.internal:9000"

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "absent.json")

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError):
            load_config(path)
