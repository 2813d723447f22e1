"""Tests for the application configuration."""

import json
from pathlib import Path

import pytest

from cuelight.exceptions import ConfigValidationError
from cuelight.models import AppConfig


@pytest.mark.unit
class TestAppConfig:
    """Test AppConfig defaults and persistence."""

    def test_defaults(self):
        config = AppConfig()

        assert config.module_host == "192.168.1.100"
        assert config.base_url == "http://192.168.1.100:80"
        assert config.request_timeout_ms == 5000
        assert config.request_timeout == 5.0
        assert config.poll_interval == 5.0
        assert config.poll_cache_window == 1.0
        assert config.poll_stale_after == 2
        assert (config.backoff_base, config.backoff_cap) == (0.5, 10.0)
        assert [preset.name for preset in config.presets] == [
            "all_on",
            "all_off",
            "tables_only",
            "ambient",
        ]

    def test_round_trip(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config = AppConfig(module_host="10.0.0.42", request_timeout_ms=2500)

        config.save(config_path)
        loaded = AppConfig.load_or_default(config_path)

        assert loaded == config

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert AppConfig.load_or_default(tmp_path / "absent.json") == AppConfig()

    def test_partial_file(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"module_host": "lights.local"}))

        config = AppConfig.load_or_default(config_path)

        assert config.module_host == "lights.local"
        assert len(config.presets) == 4

    def test_custom_preset(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps(
                {
                    "presets": [
                        {
                            "name": "closing",
                            "targets": {"8": {"on": True, "brightness": 100}},
                            "default": {"on": False},
                        }
                    ]
                }
            )
        )

        config = AppConfig.load_or_default(config_path)

        assert [preset.name for preset in config.presets] == ["closing"]
        assert config.presets[0].default.brightness is None

    def test_preset_brightness_out_of_range(self, tmp_path: Path):
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"presets": [{"name": "glare", "default": {"on": True, "brightness": 150}}]})
        )

        with pytest.raises(ConfigValidationError) as exc_info:
            AppConfig.load_or_default(config_path)

        assert "0 and 100" in exc_info.value.recovery_hint

    def test_duplicate_preset_names(self):
        with pytest.raises(ValueError, match="duplicate preset names: ambient"):
            AppConfig(presets=[{"name": "ambient"}, {"name": "ambient"}])
