"""Tests for settings loading."""

import pydantic
import pytest

from ktn_bridge.core.models import TargetMode
from ktn_bridge.setting import DEFAULT_CONFIG_PATH, BridgeSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "KTN_BRIDGE_CONFIG",
        "KTN_BRIDGE_TARGET_MODE",
        "KTN_BRIDGE_API_BASE_PATH",
        "KTN_BRIDGE_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)


class TestLoadSettings:
    def test_bundled_defaults(self):
        assert DEFAULT_CONFIG_PATH.exists()
        settings = load_settings()
        assert settings.transform.target_mode == TargetMode.PRODUCTION
        assert settings.transform.api_base_path == "/api"
        assert settings.diagnostics.debug_capacity == 50
        assert settings.diagnostics.trace_capacity == 100

    def test_yaml_file(self, tmp_path):
        config = tmp_path / "bridge.yaml"
        config.write_text(
            "transform:\n"
            "  target_mode: Development\n"
            "  api_base_path: backend\n"
            "logging:\n"
            "  level: debug\n",
            encoding="utf-8",
        )
        settings = load_settings(config)
        assert settings.transform.target_mode == TargetMode.DEVELOPMENT
        assert settings.transform.api_base_path == "/backend"
        assert settings.logging.level == "DEBUG"
        assert settings.build.cache_size == 256

    def test_config_from_env(self, tmp_path, monkeypatch):
        config = tmp_path / "bridge.yaml"
        config.write_text("diagnostics:\n  trace_capacity: 3\n", encoding="utf-8")
        monkeypatch.setenv("KTN_BRIDGE_CONFIG", str(config))
        assert load_settings().diagnostics.trace_capacity == 3

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        config = tmp_path / "bridge.yaml"
        config.write_text("transform:\n  target_mode: production\n", encoding="utf-8")
        monkeypatch.setenv("KTN_BRIDGE_TARGET_MODE", "development")
        monkeypatch.setenv("KTN_BRIDGE_LOG_LEVEL", "warning")
        settings = load_settings(config)
        assert settings.transform.target_mode == TargetMode.DEVELOPMENT
        assert settings.logging.level == "WARNING"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        config = tmp_path / "bridge.yaml"
        config.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_settings(config)


class TestValidation:
    def test_unknown_mode(self):
        with pytest.raises(pydantic.ValidationError):
            BridgeSettings.model_validate({"transform": {"target_mode": "staging"}})

    def test_capacity_must_be_positive(self):
        with pytest.raises(pydantic.ValidationError):
            BridgeSettings.model_validate({"diagnostics": {"debug_capacity": 0}})
