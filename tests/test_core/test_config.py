"""Tests for vigil/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from vigil.core.config import (
    AlertingConfig,
    AnalyticsConfig,
    HealthConfig,
    LoggingConfig,
    SchedulerConfig,
    Settings,
    SlaConfig,
    get_settings,
    load_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have production defaults when no YAML is provided."""

    def test_default_alerting_config(self) -> None:
        cfg = AlertingConfig()
        assert cfg.max_alerts_per_hour == 50
        assert cfg.default_cooldown_secs == 300.0
        assert cfg.critical_cooldown_secs == 60.0
        assert cfg.rules == []

    def test_default_health_config(self) -> None:
        cfg = HealthConfig()
        assert cfg.max_consecutive_failures == 3
        assert cfg.history_size == 100
        assert cfg.memory_threshold_mb == 512.0

    def test_default_sla_config(self) -> None:
        cfg = SlaConfig()
        assert cfg.max_load_time_ms == 3000.0
        assert cfg.max_api_response_time_ms == 500.0
        assert cfg.min_cache_hit_rate == 0.7
        assert cfg.max_error_rate == 0.01

    def test_default_scheduler_config(self) -> None:
        cfg = SchedulerConfig()
        assert cfg.health_interval_secs == 30.0
        assert cfg.alert_interval_secs == 60.0
        assert cfg.metrics_interval_secs == 300.0

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.environment == "development"
        assert s.storage.backend == "memory"
        assert s.analytics.enabled is False


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "environment": "production",
            "alerting": {
                "max_alerts_per_hour": 10,
                "rules": [
                    {
                        "id": "custom",
                        "name": "Custom",
                        "condition": "high_memory",
                        "threshold": 256,
                    },
                ],
            },
            "sla": {"max_api_response_time_ms": 250},
            "analytics": {"enabled": True, "endpoint": "https://collector.local/events"},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.environment == "production"
        assert settings.alerting.max_alerts_per_hour == 10
        assert settings.alerting.rules[0].id == "custom"
        assert settings.alerting.rules[0].notification_channels == ["firebase", "console"]
        assert settings.sla.max_api_response_time_ms == 250
        assert settings.analytics.endpoint.get_secret_value() == "https://collector.local/events"
        assert settings.logging.level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.alerting.max_alerts_per_hour == 50
        assert settings.health.max_consecutive_failures == 3

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.sla.max_load_time_ms == 3000.0

    def test_partial_yaml_merges_with_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"health": {"history_size": 20}}))

        settings = load_settings(config_file)
        assert settings.health.history_size == 20
        # Other defaults still intact
        assert settings.health.alert_debounce_secs == 300.0
        assert settings.sla.sample_window == 50

    def test_get_settings_caches(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump({"environment": "staging"}))
        loaded = load_settings(config_file)
        assert get_settings() is loaded
        reset_settings()
        assert get_settings() is not loaded


class TestSecretStr:
    def test_endpoint_repr_does_not_leak(self) -> None:
        cfg = AnalyticsConfig(endpoint="https://token@collector.local")  # type: ignore[arg-type]
        repr_str = repr(cfg)
        assert "token@collector" not in repr_str
        assert "**********" in repr_str
