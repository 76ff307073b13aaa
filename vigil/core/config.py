"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class AlertRuleConfig(BaseModel):
    """A rule declared in YAML; it replaces a default with the same id or is appended."""

    id: str
    name: str
    description: str = ""
    condition: str
    severity: str = "medium"
    threshold: float | None = None
    cooldown_secs: float | None = None
    enabled: bool = True
    notification_channels: list[str] = ["firebase", "console"]
    subsystem: str | None = None


class AlertingConfig(BaseModel):
    """Incident and notification manager configuration."""

    max_alerts_per_hour: int = 50
    default_cooldown_secs: float = 300.0
    critical_cooldown_secs: float = 60.0
    notification_retention_hours: float = 24.0
    incident_retention_hours: float = 24.0
    rules: list[AlertRuleConfig] = []


class HealthConfig(BaseModel):
    """Health check thresholds and history sizing."""

    max_consecutive_failures: int = 3
    history_size: int = 100
    memory_threshold_mb: float = 512.0
    min_cache_hit_rate: float = 0.7
    error_rate_threshold: float = 0.05
    degradation_threshold_ms: float = 3000.0
    alert_debounce_secs: float = 300.0


class SlaConfig(BaseModel):
    """Production SLA thresholds."""

    max_load_time_ms: float = 3000.0
    max_api_response_time_ms: float = 500.0
    min_cache_hit_rate: float = 0.7
    max_memory_usage_mb: float = 512.0
    max_error_rate: float = 0.01
    sample_window: int = 50
    history_size: int = 100
    violation_debounce_secs: float = 300.0


class SchedulerConfig(BaseModel):
    """Periods of the three tick families."""

    health_interval_secs: float = 30.0
    alert_interval_secs: float = 60.0
    metrics_interval_secs: float = 300.0


class StorageConfig(BaseModel):
    """Persistence backend."""

    backend: str = "memory"
    path: str = "data/vigil"


class AnalyticsConfig(BaseModel):
    """External analytics sink."""

    enabled: bool = False
    endpoint: SecretStr = SecretStr("")
    timeout_secs: float = 10.0
    crash_reporting_enabled: bool = True


class Settings(BaseModel):
    """Root settings container."""

    environment: str = "development"
    app_version: str = "0.1.0"
    logging: LoggingConfig = LoggingConfig()
    alerting: AlertingConfig = AlertingConfig()
    health: HealthConfig = HealthConfig()
    sla: SlaConfig = SlaConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    storage: StorageConfig = StorageConfig()
    analytics: AnalyticsConfig = AnalyticsConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
