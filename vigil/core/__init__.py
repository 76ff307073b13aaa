"""Core module — config, logging, exceptions, snapshot types."""

from vigil.core.config import Settings, get_settings, load_settings, reset_settings
from vigil.core.exceptions import (
    AnalyticsError,
    MissingDependencyError,
    NotificationDeliveryError,
    RuleConfigError,
    StorageError,
    VigilError,
)
from vigil.core.logging import ErrorRateTracker, setup_logging
from vigil.core.types import (
    CheckKind,
    CheckReport,
    CheckStatus,
    ErrorStats,
    HealthSnapshot,
    HealthStatus,
    MetricsSnapshot,
    PerformanceStats,
    SecurityStatus,
    utc_now,
)

__all__ = [
    "AnalyticsError",
    "CheckKind",
    "CheckReport",
    "CheckStatus",
    "ErrorRateTracker",
    "ErrorStats",
    "HealthSnapshot",
    "HealthStatus",
    "MetricsSnapshot",
    "MissingDependencyError",
    "NotificationDeliveryError",
    "PerformanceStats",
    "RuleConfigError",
    "SecurityStatus",
    "Settings",
    "StorageError",
    "VigilError",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
    "utc_now",
]
