"""Shared snapshot types — the point-in-time input of every evaluation cycle."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

_BYTES_PER_MB = 1024 * 1024


def utc_now() -> datetime:
    """Timezone-aware current time; every timestamp in vigil is UTC."""
    return datetime.now(UTC)


class HealthStatus(StrEnum):
    """Aggregate health of the whole process."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class CheckStatus(StrEnum):
    """Status reported by a single subsystem check."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    ERROR = "error"
    UNKNOWN = "unknown"


class CheckKind(StrEnum):
    """Known subsystem checks; OTHER keeps unrecognised names usable."""

    SYSTEM = "system"
    PERFORMANCE = "performance"
    SECURITY = "security"
    FIREBASE = "firebase"
    APPLICATION = "application"
    OTHER = "other"


FAILING_STATUSES = frozenset({CheckStatus.CRITICAL, CheckStatus.ERROR})


class CheckReport(BaseModel):
    """Result of one subsystem check.

    ``status`` stays a raw string so that statuses this version does not
    know about survive a persist/reload cycle untouched.
    """

    name: str
    status: str = CheckStatus.HEALTHY.value
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> CheckKind:
        try:
            return CheckKind(self.name)
        except ValueError:
            return CheckKind.OTHER

    @property
    def check_status(self) -> CheckStatus:
        try:
            return CheckStatus(self.status)
        except ValueError:
            return CheckStatus.UNKNOWN

    @property
    def failing(self) -> bool:
        return self.check_status in FAILING_STATUSES


class HealthSnapshot(BaseModel):
    """What the rule engine sees of the latest health check."""

    status: HealthStatus = HealthStatus.UNKNOWN
    checks: dict[str, CheckReport] = Field(default_factory=dict)
    failure_counts: dict[str, int] = Field(default_factory=dict)
    timestamp: datetime | None = None


class ErrorStats(BaseModel):
    """Error-rate statistics from the host's error tracker."""

    error_rate_per_minute: float = 0.0
    total_errors: int = 0
    recent_errors_1h: int = 0
    unique_errors: int = 0


class PerformanceStats(BaseModel):
    """Performance statistics from the host's performance manager."""

    cache_hit_rate: float = 0.0
    memory_usage_bytes: int = 0
    load_time_ms: float | None = None
    api_response_time_ms: float | None = None
    recent_events: list[dict[str, Any]] = Field(default_factory=list)
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def memory_usage_mb(self) -> float:
        return self.memory_usage_bytes / _BYTES_PER_MB


class SecurityStatus(BaseModel):
    """Security policy compliance and recent violations."""

    policy: dict[str, bool] = Field(default_factory=dict)
    violations: list[dict[str, Any]] = Field(default_factory=list)


class MetricsSnapshot(BaseModel):
    """Everything one alert/SLA cycle evaluates against."""

    health: HealthSnapshot = Field(default_factory=HealthSnapshot)
    errors: ErrorStats = Field(default_factory=ErrorStats)
    performance: PerformanceStats = Field(default_factory=PerformanceStats)
    taken_at: datetime = Field(default_factory=utc_now)

    @property
    def memory_usage_mb(self) -> float:
        """Memory reading from the system check, else from performance stats."""
        system = self.health.checks.get(CheckKind.SYSTEM.value)
        if system is not None:
            memory = system.details.get("memory")
            if isinstance(memory, dict) and "usage_mb" in memory:
                return float(memory["usage_mb"])
        return self.performance.memory_usage_mb


# Provider callables polled each cycle.
ErrorStatsFn = Callable[[], ErrorStats]
PerformanceStatsFn = Callable[[], PerformanceStats]
SecurityStatusFn = Callable[[], SecurityStatus]
NetworkProbeFn = Callable[[], bool]
