"""Health check history entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from vigil.alerts.types import AlertSeverity
from vigil.core.types import CheckReport, HealthStatus


class HealthCheckResult(BaseModel):
    """One health-check tick: every subsystem report plus the aggregate."""

    timestamp: datetime
    checks: dict[str, CheckReport] = Field(default_factory=dict)
    overall_status: HealthStatus = HealthStatus.UNKNOWN

    def to_map(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> HealthCheckResult:
        return cls.model_validate(data)


class HealthAlert(BaseModel):
    """Alert raised by the health monitor itself (alert_history entry)."""

    timestamp: datetime
    alert_type: str
    message: str
    severity: AlertSeverity
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_map(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> HealthAlert:
        return cls.model_validate(data)
