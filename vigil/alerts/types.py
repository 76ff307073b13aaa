"""Domain types for rules, incidents and notifications."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AlertCondition(StrEnum):
    """What a rule inspects on the snapshot."""

    SYSTEM_CRITICAL = "system_critical"
    HIGH_ERROR_RATE = "high_error_rate"
    PERFORMANCE_DEGRADATION = "performance_degradation"
    HIGH_MEMORY = "high_memory"
    SECURITY_VIOLATION = "security_violation"
    FIREBASE_FAILURE = "firebase_failure"


class AlertSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentStatus(StrEnum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    SUPPRESSED = "suppressed"


class NotificationChannel(StrEnum):
    """Delivery channel; ``firebase`` is the external analytics sink."""

    FIREBASE = "firebase"
    CONSOLE = "console"
    EMAIL = "email"
    SLACK = "slack"


class NotificationStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AlertRule(BaseModel):
    """Immutable rule definition."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    condition: AlertCondition
    severity: AlertSeverity
    threshold: float | None = None
    cooldown_secs: float = 300.0
    enabled: bool = True
    notification_channels: tuple[NotificationChannel, ...] = ()
    # Check name inspected by FIREBASE_FAILURE rules.
    subsystem: str = "firebase"

    @property
    def cooldown_period(self) -> timedelta:
        return timedelta(seconds=self.cooldown_secs)

    def to_map(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "condition": self.condition.value,
            "severity": self.severity.value,
            "threshold": self.threshold,
            "cooldown_period_ms": int(self.cooldown_secs * 1000),
            "enabled": self.enabled,
            "notification_channels": [c.value for c in self.notification_channels],
        }


class AlertIncident(BaseModel):
    """A recorded firing of a rule, with its own lifecycle."""

    id: str
    rule_id: str
    rule_name: str
    severity: AlertSeverity
    status: IncidentStatus = IncidentStatus.ACTIVE
    created_at: datetime
    resolved_at: datetime | None = None
    alert_data: dict[str, Any] = Field(default_factory=dict)
    description: str = ""

    def to_map(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> AlertIncident:
        return cls.model_validate(data)


class AlertNotification(BaseModel):
    """One delivery of an incident over one channel."""

    id: str
    incident_id: str
    channel: NotificationChannel
    message: str
    created_at: datetime
    status: NotificationStatus = NotificationStatus.PENDING
    sent_at: datetime | None = None
    error: str | None = None

    def to_map(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_map(cls, data: dict[str, Any]) -> AlertNotification:
        return cls.model_validate(data)


class RuleEvaluation(BaseModel):
    """Outcome of evaluating one rule against one snapshot."""

    rule: AlertRule
    triggered: bool
    alert_data: dict[str, Any] = Field(default_factory=dict)
