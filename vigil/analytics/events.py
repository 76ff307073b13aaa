"""Outbound analytics events with a fixed parameter schema per event name.

Downstream dashboards key on these names and field names, so the models
below are the contract: add new events rather than reshaping old ones.

Health-monitor alerts go out as ``health_alert_triggered``. Earlier
releases sent them under ``production_alert_triggered`` with the same
``alert_type``/``severity``/``environment``/``timestamp`` fields;
consumers of that older stream need to subscribe to the new name.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel


class AnalyticsEvent(BaseModel):
    """Base for all events; ``name`` is the event name on the wire."""

    name: ClassVar[str] = ""

    def params(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


# ── Alerting ────────────────────────────────────────────────────


class AlertTriggeredEvent(AnalyticsEvent):
    name: ClassVar[str] = "production_alert_triggered"

    rule_id: str
    rule_name: str
    severity: str
    incident_id: str
    environment: str
    timestamp: str


class NotificationSentEvent(AnalyticsEvent):
    name: ClassVar[str] = "alert_notification_sent"

    notification_id: str
    incident_id: str
    channel: str
    timestamp: str


class AlertingInitializedEvent(AnalyticsEvent):
    name: ClassVar[str] = "alerting_system_initialized"

    environment: str
    alert_rules_count: int
    timestamp: str


# ── Health ──────────────────────────────────────────────────────


class HealthCheckCompletedEvent(AnalyticsEvent):
    name: ClassVar[str] = "health_check_completed"

    overall_status: str
    timestamp: str
    check_count: int


class HealthAlertEvent(AnalyticsEvent):
    name: ClassVar[str] = "health_alert_triggered"

    alert_type: str
    severity: str
    environment: str
    timestamp: str


class MonitoringInitializedEvent(AnalyticsEvent):
    name: ClassVar[str] = "production_monitoring_initialized"

    environment: str
    timestamp: str


class MetricsCollectedEvent(AnalyticsEvent):
    name: ClassVar[str] = "production_metrics_collected"

    timestamp: str
    environment: str
    system_memory_mb: float
    error_count: int
    health_status: str


# ── SLA ─────────────────────────────────────────────────────────


class PerformanceViolationEvent(AnalyticsEvent):
    name: ClassVar[str] = "performance_violation"

    metric: str
    current_value: float
    threshold: float
    severity: str
    environment: str
    timestamp: str


class ValidationCompletedEvent(AnalyticsEvent):
    name: ClassVar[str] = "performance_validation_completed"

    overall_status: str
    validation_count: int
    violation_count: int
    timestamp: str


class PerformanceReportEvent(AnalyticsEvent):
    name: ClassVar[str] = "performance_report_generated"

    validation_count: int
    pass_rate: float
    environment: str
    timestamp: str


class ValidationInitializedEvent(AnalyticsEvent):
    name: ClassVar[str] = "performance_validation_initialized"

    environment: str
    max_load_time_ms: float
    timestamp: str
