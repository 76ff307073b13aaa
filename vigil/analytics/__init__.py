"""Analytics sink contract and fixed event schemas."""

from vigil.analytics.events import (
    AlertingInitializedEvent,
    AlertTriggeredEvent,
    AnalyticsEvent,
    HealthAlertEvent,
    HealthCheckCompletedEvent,
    MetricsCollectedEvent,
    MonitoringInitializedEvent,
    NotificationSentEvent,
    PerformanceReportEvent,
    PerformanceViolationEvent,
    ValidationCompletedEvent,
    ValidationInitializedEvent,
)
from vigil.analytics.sink import (
    AnalyticsSink,
    HttpAnalyticsSink,
    LoggingSink,
    NullSink,
    create_sink,
    track,
)

__all__ = [
    "AlertTriggeredEvent",
    "AlertingInitializedEvent",
    "AnalyticsEvent",
    "AnalyticsSink",
    "HealthAlertEvent",
    "HealthCheckCompletedEvent",
    "HttpAnalyticsSink",
    "LoggingSink",
    "MetricsCollectedEvent",
    "MonitoringInitializedEvent",
    "NotificationSentEvent",
    "NullSink",
    "PerformanceReportEvent",
    "PerformanceViolationEvent",
    "ValidationCompletedEvent",
    "ValidationInitializedEvent",
    "create_sink",
    "track",
]
