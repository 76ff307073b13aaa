"""Subsystem health checks, status aggregation and health history."""

from vigil.health.aggregator import FailureTracker, aggregate
from vigil.health.checks import (
    ApplicationHealthCheck,
    ExternalServiceHealthCheck,
    HealthCheck,
    PerformanceHealthCheck,
    SecurityHealthCheck,
    SystemHealthCheck,
)
from vigil.health.monitor import HealthMonitor
from vigil.health.report import (
    build_alerts_report,
    build_health_report,
    build_metrics_report,
    perform_health_check,
    status_code_for,
)
from vigil.health.types import HealthAlert, HealthCheckResult

__all__ = [
    "ApplicationHealthCheck",
    "ExternalServiceHealthCheck",
    "FailureTracker",
    "HealthAlert",
    "HealthCheck",
    "HealthCheckResult",
    "HealthMonitor",
    "PerformanceHealthCheck",
    "SecurityHealthCheck",
    "SystemHealthCheck",
    "aggregate",
    "build_alerts_report",
    "build_health_report",
    "build_metrics_report",
    "perform_health_check",
    "status_code_for",
]
