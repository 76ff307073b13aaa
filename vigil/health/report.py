"""Health/metrics/alerts report payloads a host can expose.

Nothing here serves HTTP; the host decides how (or whether) to publish
these dictionaries.
"""

from __future__ import annotations

from typing import Any

import structlog

from vigil.alerts.types import AlertSeverity
from vigil.core.config import Settings
from vigil.core.types import ErrorStatsFn, utc_now
from vigil.health.monitor import HealthMonitor

logger = structlog.get_logger(__name__)

_STATUS_CODES: dict[str, int] = {
    "healthy": 200,
    "warning": 200,
    "critical": 503,
    "error": 503,
}


def status_code_for(status: str | None) -> int:
    """HTTP-equivalent code for a health status string."""
    if status is None:
        return 500
    return _STATUS_CODES.get(str(status), 500)


def current_health(monitor: HealthMonitor | None) -> dict[str, Any]:
    latest = monitor.latest if monitor is not None else None
    if latest is None:
        return {
            "status": "unknown",
            "message": "No health checks performed yet",
            "timestamp": utc_now().isoformat(),
        }
    data = latest.to_map()
    data["status"] = latest.overall_status.value
    return data


def build_health_report(monitor: HealthMonitor | None, settings: Settings) -> dict[str, Any]:
    health = current_health(monitor)
    return {
        "health": health,
        "system": {
            "environment": settings.environment,
            "version": settings.app_version,
            "timestamp": utc_now().isoformat(),
            "monitoring_active": monitor is not None and monitor.initialized,
        },
        "endpoint": "/health",
        "status_code": status_code_for(health.get("status")),
    }


def build_metrics_report(
    monitor: HealthMonitor,
    settings: Settings,
    error_fn: ErrorStatsFn | None = None,
) -> dict[str, Any]:
    errors = error_fn().model_dump(mode="json") if error_fn else {}
    return {
        "metrics": {
            "health_history": [r.to_map() for r in monitor.get_health_history(limit=10)],
            "recent_alerts": [a.to_map() for a in monitor.get_recent_alerts(limit=5)],
            "error_statistics": errors,
            "system_info": {
                "environment": settings.environment,
                "version": settings.app_version,
                "monitoring_active": monitor.initialized,
            },
        },
        "endpoint": "/metrics",
        "timestamp": utc_now().isoformat(),
    }


def build_alerts_report(monitor: HealthMonitor) -> dict[str, Any]:
    alerts = monitor.get_recent_alerts(limit=20)
    return {
        "alerts": {
            "recent_alerts": [a.to_map() for a in alerts],
            "alert_count": len(alerts),
            "critical_alerts": sum(1 for a in alerts if a.severity == AlertSeverity.CRITICAL),
            "high_alerts": sum(1 for a in alerts if a.severity == AlertSeverity.HIGH),
        },
        "endpoint": "/alerts",
        "timestamp": utc_now().isoformat(),
    }


def perform_health_check(monitor: HealthMonitor | None) -> dict[str, Any]:
    """Manual health check; reports failure in the payload instead of raising."""
    try:
        return {
            "success": True,
            "health": current_health(monitor),
            "timestamp": utc_now().isoformat(),
        }
    except Exception as exc:
        logger.exception("manual_health_check_error")
        return {
            "success": False,
            "error": str(exc),
            "timestamp": utc_now().isoformat(),
        }
