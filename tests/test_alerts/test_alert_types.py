"""Tests for rule/incident/notification types and their field maps."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from vigil.alerts.types import (
    AlertCondition,
    AlertIncident,
    AlertNotification,
    AlertRule,
    AlertSeverity,
    IncidentStatus,
    NotificationChannel,
    NotificationStatus,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _rule(**kw: object) -> AlertRule:
    defaults: dict[str, object] = {
        "id": "high_error_rate",
        "name": "High Error Rate",
        "condition": AlertCondition.HIGH_ERROR_RATE,
        "severity": AlertSeverity.HIGH,
        "threshold": 0.05,
        "notification_channels": (NotificationChannel.FIREBASE, NotificationChannel.CONSOLE),
    }
    defaults.update(kw)
    return AlertRule(**defaults)  # type: ignore[arg-type]


class TestAlertRule:
    def test_cooldown_period(self) -> None:
        assert _rule(cooldown_secs=60).cooldown_period == timedelta(minutes=1)

    def test_frozen(self) -> None:
        rule = _rule()
        with pytest.raises(ValidationError):
            rule.enabled = False  # type: ignore[misc]

    def test_to_map_uses_wire_values(self) -> None:
        data = _rule(cooldown_secs=300).to_map()
        assert data["condition"] == "high_error_rate"
        assert data["severity"] == "high"
        assert data["cooldown_period_ms"] == 300_000
        assert data["notification_channels"] == ["firebase", "console"]

    def test_unknown_condition_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _rule(condition="disk_full")


class TestIncidentFieldMap:
    def test_roundtrip_preserves_identity_status_timestamps(self) -> None:
        incident = AlertIncident(
            id="incident_1_high_error_rate",
            rule_id="high_error_rate",
            rule_name="High Error Rate",
            severity=AlertSeverity.HIGH,
            status=IncidentStatus.RESOLVED,
            created_at=T0,
            resolved_at=T0 + timedelta(minutes=5),
            alert_data={"error_rate": 0.08},
        )
        data = incident.to_map()
        assert data["status"] == "resolved"
        assert data["severity"] == "high"

        restored = AlertIncident.from_map(data)
        assert restored == incident
        assert restored.created_at.tzinfo is not None

    def test_defaults(self) -> None:
        incident = AlertIncident(
            id="i", rule_id="r", rule_name="R",
            severity=AlertSeverity.LOW, created_at=T0,
        )
        assert incident.status == IncidentStatus.ACTIVE
        assert incident.resolved_at is None


class TestNotificationFieldMap:
    def test_roundtrip(self) -> None:
        notification = AlertNotification(
            id="notification_1_r_console",
            incident_id="incident_1_r",
            channel=NotificationChannel.CONSOLE,
            message="ALERT: R",
            created_at=T0,
            status=NotificationStatus.FAILED,
            error="timeout",
        )
        data = notification.to_map()
        assert data["channel"] == "console"
        assert data["status"] == "failed"
        assert AlertNotification.from_map(data) == notification
