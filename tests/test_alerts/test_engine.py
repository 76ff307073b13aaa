"""Tests for RuleEngine — per-condition evaluation and error isolation."""

from __future__ import annotations

from unittest.mock import patch

from vigil.alerts.engine import RuleEngine
from vigil.alerts.rules import default_rules
from vigil.alerts.types import (
    AlertCondition,
    AlertRule,
    AlertSeverity,
    NotificationChannel,
)
from vigil.core.types import (
    CheckReport,
    ErrorStats,
    HealthSnapshot,
    HealthStatus,
    MetricsSnapshot,
    PerformanceStats,
)

MB = 1024 * 1024


# ── Helpers ─────────────────────────────────────────────────────


def _rule(condition: AlertCondition, **kw: object) -> AlertRule:
    defaults: dict[str, object] = {
        "id": f"rule_{condition.value}",
        "name": condition.value,
        "condition": condition,
        "severity": AlertSeverity.HIGH,
        "notification_channels": (NotificationChannel.CONSOLE,),
    }
    defaults.update(kw)
    return AlertRule(**defaults)  # type: ignore[arg-type]


def _snap(
    status: HealthStatus = HealthStatus.HEALTHY,
    checks: dict[str, str] | None = None,
    failure_counts: dict[str, int] | None = None,
    error_rate: float = 0.0,
    memory_mb: int = 100,
) -> MetricsSnapshot:
    return MetricsSnapshot(
        health=HealthSnapshot(
            status=status,
            checks={n: CheckReport(name=n, status=s) for n, s in (checks or {}).items()},
            failure_counts=failure_counts or {},
        ),
        errors=ErrorStats(error_rate_per_minute=error_rate),
        performance=PerformanceStats(memory_usage_bytes=memory_mb * MB),
    )


def _triggered(engine: RuleEngine, rules: list[AlertRule], snap: MetricsSnapshot) -> set[str]:
    return {ev.rule.id for ev in engine.evaluate(rules, snap) if ev.triggered}


# ── Conditions ─────────────────────────────────────────────────


class TestSystemCritical:
    def test_critical_status(self) -> None:
        rule = _rule(AlertCondition.SYSTEM_CRITICAL)
        triggered, data = RuleEngine().evaluate_rule(rule, _snap(HealthStatus.CRITICAL))
        assert triggered is True
        assert data["status"] == "critical"

    def test_consecutive_failures(self) -> None:
        rule = _rule(AlertCondition.SYSTEM_CRITICAL)
        snap = _snap(HealthStatus.WARNING, failure_counts={"firebase": 3, "system": 1})
        triggered, data = RuleEngine().evaluate_rule(rule, snap)
        assert triggered is True
        assert data["consecutive_failures"] == {"firebase": 3}

    def test_below_failure_threshold(self) -> None:
        rule = _rule(AlertCondition.SYSTEM_CRITICAL)
        snap = _snap(HealthStatus.WARNING, failure_counts={"firebase": 2})
        triggered, _ = RuleEngine().evaluate_rule(rule, snap)
        assert triggered is False

    def test_custom_failure_threshold(self) -> None:
        rule = _rule(AlertCondition.SYSTEM_CRITICAL)
        snap = _snap(failure_counts={"firebase": 2})
        triggered, _ = RuleEngine(max_consecutive_failures=2).evaluate_rule(rule, snap)
        assert triggered is True


class TestHighErrorRate:
    def test_above_threshold(self) -> None:
        rule = _rule(AlertCondition.HIGH_ERROR_RATE, threshold=0.05)
        triggered, data = RuleEngine().evaluate_rule(rule, _snap(error_rate=0.08))
        assert triggered is True
        assert data["error_rate"] == 0.08
        assert data["threshold"] == 0.05

    def test_at_threshold_does_not_trigger(self) -> None:
        rule = _rule(AlertCondition.HIGH_ERROR_RATE, threshold=0.05)
        triggered, _ = RuleEngine().evaluate_rule(rule, _snap(error_rate=0.05))
        assert triggered is False

    def test_default_threshold(self) -> None:
        rule = _rule(AlertCondition.HIGH_ERROR_RATE)
        assert RuleEngine().evaluate_rule(rule, _snap(error_rate=0.06))[0] is True
        assert RuleEngine().evaluate_rule(rule, _snap(error_rate=0.04))[0] is False


class TestHighMemory:
    def test_above_threshold(self) -> None:
        rule = _rule(AlertCondition.HIGH_MEMORY, threshold=512.0)
        triggered, data = RuleEngine().evaluate_rule(rule, _snap(memory_mb=600))
        assert triggered is True
        assert data["memory_usage_mb"] == 600.0

    def test_below_threshold(self) -> None:
        rule = _rule(AlertCondition.HIGH_MEMORY, threshold=512.0)
        assert RuleEngine().evaluate_rule(rule, _snap(memory_mb=200))[0] is False


class TestSubsystemFailure:
    def test_error_status(self) -> None:
        rule = _rule(AlertCondition.FIREBASE_FAILURE)
        triggered, data = RuleEngine().evaluate_rule(rule, _snap(checks={"firebase": "error"}))
        assert triggered is True
        assert data["name"] == "firebase"

    def test_critical_status(self) -> None:
        rule = _rule(AlertCondition.FIREBASE_FAILURE)
        assert RuleEngine().evaluate_rule(rule, _snap(checks={"firebase": "critical"}))[0] is True

    def test_warning_does_not_trigger(self) -> None:
        rule = _rule(AlertCondition.FIREBASE_FAILURE)
        assert RuleEngine().evaluate_rule(rule, _snap(checks={"firebase": "warning"}))[0] is False

    def test_missing_check(self) -> None:
        rule = _rule(AlertCondition.FIREBASE_FAILURE)
        assert RuleEngine().evaluate_rule(rule, _snap())[0] is False

    def test_other_subsystem(self) -> None:
        rule = _rule(AlertCondition.FIREBASE_FAILURE, subsystem="security")
        assert RuleEngine().evaluate_rule(rule, _snap(checks={"security": "critical"}))[0] is True


class TestUnwiredConditions:
    def test_never_trigger(self) -> None:
        engine = RuleEngine()
        snap = _snap(HealthStatus.CRITICAL, error_rate=1.0, memory_mb=4096)
        for cond in (AlertCondition.PERFORMANCE_DEGRADATION, AlertCondition.SECURITY_VIOLATION):
            assert engine.evaluate_rule(_rule(cond), snap)[0] is False


# ── evaluate() ─────────────────────────────────────────────────


class TestEvaluate:
    def test_default_rules_healthy_snapshot(self) -> None:
        assert _triggered(RuleEngine(), default_rules(), _snap()) == set()

    def test_default_rules_high_error_rate(self) -> None:
        assert _triggered(RuleEngine(), default_rules(), _snap(error_rate=0.08)) == {
            "high_error_rate",
        }

    def test_disabled_rule_skipped(self) -> None:
        rule = _rule(AlertCondition.HIGH_ERROR_RATE, enabled=False)
        assert RuleEngine().evaluate([rule], _snap(error_rate=0.9)) == []

    def test_failing_evaluator_isolated(self) -> None:
        engine = RuleEngine()
        bad = _rule(AlertCondition.HIGH_MEMORY)
        good = _rule(AlertCondition.HIGH_ERROR_RATE)
        with patch.object(engine, "_evaluators", {
            AlertCondition.HIGH_MEMORY: lambda r, s: 1 / 0,
            AlertCondition.HIGH_ERROR_RATE: engine._high_error_rate,
        }):
            results = engine.evaluate([bad, good], _snap(error_rate=0.5))
        assert [ev.rule.id for ev in results] == [good.id]
        assert results[0].triggered is True
