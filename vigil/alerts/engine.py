"""RuleEngine — evaluates alert rules against a metrics snapshot."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

from vigil.alerts.types import AlertCondition, AlertRule, RuleEvaluation
from vigil.core.types import HealthStatus, MetricsSnapshot

logger = structlog.get_logger(__name__)

DEFAULT_ERROR_RATE_THRESHOLD = 0.05
DEFAULT_MEMORY_THRESHOLD_MB = 512.0

ConditionResult = tuple[bool, dict[str, Any]]
Evaluator = Callable[[AlertRule, MetricsSnapshot], ConditionResult]


class RuleEngine:
    """Maps each AlertCondition to a pure check over the snapshot.

    Usage::

        engine = RuleEngine(max_consecutive_failures=3)
        for ev in engine.evaluate(rules, snapshot):
            if ev.triggered:
                await incidents.trigger(ev.rule, ev.alert_data, now)

    Disabled rules are skipped.  An exception inside one evaluator is
    logged and that rule is left out of the result; the remaining rules
    are still evaluated.
    """

    def __init__(self, max_consecutive_failures: int = 3) -> None:
        self._max_consecutive_failures = max_consecutive_failures
        self._evaluators: dict[AlertCondition, Evaluator] = {
            AlertCondition.SYSTEM_CRITICAL: self._system_critical,
            AlertCondition.HIGH_ERROR_RATE: self._high_error_rate,
            AlertCondition.HIGH_MEMORY: self._high_memory,
            AlertCondition.FIREBASE_FAILURE: self._subsystem_failure,
            AlertCondition.PERFORMANCE_DEGRADATION: self._not_yet_wired,
            AlertCondition.SECURITY_VIOLATION: self._not_yet_wired,
        }

    def evaluate(
        self,
        rules: list[AlertRule],
        snapshot: MetricsSnapshot,
    ) -> list[RuleEvaluation]:
        results: list[RuleEvaluation] = []
        for rule in rules:
            if not rule.enabled:
                continue
            try:
                triggered, alert_data = self.evaluate_rule(rule, snapshot)
            except Exception:
                logger.exception(
                    "rule_evaluation_error",
                    rule_id=rule.id,
                    condition=rule.condition.value,
                )
                continue
            results.append(RuleEvaluation(
                rule=rule,
                triggered=triggered,
                alert_data=alert_data,
            ))
        return results

    def evaluate_rule(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        """Evaluate a single rule. Raises if the evaluator fails."""
        evaluator = self._evaluators.get(rule.condition)
        if evaluator is None:
            raise KeyError(f"no evaluator for condition {rule.condition!r}")
        return evaluator(rule, snapshot)

    # ── Evaluators ──────────────────────────────────────────────

    def _system_critical(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        health = snapshot.health
        repeated = {
            name: count
            for name, count in health.failure_counts.items()
            if count >= self._max_consecutive_failures
        }
        triggered = health.status == HealthStatus.CRITICAL or bool(repeated)
        alert_data = health.model_dump(mode="json")
        if repeated:
            alert_data["consecutive_failures"] = repeated
        return triggered, alert_data

    def _high_error_rate(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        threshold = rule.threshold if rule.threshold is not None else DEFAULT_ERROR_RATE_THRESHOLD
        error_rate = float(snapshot.errors.error_rate_per_minute)
        return error_rate > threshold, {
            "error_rate": error_rate,
            "threshold": threshold,
            "error_stats": snapshot.errors.model_dump(mode="json"),
        }

    def _high_memory(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        threshold = rule.threshold if rule.threshold is not None else DEFAULT_MEMORY_THRESHOLD_MB
        usage = snapshot.memory_usage_mb
        return usage > threshold, {
            "memory_usage_mb": round(usage, 2),
            "threshold_mb": threshold,
        }

    def _subsystem_failure(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        check = snapshot.health.checks.get(rule.subsystem)
        if check is None:
            return False, {}
        return check.failing, check.model_dump(mode="json")

    def _not_yet_wired(self, rule: AlertRule, snapshot: MetricsSnapshot) -> ConditionResult:
        # performance_degradation / security_violation have no upstream
        # metric feeding them yet; the rule stays registered but cannot fire.
        logger.debug(
            "rule_condition_not_wired",
            rule_id=rule.id,
            condition=rule.condition.value,
        )
        return False, {}
