"""Default alert rules and the config-driven rule-loading hook."""

from __future__ import annotations

from pydantic import ValidationError

from vigil.alerts.types import (
    AlertCondition,
    AlertRule,
    AlertSeverity,
    NotificationChannel,
)
from vigil.core.config import AlertingConfig, AlertRuleConfig
from vigil.core.exceptions import RuleConfigError

_FIREBASE_AND_CONSOLE = (NotificationChannel.FIREBASE, NotificationChannel.CONSOLE)
_FIREBASE_ONLY = (NotificationChannel.FIREBASE,)


def default_rules(config: AlertingConfig | None = None) -> list[AlertRule]:
    """The fixed rule set every deployment starts with."""
    cfg = config or AlertingConfig()
    normal = cfg.default_cooldown_secs
    critical = cfg.critical_cooldown_secs

    return [
        AlertRule(
            id="system_health_critical",
            name="System Health Critical",
            description="Triggered when system health is critical",
            condition=AlertCondition.SYSTEM_CRITICAL,
            severity=AlertSeverity.CRITICAL,
            cooldown_secs=critical,
            notification_channels=_FIREBASE_AND_CONSOLE,
        ),
        AlertRule(
            id="high_error_rate",
            name="High Error Rate",
            description="Triggered when error rate exceeds threshold",
            condition=AlertCondition.HIGH_ERROR_RATE,
            severity=AlertSeverity.HIGH,
            threshold=0.05,
            cooldown_secs=normal,
            notification_channels=_FIREBASE_AND_CONSOLE,
        ),
        AlertRule(
            id="performance_degradation",
            name="Performance Degradation",
            description="Triggered when performance degrades significantly",
            condition=AlertCondition.PERFORMANCE_DEGRADATION,
            severity=AlertSeverity.MEDIUM,
            threshold=3000.0,
            cooldown_secs=normal,
            notification_channels=_FIREBASE_ONLY,
        ),
        AlertRule(
            id="high_memory_usage",
            name="High Memory Usage",
            description="Triggered when memory usage is high",
            condition=AlertCondition.HIGH_MEMORY,
            severity=AlertSeverity.MEDIUM,
            threshold=512.0,
            cooldown_secs=normal,
            notification_channels=_FIREBASE_ONLY,
        ),
        AlertRule(
            id="security_violation",
            name="Security Violation",
            description="Triggered when security violations are detected",
            condition=AlertCondition.SECURITY_VIOLATION,
            severity=AlertSeverity.CRITICAL,
            cooldown_secs=critical,
            notification_channels=_FIREBASE_AND_CONSOLE,
        ),
        AlertRule(
            id="firebase_service_failure",
            name="Firebase Service Failure",
            description="Triggered when Firebase services fail",
            condition=AlertCondition.FIREBASE_FAILURE,
            severity=AlertSeverity.HIGH,
            cooldown_secs=normal,
            notification_channels=_FIREBASE_AND_CONSOLE,
        ),
    ]


def rule_from_config(entry: AlertRuleConfig, config: AlertingConfig) -> AlertRule:
    """Build an AlertRule from its YAML declaration."""
    cooldown = entry.cooldown_secs
    if cooldown is None:
        cooldown = (
            config.critical_cooldown_secs
            if entry.severity == AlertSeverity.CRITICAL.value
            else config.default_cooldown_secs
        )

    fields: dict[str, object] = {
        "id": entry.id,
        "name": entry.name,
        "description": entry.description,
        "condition": entry.condition,
        "severity": entry.severity,
        "threshold": entry.threshold,
        "cooldown_secs": cooldown,
        "enabled": entry.enabled,
        "notification_channels": tuple(entry.notification_channels),
    }
    if entry.subsystem is not None:
        fields["subsystem"] = entry.subsystem

    try:
        return AlertRule.model_validate(fields)
    except ValidationError as exc:
        raise RuleConfigError(f"invalid alert rule {entry.id!r}: {exc}") from exc


def load_rules(config: AlertingConfig | None = None) -> list[AlertRule]:
    """Default rules merged with configured ones.

    A configured rule whose id matches a default replaces it in place;
    new ids are appended in declaration order.
    """
    cfg = config or AlertingConfig()
    rules = default_rules(cfg)
    index = {rule.id: i for i, rule in enumerate(rules)}

    for entry in cfg.rules:
        rule = rule_from_config(entry, cfg)
        if rule.id in index:
            rules[index[rule.id]] = rule
        else:
            index[rule.id] = len(rules)
            rules.append(rule)

    return rules
