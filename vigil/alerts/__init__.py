"""Alert rules, rule evaluation, incidents and notification delivery."""

from vigil.alerts.engine import RuleEngine
from vigil.alerts.incidents import IncidentManager, hour_bucket, render_message
from vigil.alerts.rules import default_rules, load_rules, rule_from_config
from vigil.alerts.senders import (
    AnalyticsSender,
    ConsoleSender,
    EmailSender,
    NotificationSender,
    SlackSender,
    default_senders,
)
from vigil.alerts.types import (
    AlertCondition,
    AlertIncident,
    AlertNotification,
    AlertRule,
    AlertSeverity,
    IncidentStatus,
    NotificationChannel,
    NotificationStatus,
    RuleEvaluation,
)

__all__ = [
    "AlertCondition",
    "AlertIncident",
    "AlertNotification",
    "AlertRule",
    "AlertSeverity",
    "AnalyticsSender",
    "ConsoleSender",
    "EmailSender",
    "IncidentManager",
    "IncidentStatus",
    "NotificationChannel",
    "NotificationSender",
    "NotificationStatus",
    "RuleEngine",
    "RuleEvaluation",
    "SlackSender",
    "default_rules",
    "default_senders",
    "hour_bucket",
    "load_rules",
    "render_message",
    "rule_from_config",
]
