"""IncidentManager — cooldown, hourly rate limit, incident + notification lifecycle."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from vigil.alerts.senders import NotificationSender
from vigil.alerts.types import (
    AlertIncident,
    AlertNotification,
    AlertRule,
    IncidentStatus,
    NotificationChannel,
    NotificationStatus,
)
from vigil.analytics.events import AlertingInitializedEvent, AlertTriggeredEvent
from vigil.analytics.sink import AnalyticsSink, track
from vigil.core.config import AlertingConfig
from vigil.core.exceptions import MissingDependencyError
from vigil.core.types import utc_now
from vigil.storage.store import (
    ACTIVE_INCIDENTS_KEY,
    KeyValueStore,
    load_items,
    save_items,
)

logger = structlog.get_logger(__name__)


def hour_bucket(ts: datetime) -> datetime:
    """Truncate *ts* to the start of its UTC wall-clock hour."""
    return ts.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def render_message(
    rule: AlertRule,
    alert_data: dict[str, Any],
    now: datetime,
    environment: str,
) -> str:
    """Human-readable alert text shared by every channel."""
    lines = [
        f"ALERT: {rule.name}",
        f"Severity: {rule.severity.value.upper()}",
        f"Description: {rule.description}",
        f"Environment: {environment}",
        f"Time: {now.isoformat()}",
    ]
    if alert_data:
        lines.append(f"Data: {json.dumps(alert_data, default=str, sort_keys=True)}")
    return "\n".join(lines)


class IncidentManager:
    """Owns incidents, the notification queue and the dedup counters.

    - A rule fires at most once per ``rule.cooldown_period``.
    - A rule fires at most ``max_alerts_per_hour`` times per UTC hour bucket.
    - Each incident fans out one notification per channel on the rule.
    - Delivery is fire-and-forget: a failed send is recorded, never retried,
      and notifications older than the retention window are pruned whatever
      their status.

    Usage::

        manager = IncidentManager(rules, senders, store=store, sink=sink)
        await manager.initialize()
        incident = await manager.trigger(rule, alert_data, now)
        await manager.process_notifications(now)
    """

    def __init__(
        self,
        rules: list[AlertRule],
        senders: dict[NotificationChannel, NotificationSender] | None,
        store: KeyValueStore | None = None,
        sink: AnalyticsSink | None = None,
        config: AlertingConfig | None = None,
        environment: str = "development",
    ) -> None:
        self._rules: list[AlertRule] = list(rules)
        self._senders = senders
        self._store = store
        self._sink = sink
        self._config = config or AlertingConfig()
        self._environment = environment

        self._incidents: list[AlertIncident] = []
        self._notifications: list[AlertNotification] = []
        self._last_trigger: dict[str, datetime] = {}
        self._hourly_counts: dict[tuple[str, datetime], int] = {}
        self._initialized = False

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, now: datetime | None = None) -> None:
        """Validate collaborators and reload persisted incidents.

        Raises:
            MissingDependencyError: store, sink or a channel sender is absent.
                The manager then stays uninitialized and ignores triggers.
        """
        if self._initialized:
            return

        missing: list[str] = []
        if self._store is None:
            missing.append("store")
        if self._sink is None:
            missing.append("sink")
        if self._senders is None:
            missing.append("senders")
        else:
            needed = {c for r in self._rules for c in r.notification_channels}
            missing.extend(
                f"sender:{c.value}" for c in sorted(needed) if c not in self._senders
            )
        if missing:
            logger.error("alerting_init_failed", missing=missing)
            raise MissingDependencyError(
                f"IncidentManager missing dependencies: {', '.join(missing)}"
            )

        await self._load_incidents()
        self._initialized = True

        ts = now or utc_now()
        logger.info(
            "alerting_initialized",
            alert_rules_count=len(self._rules),
            restored_incidents=len(self._incidents),
        )
        await track(self._sink, AlertingInitializedEvent(
            environment=self._environment,
            alert_rules_count=len(self._rules),
            timestamp=ts.isoformat(),
        ))

    # ── Triggering ──────────────────────────────────────────────

    async def trigger(
        self,
        rule: AlertRule,
        alert_data: dict[str, Any],
        now: datetime,
    ) -> AlertIncident | None:
        """Open an incident for *rule* unless cooldown or rate limit applies."""
        if not self._initialized:
            return None

        last = self._last_trigger.get(rule.id)
        if last is not None and now - last < rule.cooldown_period:
            logger.debug("alert_cooldown_active", rule_id=rule.id)
            return None

        bucket_key = (rule.id, hour_bucket(now))
        count = self._hourly_counts.get(bucket_key, 0)
        if count >= self._config.max_alerts_per_hour:
            logger.warning(
                "alert_rate_limited",
                rule_id=rule.id,
                hourly_count=count,
                max_alerts_per_hour=self._config.max_alerts_per_hour,
            )
            return None

        epoch_ms = int(now.timestamp() * 1000)
        incident = AlertIncident(
            id=f"incident_{epoch_ms}_{rule.id}",
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity,
            status=IncidentStatus.ACTIVE,
            created_at=now,
            alert_data=alert_data,
            description=rule.description,
        )
        self._incidents.append(incident)
        self._last_trigger[rule.id] = now
        self._hourly_counts[bucket_key] = count + 1

        message = render_message(rule, alert_data, now, self._environment)
        for channel in rule.notification_channels:
            self._notifications.append(AlertNotification(
                id=f"notification_{epoch_ms}_{rule.id}_{channel.value}",
                incident_id=incident.id,
                channel=channel,
                message=message,
                created_at=now,
            ))

        await self._save_incidents()

        logger.error(
            "alert_triggered",
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity.value,
            incident_id=incident.id,
            alert_data=alert_data,
        )
        await track(self._sink, AlertTriggeredEvent(
            rule_id=rule.id,
            rule_name=rule.name,
            severity=rule.severity.value,
            incident_id=incident.id,
            environment=self._environment,
            timestamp=now.isoformat(),
        ))
        return incident.model_copy(deep=True)

    # ── Delivery ────────────────────────────────────────────────

    async def process_notifications(self, now: datetime) -> int:
        """Attempt every pending notification once, then prune old ones.

        Returns the number delivered successfully.
        """
        if not self._initialized:
            return 0

        delivered = 0
        for notification in self._notifications:
            if notification.status != NotificationStatus.PENDING:
                continue
            sender = (self._senders or {}).get(notification.channel)
            try:
                if sender is None:
                    raise LookupError(f"no sender for channel {notification.channel.value}")
                await sender.send(notification, now)
            except Exception as exc:
                notification.status = NotificationStatus.FAILED
                notification.error = str(exc) or type(exc).__name__
                logger.exception(
                    "notification_send_error",
                    notification_id=notification.id,
                    channel=notification.channel.value,
                )
                continue
            notification.status = NotificationStatus.SENT
            notification.sent_at = now
            delivered += 1

        cutoff = now - timedelta(hours=self._config.notification_retention_hours)
        before = len(self._notifications)
        self._notifications = [n for n in self._notifications if n.created_at >= cutoff]
        pruned = before - len(self._notifications)
        if pruned:
            logger.debug("notifications_pruned", count=pruned)
        return delivered

    # ── Cleanup ─────────────────────────────────────────────────

    async def cleanup(self, now: datetime) -> int:
        """Drop resolved incidents past retention and stale hour buckets.

        Returns the number of incidents removed.
        """
        if not self._initialized:
            return 0

        cutoff = now - timedelta(hours=self._config.incident_retention_hours)
        kept = [
            i for i in self._incidents
            if not (i.status == IncidentStatus.RESOLVED and i.created_at < cutoff)
        ]
        removed = len(self._incidents) - len(kept)
        self._incidents = kept

        current = hour_bucket(now)
        self._hourly_counts = {
            key: count for key, count in self._hourly_counts.items()
            if key[1] == current
        }

        if removed:
            logger.info("incidents_cleaned_up", removed=removed, remaining=len(kept))
            await self._save_incidents()
        return removed

    # ── Status transitions ──────────────────────────────────────

    async def acknowledge(self, incident_id: str) -> AlertIncident | None:
        return await self._transition(incident_id, IncidentStatus.ACKNOWLEDGED)

    async def resolve(self, incident_id: str, now: datetime) -> AlertIncident | None:
        return await self._transition(incident_id, IncidentStatus.RESOLVED, resolved_at=now)

    async def suppress(self, incident_id: str) -> AlertIncident | None:
        """Silence an incident and cancel its undelivered notifications."""
        incident = await self._transition(incident_id, IncidentStatus.SUPPRESSED)
        if incident is not None:
            for n in self._notifications:
                if n.incident_id == incident_id and n.status == NotificationStatus.PENDING:
                    n.status = NotificationStatus.CANCELLED
        return incident

    async def _transition(
        self,
        incident_id: str,
        status: IncidentStatus,
        resolved_at: datetime | None = None,
    ) -> AlertIncident | None:
        incident = next((i for i in self._incidents if i.id == incident_id), None)
        if incident is None:
            return None
        previous = incident.status
        incident.status = status
        if resolved_at is not None:
            incident.resolved_at = resolved_at
        logger.info(
            "incident_status_changed",
            incident_id=incident_id,
            previous=previous.value,
            status=status.value,
        )
        await self._save_incidents()
        return incident.model_copy(deep=True)

    # ── Read accessors (copies) ─────────────────────────────────

    def get_active_incidents(self) -> list[AlertIncident]:
        return [i.model_copy(deep=True) for i in self._incidents]

    def get_alert_rules(self) -> list[AlertRule]:
        return list(self._rules)

    def get_notifications(self) -> list[AlertNotification]:
        return [n.model_copy(deep=True) for n in self._notifications]

    def hourly_count(self, rule_id: str, now: datetime) -> int:
        return self._hourly_counts.get((rule_id, hour_bucket(now)), 0)

    def last_trigger(self, rule_id: str) -> datetime | None:
        return self._last_trigger.get(rule_id)

    # ── Persistence ─────────────────────────────────────────────

    async def _save_incidents(self) -> None:
        await save_items(
            self._store,
            ACTIVE_INCIDENTS_KEY,
            [i.to_map() for i in self._incidents],
        )

    async def _load_incidents(self) -> None:
        restored: list[AlertIncident] = []
        for item in await load_items(self._store, ACTIVE_INCIDENTS_KEY):
            try:
                restored.append(AlertIncident.from_map(item))
            except Exception:
                logger.warning("incident_restore_skipped", incident_id=item.get("id"))
        self._incidents = restored
