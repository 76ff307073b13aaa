"""HealthMonitor — runs the checks, keeps history, raises health alerts."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta
from typing import Any

import structlog

from vigil.alerts.types import AlertSeverity
from vigil.analytics.events import (
    HealthAlertEvent,
    HealthCheckCompletedEvent,
    MetricsCollectedEvent,
    MonitoringInitializedEvent,
)
from vigil.analytics.sink import AnalyticsSink, track
from vigil.core.config import HealthConfig
from vigil.core.exceptions import MissingDependencyError
from vigil.core.types import (
    CheckKind,
    CheckReport,
    CheckStatus,
    ErrorStats,
    ErrorStatsFn,
    HealthSnapshot,
    HealthStatus,
    utc_now,
)
from vigil.health.aggregator import FailureTracker, aggregate
from vigil.health.checks import HealthCheck
from vigil.health.types import HealthAlert, HealthCheckResult
from vigil.storage.store import (
    ALERT_HISTORY_KEY,
    HEALTH_HISTORY_KEY,
    KeyValueStore,
    load_items,
    save_items,
)

logger = structlog.get_logger(__name__)

ALERT_HISTORY_SIZE = 100


class HealthMonitor:
    """Runs every HealthCheck per tick and owns the health state.

    - Each check is isolated: an exception becomes an ``error`` report for
      that check only.
    - Consecutive failures are tracked per check name.
    - The last ``history_size`` results and the last 100 health alerts are
      kept in memory and persisted after each change.

    Usage::

        monitor = HealthMonitor(checks, store=store, sink=sink)
        await monitor.initialize()
        await monitor.run_checks(now)            # 30s family
        await monitor.check_alert_conditions(now)  # 60s family
        snapshot = monitor.current_snapshot()
    """

    def __init__(
        self,
        checks: list[HealthCheck],
        store: KeyValueStore | None = None,
        sink: AnalyticsSink | None = None,
        config: HealthConfig | None = None,
        environment: str = "development",
        error_fn: ErrorStatsFn | None = None,
    ) -> None:
        self._checks = list(checks)
        self._store = store
        self._sink = sink
        self._config = config or HealthConfig()
        self._environment = environment
        self._error_fn = error_fn

        self._failures = FailureTracker(self._config.max_consecutive_failures)
        self._history: deque[HealthCheckResult] = deque(maxlen=self._config.history_size)
        self._alerts: deque[HealthAlert] = deque(maxlen=ALERT_HISTORY_SIZE)
        self._last_alert: dict[str, datetime] = {}
        self._initialized = False

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, now: datetime | None = None) -> None:
        """Validate collaborators and reload persisted history.

        Raises:
            MissingDependencyError: no checks, store or sink configured.
        """
        if self._initialized:
            return

        missing: list[str] = []
        if not self._checks:
            missing.append("checks")
        if self._store is None:
            missing.append("store")
        if self._sink is None:
            missing.append("sink")
        if missing:
            logger.error("health_monitor_init_failed", missing=missing)
            raise MissingDependencyError(
                f"HealthMonitor missing dependencies: {', '.join(missing)}"
            )

        await self._load_history()
        self._initialized = True

        ts = now or utc_now()
        logger.info(
            "health_monitor_initialized",
            checks=[c.name for c in self._checks],
            restored_results=len(self._history),
            restored_alerts=len(self._alerts),
        )
        await track(self._sink, MonitoringInitializedEvent(
            environment=self._environment,
            timestamp=ts.isoformat(),
        ))

    # ── Health-check family ─────────────────────────────────────

    async def run_checks(self, now: datetime) -> HealthCheckResult | None:
        if not self._initialized:
            return None

        reports: dict[str, CheckReport] = {}
        for check in self._checks:
            try:
                report = await check.run()
            except Exception as exc:
                logger.exception("health_check_error", check=check.name)
                report = CheckReport(
                    name=check.name,
                    status=CheckStatus.ERROR.value,
                    details={"error": str(exc), "timestamp": now.isoformat()},
                )
            reports[check.name] = report

        result = HealthCheckResult(
            timestamp=now,
            checks=reports,
            overall_status=aggregate(reports),
        )
        self.record(result)

        await save_items(
            self._store,
            HEALTH_HISTORY_KEY,
            [r.to_map() for r in self._history],
        )
        await track(self._sink, HealthCheckCompletedEvent(
            overall_status=result.overall_status.value,
            timestamp=now.isoformat(),
            check_count=len(reports),
        ))
        return result

    def record(self, result: HealthCheckResult) -> None:
        """Append *result* to history and update failure counters."""
        previous = self._history[-1].overall_status if self._history else None
        reached = self._failures.record(result.checks)
        self._history.append(result)

        for name in reached:
            logger.error(
                "health_check_failure_threshold",
                check=name,
                failure_count=self._failures.count(name),
            )

        if previous is not None and previous != result.overall_status:
            logger.warning(
                "health_status_changed",
                previous=previous.value,
                status=result.overall_status.value,
            )

        if result.overall_status == HealthStatus.HEALTHY:
            logger.debug("health_check_passed", check_count=len(result.checks))
        else:
            logger.warning(
                "health_check_degraded",
                status=result.overall_status.value,
                failing={
                    n: r.status for n, r in result.checks.items()
                    if r.check_status != CheckStatus.HEALTHY
                },
            )

    # ── Alert family ────────────────────────────────────────────

    async def check_alert_conditions(self, now: datetime) -> list[HealthAlert]:
        """Raise debounced health alerts for the latest state."""
        if not self._initialized:
            return []

        raised: list[HealthAlert] = []

        for name, count in self._failures.over_threshold().items():
            alert = await self._raise_alert(
                now,
                alert_type="health_check_failure",
                debounce_key=f"health_check_failure:{name}",
                message=f'Health check "{name}" has failed {count} consecutive times',
                severity=AlertSeverity.CRITICAL,
                metadata={
                    "check_name": name,
                    "failure_count": count,
                    "max_failures": self._failures.threshold,
                },
            )
            if alert is not None:
                raised.append(alert)

        latest = self.latest
        if latest is not None and latest.overall_status == HealthStatus.CRITICAL:
            alert = await self._raise_alert(
                now,
                alert_type="system_critical",
                message="System health is critical",
                severity=AlertSeverity.CRITICAL,
                metadata=latest.to_map(),
            )
            if alert is not None:
                raised.append(alert)

        stats = self._error_stats()
        if stats is not None:
            if stats.error_rate_per_minute > self._config.error_rate_threshold:
                alert = await self._raise_alert(
                    now,
                    alert_type="high_error_rate",
                    message=(
                        "Error rate is above threshold: "
                        f"{stats.error_rate_per_minute * 100:.2f}%"
                    ),
                    severity=AlertSeverity.HIGH,
                    metadata=stats.model_dump(mode="json"),
                )
                if alert is not None:
                    raised.append(alert)

        return raised

    def _error_stats(self) -> ErrorStats | None:
        if self._error_fn is None:
            return None
        try:
            return self._error_fn()
        except Exception:
            logger.exception("error_stats_unavailable")
            return None

    async def _raise_alert(
        self,
        now: datetime,
        alert_type: str,
        message: str,
        severity: AlertSeverity,
        metadata: dict[str, Any],
        debounce_key: str | None = None,
    ) -> HealthAlert | None:
        key = debounce_key or alert_type
        last = self._last_alert.get(key)
        if last is not None and now - last < timedelta(seconds=self._config.alert_debounce_secs):
            return None

        alert = HealthAlert(
            timestamp=now,
            alert_type=alert_type,
            message=message,
            severity=severity,
            metadata=metadata,
        )
        self._alerts.append(alert)
        self._last_alert[key] = now

        await save_items(
            self._store,
            ALERT_HISTORY_KEY,
            [a.to_map() for a in self._alerts],
        )
        logger.error(
            "health_alert",
            alert_type=alert_type,
            message=message,
            severity=severity.value,
        )
        await track(self._sink, HealthAlertEvent(
            alert_type=alert_type,
            severity=severity.value,
            environment=self._environment,
            timestamp=now.isoformat(),
        ))
        return alert

    # ── Metrics family ──────────────────────────────────────────

    async def collect_metrics(self, now: datetime) -> dict[str, Any] | None:
        """Summarise memory, errors and health; report it to analytics."""
        if not self._initialized:
            return None

        latest = self.latest
        memory_mb = 0.0
        if latest is not None:
            system = latest.checks.get(CheckKind.SYSTEM.value)
            memory = system.details.get("memory") if system else None
            if isinstance(memory, dict):
                memory_mb = float(memory.get("usage_mb", 0.0))

        stats = self._error_stats()
        error_count = stats.total_errors if stats is not None else 0
        health_status = latest.overall_status.value if latest else HealthStatus.UNKNOWN.value

        metrics: dict[str, Any] = {
            "timestamp": now.isoformat(),
            "environment": self._environment,
            "system_memory_mb": memory_mb,
            "error_count": error_count,
            "health_status": health_status,
            "health_check_failures": self._failures.counts(),
            "recent_alerts": [a.to_map() for a in list(self._alerts)[-10:]],
        }

        logger.info(
            "production_metrics_collected",
            memory_mb=memory_mb,
            error_count=error_count,
            health_status=health_status,
        )
        await track(self._sink, MetricsCollectedEvent(
            timestamp=now.isoformat(),
            environment=self._environment,
            system_memory_mb=memory_mb,
            error_count=error_count,
            health_status=health_status,
        ))
        return metrics

    # ── Read accessors ──────────────────────────────────────────

    @property
    def latest(self) -> HealthCheckResult | None:
        return self._history[-1] if self._history else None

    def current_snapshot(self) -> HealthSnapshot:
        """Latest health state as seen by the rule engine."""
        latest = self.latest
        if latest is None:
            return HealthSnapshot(failure_counts=self._failures.counts())
        return HealthSnapshot(
            status=latest.overall_status,
            checks={n: r.model_copy(deep=True) for n, r in latest.checks.items()},
            failure_counts=self._failures.counts(),
            timestamp=latest.timestamp,
        )

    def failure_counts(self) -> dict[str, int]:
        return self._failures.counts()

    def get_health_history(self, limit: int = 50) -> list[HealthCheckResult]:
        """Newest *limit* results, oldest first."""
        if limit <= 0:
            return []
        return [r.model_copy(deep=True) for r in list(self._history)[-limit:]]

    def get_recent_alerts(self, limit: int = 10) -> list[HealthAlert]:
        if limit <= 0:
            return []
        return [a.model_copy(deep=True) for a in list(self._alerts)[-limit:]]

    # ── Persistence ─────────────────────────────────────────────

    async def _load_history(self) -> None:
        for item in await load_items(self._store, HEALTH_HISTORY_KEY, self._config.history_size):
            try:
                self._history.append(HealthCheckResult.from_map(item))
            except Exception:
                logger.warning("health_history_restore_skipped")
        for item in await load_items(self._store, ALERT_HISTORY_KEY, ALERT_HISTORY_SIZE):
            try:
                self._alerts.append(HealthAlert.from_map(item))
            except Exception:
                logger.warning("alert_history_restore_skipped")
