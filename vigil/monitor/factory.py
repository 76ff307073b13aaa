"""Convenience factory for wiring the monitoring stack."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from vigil.alerts.engine import RuleEngine
from vigil.alerts.incidents import IncidentManager
from vigil.alerts.rules import load_rules
from vigil.alerts.senders import NotificationSender, default_senders
from vigil.alerts.types import NotificationChannel
from vigil.analytics.sink import AnalyticsSink, create_sink
from vigil.core.config import Settings
from vigil.core.exceptions import MissingDependencyError
from vigil.core.types import (
    ErrorStatsFn,
    NetworkProbeFn,
    PerformanceStatsFn,
    SecurityStatusFn,
)
from vigil.health.checks import (
    ApplicationHealthCheck,
    ExternalServiceHealthCheck,
    HealthCheck,
    PerformanceHealthCheck,
    SecurityHealthCheck,
    SystemHealthCheck,
)
from vigil.health.monitor import HealthMonitor
from vigil.monitor.scheduler import Scheduler
from vigil.sla.validator import SlaValidator
from vigil.storage.store import KeyValueStore, create_store

logger = structlog.get_logger(__name__)


@dataclass
class MonitorStack:
    """Every wired component, plus lifecycle helpers for the whole set."""

    settings: Settings
    store: KeyValueStore
    sink: AnalyticsSink
    senders: dict[NotificationChannel, NotificationSender]
    health_monitor: HealthMonitor
    rule_engine: RuleEngine
    incidents: IncidentManager
    sla: SlaValidator
    scheduler: Scheduler

    async def initialize(self) -> list[str]:
        """Initialize each service; returns the names that failed.

        A service that fails stays uninitialized and its ticks are no-ops;
        the others still come up.
        """
        failed: list[str] = []
        services = (
            ("alerting", self.incidents),
            ("health", self.health_monitor),
            ("sla", self.sla),
        )
        for name, service in services:
            try:
                await service.initialize()
            except MissingDependencyError:
                logger.exception("service_init_failed", service=name)
                failed.append(name)
        return failed

    async def start(self) -> None:
        await self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        for sender in self.senders.values():
            try:
                await sender.close()
            except Exception:
                logger.exception("sender_close_error", channel=sender.channel.value)
        await self.sink.close()
        await self.store.close()


def create_checks(
    settings: Settings,
    store: KeyValueStore | None,
    sink: AnalyticsSink | None,
    error_fn: ErrorStatsFn | None = None,
    performance_fn: PerformanceStatsFn | None = None,
    security_fn: SecurityStatusFn | None = None,
    network_probe: NetworkProbeFn | None = None,
) -> list[HealthCheck]:
    """The five standard subsystem checks."""
    health = settings.health
    return [
        SystemHealthCheck(
            memory_threshold_mb=health.memory_threshold_mb,
            store=store,
            network_probe=network_probe,
        ),
        PerformanceHealthCheck(
            performance_fn,
            min_cache_hit_rate=health.min_cache_hit_rate,
            memory_threshold_mb=health.memory_threshold_mb,
            degradation_threshold_ms=health.degradation_threshold_ms,
        ),
        SecurityHealthCheck(security_fn),
        ExternalServiceHealthCheck(
            sink,
            crash_reporting_enabled=settings.analytics.crash_reporting_enabled,
        ),
        ApplicationHealthCheck(
            settings.environment,
            settings.app_version,
            error_fn,
            error_rate_threshold=health.error_rate_threshold,
        ),
    ]


def create_monitor_stack(
    settings: Settings,
    error_fn: ErrorStatsFn | None = None,
    performance_fn: PerformanceStatsFn | None = None,
    security_fn: SecurityStatusFn | None = None,
    network_probe: NetworkProbeFn | None = None,
    store: KeyValueStore | None = None,
    sink: AnalyticsSink | None = None,
) -> MonitorStack:
    """Build every component from *settings* and the host's providers.

    *store* and *sink* default to the ones named in ``settings.storage``
    and ``settings.analytics``.
    """
    store = store if store is not None else create_store(
        settings.storage.backend, settings.storage.path,
    )
    sink = sink if sink is not None else create_sink(settings.analytics)
    env = settings.environment

    senders = default_senders(sink)
    incidents = IncidentManager(
        load_rules(settings.alerting),
        senders,
        store=store,
        sink=sink,
        config=settings.alerting,
        environment=env,
    )
    health_monitor = HealthMonitor(
        create_checks(
            settings, store, sink,
            error_fn=error_fn,
            performance_fn=performance_fn,
            security_fn=security_fn,
            network_probe=network_probe,
        ),
        store=store,
        sink=sink,
        config=settings.health,
        environment=env,
        error_fn=error_fn,
    )
    rule_engine = RuleEngine(max_consecutive_failures=settings.health.max_consecutive_failures)
    sla = SlaValidator(store=store, sink=sink, config=settings.sla, environment=env)
    scheduler = Scheduler(
        health_monitor,
        rule_engine,
        incidents,
        sla,
        error_fn=error_fn,
        performance_fn=performance_fn,
        config=settings.scheduler,
    )

    return MonitorStack(
        settings=settings,
        store=store,
        sink=sink,
        senders=senders,
        health_monitor=health_monitor,
        rule_engine=rule_engine,
        incidents=incidents,
        sla=sla,
        scheduler=scheduler,
    )
