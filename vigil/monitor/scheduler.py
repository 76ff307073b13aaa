"""Periodic driver for the three tick families."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any

import structlog

from vigil.alerts.engine import RuleEngine
from vigil.alerts.incidents import IncidentManager
from vigil.core.config import SchedulerConfig
from vigil.core.types import (
    ErrorStats,
    ErrorStatsFn,
    MetricsSnapshot,
    PerformanceStats,
    PerformanceStatsFn,
    utc_now,
)
from vigil.health.monitor import HealthMonitor
from vigil.sla.validator import SlaValidator

logger = structlog.get_logger(__name__)

ClockFn = Callable[[], datetime]
TickFn = Callable[[datetime], Awaitable[None]]


class Scheduler:
    """Runs health (30s), alert (60s) and metrics (300s) ticks.

    Each ``tick_*`` method can be called directly with a synthetic ``now``;
    ``start()`` runs one background task per family on the configured
    period.  Ticks of one family never overlap, and no exception escapes a
    tick: every stage is isolated and logged.

    Usage::

        scheduler = Scheduler(monitor, engine, incidents, validator,
                              error_fn=tracker.stats, performance_fn=perf.stats)
        await scheduler.start()
        # ...
        await scheduler.stop()
    """

    def __init__(
        self,
        health_monitor: HealthMonitor,
        rule_engine: RuleEngine,
        incidents: IncidentManager,
        sla: SlaValidator,
        error_fn: ErrorStatsFn | None = None,
        performance_fn: PerformanceStatsFn | None = None,
        config: SchedulerConfig | None = None,
        clock: ClockFn = utc_now,
    ) -> None:
        self._health = health_monitor
        self._engine = rule_engine
        self._incidents = incidents
        self._sla = sla
        self._error_fn = error_fn
        self._performance_fn = performance_fn
        self._config = config or SchedulerConfig()
        self._clock = clock
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        families: list[tuple[str, float, TickFn]] = [
            ("health", self._config.health_interval_secs, self.tick_health),
            ("alerts", self._config.alert_interval_secs, self.tick_alerts),
            ("metrics", self._config.metrics_interval_secs, self.tick_metrics),
        ]
        for family, interval, tick in families:
            self._tasks.append(
                asyncio.create_task(self._loop(family, interval, tick), name=f"vigil-{family}")
            )
        logger.info(
            "scheduler_started",
            health_interval_secs=self._config.health_interval_secs,
            alert_interval_secs=self._config.alert_interval_secs,
            metrics_interval_secs=self._config.metrics_interval_secs,
        )

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("scheduler_stopped")

    async def __aenter__(self) -> Scheduler:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    # ── Tick families ───────────────────────────────────────────

    async def tick_health(self, now: datetime) -> None:
        await self._stage("health_checks", self._health.run_checks(now))

    async def tick_alerts(self, now: datetime) -> None:
        snapshot = self.build_snapshot(now)
        if snapshot is not None:
            await self._stage("rule_evaluation", self._evaluate_rules(snapshot, now))
        await self._stage("notification_delivery", self._incidents.process_notifications(now))
        if snapshot is not None:
            await self._stage("sla_validation", self._sla.validate(snapshot, now))
        await self._stage("health_alerts", self._health.check_alert_conditions(now))

    async def tick_metrics(self, now: datetime) -> None:
        await self._stage("metrics_collection", self._health.collect_metrics(now))
        await self._stage("performance_report", self._sla.generate_report(now))
        await self._stage("incident_cleanup", self._incidents.cleanup(now))

    # ── Internals ───────────────────────────────────────────────

    def build_snapshot(self, now: datetime) -> MetricsSnapshot | None:
        """Poll the providers; ``None`` if any of them raises."""
        try:
            errors = self._error_fn() if self._error_fn else ErrorStats()
            performance = self._performance_fn() if self._performance_fn else PerformanceStats()
            return MetricsSnapshot(
                health=self._health.current_snapshot(),
                errors=errors,
                performance=performance,
                taken_at=now,
            )
        except Exception:
            logger.exception("snapshot_build_error")
            return None

    async def _evaluate_rules(self, snapshot: MetricsSnapshot, now: datetime) -> int:
        if not self._incidents.initialized:
            return 0
        opened = 0
        rules = self._incidents.get_alert_rules()
        for evaluation in self._engine.evaluate(rules, snapshot):
            if not evaluation.triggered:
                continue
            incident = await self._incidents.trigger(evaluation.rule, evaluation.alert_data, now)
            if incident is not None:
                opened += 1
        return opened

    async def _stage(self, stage: str, work: Awaitable[Any]) -> None:
        try:
            await work
        except Exception:
            logger.exception("scheduler_stage_error", stage=stage)

    async def _loop(self, family: str, interval: float, tick: TickFn) -> None:
        while self._running:
            try:
                await tick(self._clock())
            except asyncio.CancelledError:
                return
            except Exception:
                logger.exception("scheduler_loop_error", family=family)
            await asyncio.sleep(interval)
