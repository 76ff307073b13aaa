"""SlaValidator — live metrics vs. static SLA thresholds.

Validation is instantaneous: each tick compares the latest value only.
The rolling sample window feeds trend reporting, never the pass/fail
decision.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog

from vigil.analytics.events import (
    PerformanceReportEvent,
    PerformanceViolationEvent,
    ValidationCompletedEvent,
    ValidationInitializedEvent,
)
from vigil.analytics.sink import AnalyticsSink, track
from vigil.core.config import SlaConfig
from vigil.core.exceptions import MissingDependencyError
from vigil.core.types import MetricsSnapshot, utc_now
from vigil.sla.types import (
    PerformanceValidation,
    PerformanceValidationResult,
    PerformanceViolation,
    ValidationStatus,
    ViolationSeverity,
)
from vigil.storage.store import (
    PERFORMANCE_HISTORY_KEY,
    KeyValueStore,
    load_items,
    save_items,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SlaMetric:
    """How one metric is read, compared and described."""

    name: str
    label: str
    threshold: float
    higher_is_better: bool
    severity: ViolationSeverity
    read: Callable[[MetricsSnapshot], float | None]
    fmt: Callable[[float], str]

    def passes(self, value: float) -> bool:
        # Boundary inclusive in both directions.
        if self.higher_is_better:
            return value >= self.threshold
        return value <= self.threshold

    def message(self, value: float, passed: bool) -> str:
        if passed:
            verb = "meets SLA" if self.higher_is_better else "within SLA"
            return f"{self.label} {verb}: {self.fmt(value)}"
        op = "<" if self.higher_is_better else ">"
        verb = "below SLA" if self.higher_is_better else "exceeds SLA"
        return f"{self.label} {verb}: {self.fmt(value)} {op} {self.fmt(self.threshold)}"


def _ms(v: float) -> str:
    return f"{v:.0f}ms"


def _pct1(v: float) -> str:
    return f"{v * 100:.1f}%"


def _pct2(v: float) -> str:
    return f"{v * 100:.2f}%"


def _mb(v: float) -> str:
    return f"{v:.1f}MB"


def build_metrics(config: SlaConfig) -> list[SlaMetric]:
    """The fixed SLA metric set, in validation order."""
    return [
        SlaMetric(
            name="load_time",
            label="Load time",
            threshold=config.max_load_time_ms,
            higher_is_better=False,
            severity=ViolationSeverity.HIGH,
            read=lambda s: s.performance.load_time_ms,
            fmt=_ms,
        ),
        SlaMetric(
            name="api_response_time",
            label="API response time",
            threshold=config.max_api_response_time_ms,
            higher_is_better=False,
            severity=ViolationSeverity.MEDIUM,
            read=lambda s: s.performance.api_response_time_ms,
            fmt=_ms,
        ),
        SlaMetric(
            name="cache_hit_rate",
            label="Cache hit rate",
            threshold=config.min_cache_hit_rate,
            higher_is_better=True,
            severity=ViolationSeverity.MEDIUM,
            read=lambda s: s.performance.cache_hit_rate,
            fmt=_pct1,
        ),
        SlaMetric(
            name="memory_usage",
            label="Memory usage",
            threshold=config.max_memory_usage_mb,
            higher_is_better=False,
            severity=ViolationSeverity.HIGH,
            read=lambda s: s.performance.memory_usage_mb,
            fmt=_mb,
        ),
        SlaMetric(
            name="error_rate",
            label="Error rate",
            threshold=config.max_error_rate,
            higher_is_better=False,
            severity=ViolationSeverity.CRITICAL,
            read=lambda s: s.errors.error_rate_per_minute,
            fmt=_pct2,
        ),
    ]


def overall_status(validations: dict[str, PerformanceValidation]) -> ValidationStatus:
    statuses = {v.status for v in validations.values()}
    if ValidationStatus.ERROR in statuses:
        return ValidationStatus.ERROR
    if ValidationStatus.FAILED in statuses:
        return ValidationStatus.FAILED
    return ValidationStatus.PASSED


class SlaValidator:
    """Validates each tick's snapshot and escalates debounced violations.

    Usage::

        validator = SlaValidator(store=store, sink=sink)
        await validator.initialize()
        result = await validator.validate(snapshot, now)   # 60s family
        await validator.generate_report(now)               # 300s family
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        sink: AnalyticsSink | None = None,
        config: SlaConfig | None = None,
        environment: str = "development",
    ) -> None:
        self._store = store
        self._sink = sink
        self._config = config or SlaConfig()
        self._environment = environment

        self._metrics = build_metrics(self._config)
        self._samples: dict[str, deque[float]] = {
            m.name: deque(maxlen=self._config.sample_window) for m in self._metrics
        }
        self._history: deque[PerformanceValidationResult] = deque(
            maxlen=self._config.history_size,
        )
        self._last_escalation: dict[str, datetime] = {}
        self._initialized = False

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, now: datetime | None = None) -> None:
        """Validate collaborators and reload persisted results.

        Raises:
            MissingDependencyError: store or sink not configured.
        """
        if self._initialized:
            return

        missing = [n for n, dep in (("store", self._store), ("sink", self._sink)) if dep is None]
        if missing:
            logger.error("sla_validator_init_failed", missing=missing)
            raise MissingDependencyError(
                f"SlaValidator missing dependencies: {', '.join(missing)}"
            )

        for item in await load_items(self._store, PERFORMANCE_HISTORY_KEY, self._config.history_size):
            try:
                self._history.append(PerformanceValidationResult.from_map(item))
            except Exception:
                logger.warning("validation_history_restore_skipped")

        self._initialized = True
        ts = now or utc_now()
        logger.info(
            "sla_validator_initialized",
            sla_requirements={m.name: m.threshold for m in self._metrics},
            restored_results=len(self._history),
        )
        await track(self._sink, ValidationInitializedEvent(
            environment=self._environment,
            max_load_time_ms=self._config.max_load_time_ms,
            timestamp=ts.isoformat(),
        ))

    # ── Validation ──────────────────────────────────────────────

    async def validate(
        self,
        snapshot: MetricsSnapshot,
        now: datetime,
    ) -> PerformanceValidationResult | None:
        if not self._initialized:
            return None

        result = PerformanceValidationResult(timestamp=now)
        for metric in self._metrics:
            validation = self._validate_metric(metric, snapshot)
            if validation is None:
                continue
            result.validations[metric.name] = validation
            if validation.status == ValidationStatus.FAILED:
                result.violations.append(PerformanceViolation(
                    metric=metric.name,
                    current_value=validation.current_value,
                    threshold=metric.threshold,
                    severity=metric.severity,
                    message=validation.message,
                ))
        result.overall_status = overall_status(result.validations)
        self._history.append(result)

        await save_items(
            self._store,
            PERFORMANCE_HISTORY_KEY,
            [r.to_map() for r in self._history],
        )
        await track(self._sink, ValidationCompletedEvent(
            overall_status=result.overall_status.value,
            validation_count=len(result.validations),
            violation_count=len(result.violations),
            timestamp=now.isoformat(),
        ))

        await self._escalate(result.violations, now)

        if result.overall_status != ValidationStatus.PASSED:
            logger.warning(
                "performance_validation_failed",
                overall_status=result.overall_status.value,
                violations=[v.metric for v in result.violations],
            )
        else:
            logger.debug("performance_validation_passed", validation_count=len(result.validations))
        return result

    def _validate_metric(
        self, metric: SlaMetric, snapshot: MetricsSnapshot,
    ) -> PerformanceValidation | None:
        """Compare one metric; None when the host does not report it."""
        try:
            value = metric.read(snapshot)
            if value is None:
                logger.debug("metric_not_reported", metric=metric.name)
                return None
            value = float(value)
            self._samples[metric.name].append(value)
            passed = metric.passes(value)
            return PerformanceValidation(
                metric=metric.name,
                current_value=value,
                threshold=metric.threshold,
                status=ValidationStatus.PASSED if passed else ValidationStatus.FAILED,
                message=metric.message(value, passed),
            )
        except Exception as exc:
            logger.exception("metric_validation_error", metric=metric.name)
            return PerformanceValidation(
                metric=metric.name,
                current_value=0.0,
                threshold=metric.threshold,
                status=ValidationStatus.ERROR,
                message=f"Failed to validate {metric.label.lower()}: {exc}",
            )

    async def _escalate(self, violations: list[PerformanceViolation], now: datetime) -> list[str]:
        """Escalate violations whose metric has not escalated recently."""
        window = timedelta(seconds=self._config.violation_debounce_secs)
        escalated: list[str] = []
        for violation in violations:
            last = self._last_escalation.get(violation.metric)
            if last is not None and now - last < window:
                continue
            self._last_escalation[violation.metric] = now
            escalated.append(violation.metric)

            logger.error(
                "performance_violation",
                metric=violation.metric,
                current_value=violation.current_value,
                threshold=violation.threshold,
                severity=violation.severity.value,
                message=violation.message,
            )
            await track(self._sink, PerformanceViolationEvent(
                metric=violation.metric,
                current_value=violation.current_value,
                threshold=violation.threshold,
                severity=violation.severity.value,
                environment=self._environment,
                timestamp=now.isoformat(),
            ))
        return escalated

    # ── Reporting ───────────────────────────────────────────────

    def current_metrics(self) -> dict[str, dict[str, float]]:
        """Trend stats per metric over the rolling sample window."""
        stats: dict[str, dict[str, float]] = {}
        for name, values in self._samples.items():
            if not values:
                continue
            stats[name] = {
                "current": values[-1],
                "average": sum(values) / len(values),
                "min": min(values),
                "max": max(values),
                "count": len(values),
            }
        return stats

    async def generate_report(self, now: datetime) -> dict[str, Any] | None:
        if not self._initialized:
            return None

        total = len(self._history)
        passed = sum(1 for r in self._history if r.overall_status == ValidationStatus.PASSED)
        pass_rate = round(passed / total, 4) if total else 0.0
        violation_counts: dict[str, int] = {}
        for r in self._history:
            for v in r.violations:
                violation_counts[v.metric] = violation_counts.get(v.metric, 0) + 1

        report: dict[str, Any] = {
            "timestamp": now.isoformat(),
            "validation_count": total,
            "pass_rate": pass_rate,
            "violation_counts": violation_counts,
            "trends": self.current_metrics(),
        }
        logger.info(
            "performance_report_generated",
            validation_count=total,
            pass_rate=pass_rate,
            violation_counts=violation_counts,
        )
        await track(self._sink, PerformanceReportEvent(
            validation_count=total,
            pass_rate=pass_rate,
            environment=self._environment,
            timestamp=now.isoformat(),
        ))
        return report

    def get_validation_history(self, limit: int = 50) -> list[PerformanceValidationResult]:
        """Newest *limit* results, oldest first."""
        if limit <= 0:
            return []
        return [r.model_copy(deep=True) for r in list(self._history)[-limit:]]

    def last_escalation(self, metric: str) -> datetime | None:
        return self._last_escalation.get(metric)
