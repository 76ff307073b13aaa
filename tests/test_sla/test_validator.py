"""Tests for SlaValidator — thresholds and violation debounce."""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from vigil.analytics.sink import AnalyticsSink
from vigil.core.config import SlaConfig
from vigil.core.exceptions import MissingDependencyError, StorageError
from vigil.core.types import ErrorStats, MetricsSnapshot, PerformanceStats
from vigil.sla.types import (
    PerformanceValidation,
    ValidationStatus,
    ViolationSeverity,
)
from vigil.sla.validator import SlaValidator, build_metrics, overall_status
from vigil.storage.store import PERFORMANCE_HISTORY_KEY, MemoryStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
MB = 1024 * 1024


# ── Helpers ─────────────────────────────────────────────────────


class FailingStore(MemoryStore):
    """Reads work; every write fails."""

    async def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")


class RecordingSink(AnalyticsSink):
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def log_event(self, name: str, params: dict[str, Any]) -> None:
        self.events.append((name, params))

    def named(self, name: str) -> list[dict[str, Any]]:
        return [p for n, p in self.events if n == name]


def _snap(**kw: Any) -> MetricsSnapshot:
    perf: dict[str, Any] = {
        "load_time_ms": 1200.0,
        "api_response_time_ms": 200.0,
        "cache_hit_rate": 0.9,
        "memory_usage_bytes": 200 * MB,
    }
    error_rate = kw.pop("error_rate", 0.0)
    perf.update(kw)
    return MetricsSnapshot(
        errors=ErrorStats(error_rate_per_minute=error_rate),
        performance=PerformanceStats(**perf),
    )


async def _validator(
    store: MemoryStore | None = None,
    sink: RecordingSink | None = None,
    **cfg: Any,
) -> SlaValidator:
    validator = SlaValidator(
        store=store or MemoryStore(),
        sink=sink or RecordingSink(),
        config=SlaConfig(**cfg),
        environment="production",
    )
    await validator.initialize(now=T0)
    return validator


# ── Initialization ─────────────────────────────────────────────


class TestInitialize:
    async def test_emits_event(self) -> None:
        sink = RecordingSink()
        await _validator(sink=sink)
        assert sink.named("performance_validation_initialized") == [{
            "environment": "production",
            "max_load_time_ms": 3000.0,
            "timestamp": T0.isoformat(),
        }]

    async def test_missing_dependencies(self) -> None:
        validator = SlaValidator()
        with pytest.raises(MissingDependencyError, match="store, sink"):
            await validator.initialize()
        assert await validator.validate(_snap(), T0) is None
        assert await validator.generate_report(T0) is None

    async def test_restores_history(self) -> None:
        store = MemoryStore()
        first = await _validator(store=store)
        await first.validate(_snap(), T0)
        second = await _validator(store=store)
        assert len(second.get_validation_history()) == 1


# ── Thresholds ─────────────────────────────────────────────────


class TestValidate:
    async def test_all_passing(self) -> None:
        validator = await _validator()
        result = await validator.validate(_snap(), T0)
        assert result.overall_status == ValidationStatus.PASSED
        assert set(result.validations) == {
            "load_time", "api_response_time", "cache_hit_rate", "memory_usage", "error_rate",
        }
        assert result.violations == []

    async def test_response_time_boundary_inclusive(self) -> None:
        validator = await _validator()
        result = await validator.validate(_snap(api_response_time_ms=500.0), T0)
        assert result.validations["api_response_time"].status == ValidationStatus.PASSED
        assert result.overall_status == ValidationStatus.PASSED

    async def test_response_time_over(self) -> None:
        validator = await _validator()
        result = await validator.validate(_snap(api_response_time_ms=501.0), T0)
        v = result.validations["api_response_time"]
        assert v.status == ValidationStatus.FAILED
        assert v.message == "API response time exceeds SLA: 501ms > 500ms"
        assert result.violations[0].severity == ViolationSeverity.MEDIUM

    async def test_cache_hit_rate_boundary(self) -> None:
        validator = await _validator()
        at = await validator.validate(_snap(cache_hit_rate=0.7), T0)
        assert at.validations["cache_hit_rate"].status == ValidationStatus.PASSED
        below = await validator.validate(_snap(cache_hit_rate=0.69), T0)
        assert below.validations["cache_hit_rate"].status == ValidationStatus.FAILED
        assert below.validations["cache_hit_rate"].message == (
            "Cache hit rate below SLA: 69.0% < 70.0%"
        )

    async def test_severities(self) -> None:
        validator = await _validator()
        result = await validator.validate(
            _snap(
                load_time_ms=5000.0,
                api_response_time_ms=900.0,
                cache_hit_rate=0.1,
                memory_usage_bytes=900 * MB,
                error_rate=0.2,
            ),
            T0,
        )
        assert result.overall_status == ValidationStatus.FAILED
        assert {v.metric: v.severity for v in result.violations} == {
            "load_time": ViolationSeverity.HIGH,
            "api_response_time": ViolationSeverity.MEDIUM,
            "cache_hit_rate": ViolationSeverity.MEDIUM,
            "memory_usage": ViolationSeverity.HIGH,
            "error_rate": ViolationSeverity.CRITICAL,
        }

    async def test_unreported_metric_not_validated(self) -> None:
        validator = await _validator()
        result = await validator.validate(_snap(load_time_ms=None), T0)
        assert "load_time" not in result.validations
        assert result.overall_status == ValidationStatus.PASSED
        assert result.violations == []

    async def test_host_without_timings_passes(self) -> None:
        validator = await _validator()
        snap = MetricsSnapshot(performance=PerformanceStats(
            cache_hit_rate=1.0, memory_usage_bytes=10 * MB,
        ))
        result = await validator.validate(snap, T0)
        assert set(result.validations) == {"cache_hit_rate", "memory_usage", "error_rate"}
        assert result.overall_status == ValidationStatus.PASSED

        report = await validator.generate_report(T0)
        assert report["pass_rate"] == 1.0
        assert "load_time" not in validator.current_metrics()

    async def test_store_failure_keeps_result(self) -> None:
        validator = await _validator(store=FailingStore())
        result = await validator.validate(_snap(error_rate=0.5), T0)
        assert result.overall_status == ValidationStatus.FAILED
        history = validator.get_validation_history()
        assert len(history) == 1
        assert history[0].violations[0].metric == "error_rate"

    async def test_persists_and_tracks(self) -> None:
        store = MemoryStore()
        sink = RecordingSink()
        validator = await _validator(store=store, sink=sink)
        await validator.validate(_snap(error_rate=0.5), T0)

        saved = json.loads(await store.get(PERFORMANCE_HISTORY_KEY))
        assert saved[0]["overall_status"] == "failed"
        assert sink.named("performance_validation_completed") == [{
            "overall_status": "failed",
            "validation_count": 5,
            "violation_count": 1,
            "timestamp": T0.isoformat(),
        }]

    async def test_history_bounded(self) -> None:
        validator = await _validator(history_size=3)
        for i in range(5):
            await validator.validate(_snap(), T0 + timedelta(minutes=i))
        history = validator.get_validation_history()
        assert len(history) == 3
        assert history[0].timestamp == T0 + timedelta(minutes=2)

    async def test_history_zero_limit(self) -> None:
        validator = await _validator()
        await validator.validate(_snap(), T0)
        assert validator.get_validation_history(limit=0) == []


class TestOverallStatus:
    def _v(self, status: ValidationStatus) -> PerformanceValidation:
        return PerformanceValidation(
            metric="m", current_value=0, threshold=0, status=status, message="",
        )

    def test_error_beats_failed(self) -> None:
        validations = {
            "a": self._v(ValidationStatus.FAILED),
            "b": self._v(ValidationStatus.ERROR),
        }
        assert overall_status(validations) == ValidationStatus.ERROR

    def test_empty_passes(self) -> None:
        assert overall_status({}) == ValidationStatus.PASSED


# ── Escalation debounce ────────────────────────────────────────


class TestViolationDebounce:
    async def test_same_metric_debounced(self) -> None:
        sink = RecordingSink()
        validator = await _validator(sink=sink)
        bad = _snap(error_rate=0.5)

        await validator.validate(bad, T0)
        await validator.validate(bad, T0 + timedelta(minutes=1))
        await validator.validate(bad, T0 + timedelta(minutes=4, seconds=59))
        assert len(sink.named("performance_violation")) == 1

        await validator.validate(bad, T0 + timedelta(minutes=5))
        events = sink.named("performance_violation")
        assert len(events) == 2
        assert events[0]["metric"] == "error_rate"
        assert events[0]["severity"] == "critical"
        assert events[0]["environment"] == "production"

    async def test_debounce_is_per_metric(self) -> None:
        sink = RecordingSink()
        validator = await _validator(sink=sink)
        await validator.validate(_snap(error_rate=0.5), T0)
        await validator.validate(_snap(error_rate=0.5, load_time_ms=9000.0), T0 + timedelta(seconds=30))
        metrics = [e["metric"] for e in sink.named("performance_violation")]
        assert metrics == ["error_rate", "load_time"]
        assert validator.last_escalation("load_time") == T0 + timedelta(seconds=30)


# ── Reporting ──────────────────────────────────────────────────


class TestReporting:
    async def test_current_metrics(self) -> None:
        validator = await _validator()
        for rt in (100.0, 300.0, 200.0):
            await validator.validate(_snap(api_response_time_ms=rt), T0)
        stats = validator.current_metrics()["api_response_time"]
        assert stats == {"current": 200.0, "average": 200.0, "min": 100.0, "max": 300.0, "count": 3}

    async def test_sample_window(self) -> None:
        validator = await _validator(sample_window=2)
        for rt in (100.0, 300.0, 200.0):
            await validator.validate(_snap(api_response_time_ms=rt), T0)
        assert validator.current_metrics()["api_response_time"]["count"] == 2

    async def test_generate_report(self) -> None:
        sink = RecordingSink()
        validator = await _validator(sink=sink)
        await validator.validate(_snap(), T0)
        await validator.validate(_snap(error_rate=0.5), T0 + timedelta(minutes=1))

        report = await validator.generate_report(T0 + timedelta(minutes=5))
        assert report["validation_count"] == 2
        assert report["pass_rate"] == 0.5
        assert report["violation_counts"] == {"error_rate": 1}
        assert "load_time" in report["trends"]
        assert sink.named("performance_report_generated") == [{
            "validation_count": 2,
            "pass_rate": 0.5,
            "environment": "production",
            "timestamp": (T0 + timedelta(minutes=5)).isoformat(),
        }]

    async def test_empty_report(self) -> None:
        validator = await _validator()
        report = await validator.generate_report(T0)
        assert report["validation_count"] == 0
        assert report["pass_rate"] == 0.0


class TestBuildMetrics:
    def test_thresholds_from_config(self) -> None:
        metrics = {m.name: m for m in build_metrics(SlaConfig(max_api_response_time_ms=250))}
        assert metrics["api_response_time"].threshold == 250
        assert metrics["cache_hit_rate"].higher_is_better is True
