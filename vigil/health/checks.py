"""The standard subsystem health checks.

Each check returns a CheckReport whose ``details`` hold the per-probe
payloads.  A probe that raises is recorded as ``{"status": "error"}`` inside
its own check; an exception escaping ``run()`` is handled by the monitor.
"""

from __future__ import annotations

import abc
import platform
import sys
from collections.abc import Callable
from typing import Any

import psutil
import structlog

from vigil.analytics.sink import AnalyticsSink
from vigil.core.types import (
    CheckKind,
    CheckReport,
    CheckStatus,
    ErrorStatsFn,
    NetworkProbeFn,
    PerformanceStatsFn,
    SecurityStatusFn,
)
from vigil.storage.store import KeyValueStore

logger = structlog.get_logger(__name__)

_BYTES_PER_MB = 1024 * 1024

MemoryProbeFn = Callable[[], int]


def process_rss_bytes() -> int:
    """Resident set size of the current process."""
    return int(psutil.Process().memory_info().rss)


def _worse(current: CheckStatus, candidate: CheckStatus) -> CheckStatus:
    order = [
        CheckStatus.HEALTHY,
        CheckStatus.UNKNOWN,
        CheckStatus.WARNING,
        CheckStatus.ERROR,
        CheckStatus.CRITICAL,
    ]
    return candidate if order.index(candidate) > order.index(current) else current


class HealthCheck(abc.ABC):
    """Base class for a named subsystem check."""

    name: str

    @abc.abstractmethod
    async def run(self) -> CheckReport:
        """Probe the subsystem and report its status."""


class SystemHealthCheck(HealthCheck):
    """Memory, runtime, storage and network of the host process."""

    name = CheckKind.SYSTEM.value

    def __init__(
        self,
        memory_threshold_mb: float = 512.0,
        store: KeyValueStore | None = None,
        network_probe: NetworkProbeFn | None = None,
        memory_probe: MemoryProbeFn | None = None,
    ) -> None:
        self._memory_threshold_mb = memory_threshold_mb
        self._store = store
        self._network_probe = network_probe
        self._memory_probe = memory_probe or process_rss_bytes

    async def run(self) -> CheckReport:
        status = CheckStatus.HEALTHY
        details: dict[str, Any] = {}

        try:
            rss = self._memory_probe()
            usage_mb = round(rss / _BYTES_PER_MB, 1)
            memory: dict[str, Any] = {"status": "healthy", "usage_mb": usage_mb, "rss_bytes": rss}
            if usage_mb > self._memory_threshold_mb:
                memory["warning"] = f"Memory usage above threshold: {usage_mb}MB"
                status = _worse(status, CheckStatus.WARNING)
        except Exception as exc:
            memory = {"status": "error", "error": str(exc), "usage_mb": 0}
            status = _worse(status, CheckStatus.WARNING)
        details["memory"] = memory

        details["runtime"] = {
            "status": "healthy",
            "platform": platform.system().lower(),
            "python_version": platform.python_version(),
            "implementation": sys.implementation.name,
        }

        try:
            if self._store is None:
                storage: dict[str, Any] = {"status": "warning", "store_available": False}
                status = _worse(status, CheckStatus.WARNING)
            else:
                ok = await self._store.ping()
                storage = {"status": "healthy" if ok else "warning", "store_available": ok}
                if not ok:
                    status = _worse(status, CheckStatus.WARNING)
        except Exception as exc:
            storage = {"status": "error", "error": str(exc)}
            status = _worse(status, CheckStatus.WARNING)
        details["storage"] = storage

        try:
            online = self._network_probe() if self._network_probe else True
            network: dict[str, Any] = {"status": "online" if online else "offline", "online": online}
        except Exception as exc:
            online = False
            network = {"status": "error", "error": str(exc), "online": False}
        if not online:
            status = _worse(status, CheckStatus.CRITICAL)
        details["network"] = network

        return CheckReport(name=self.name, status=status.value, details=details)


class PerformanceHealthCheck(HealthCheck):
    """Cache hit rate, memory footprint and slow recent operations."""

    name = CheckKind.PERFORMANCE.value

    def __init__(
        self,
        performance_fn: PerformanceStatsFn | None,
        min_cache_hit_rate: float = 0.7,
        memory_threshold_mb: float = 512.0,
        degradation_threshold_ms: float = 3000.0,
    ) -> None:
        self._performance_fn = performance_fn
        self._min_cache_hit_rate = min_cache_hit_rate
        self._memory_threshold_mb = memory_threshold_mb
        self._degradation_threshold_ms = degradation_threshold_ms

    async def run(self) -> CheckReport:
        if self._performance_fn is None:
            return CheckReport(
                name=self.name,
                status=CheckStatus.UNKNOWN.value,
                details={"message": "Performance statistics not available"},
            )

        stats = self._performance_fn()
        warnings: list[str] = []

        if stats.cache_hit_rate < self._min_cache_hit_rate:
            warnings.append(f"Low cache hit rate: {stats.cache_hit_rate * 100:.1f}%")
        if stats.memory_usage_mb > self._memory_threshold_mb:
            warnings.append(f"High memory usage: {stats.memory_usage_mb:.1f}MB")
        if self.has_degradation(stats.recent_events):
            warnings.append("Performance degradation detected")

        details: dict[str, Any] = {
            "metrics": stats.model_dump(mode="json", exclude={"recent_events"}),
            "recent_events": len(stats.recent_events),
        }
        if warnings:
            details["warnings"] = warnings
        status = CheckStatus.WARNING if warnings else CheckStatus.HEALTHY
        return CheckReport(name=self.name, status=status.value, details=details)

    def has_degradation(self, events: list[dict[str, Any]]) -> bool:
        """Any recent event slower than the degradation threshold."""
        for event in events:
            duration = event.get("duration_ms")
            if isinstance(duration, (int, float)) and duration > self._degradation_threshold_ms:
                return True
        return False


class SecurityHealthCheck(HealthCheck):
    """Policy compliance and recent security violations."""

    name = CheckKind.SECURITY.value

    def __init__(self, security_fn: SecurityStatusFn | None) -> None:
        self._security_fn = security_fn

    async def run(self) -> CheckReport:
        if self._security_fn is None:
            return CheckReport(
                name=self.name,
                status=CheckStatus.CRITICAL.value,
                details={
                    "security_manager": {
                        "status": "critical",
                        "error": "Security manager not initialized",
                    },
                },
            )

        security = self._security_fn()
        status = CheckStatus.HEALTHY
        details: dict[str, Any] = {"security_manager": {"status": "healthy", "initialized": True}}

        disabled = sorted(flag for flag, on in security.policy.items() if not on)
        details["security_policy"] = {
            "status": "warning" if disabled else "healthy",
            **security.policy,
        }
        if disabled:
            details["security_policy"]["disabled"] = disabled
            status = CheckStatus.WARNING

        if security.violations:
            details["security_violations"] = {
                "status": "warning",
                "count": len(security.violations),
                "recent_violations": security.violations[:5],
            }
            status = CheckStatus.WARNING

        return CheckReport(name=self.name, status=status.value, details=details)


class ExternalServiceHealthCheck(HealthCheck):
    """Availability of the analytics / crash-reporting service."""

    def __init__(
        self,
        sink: AnalyticsSink | None,
        crash_reporting_enabled: bool = True,
        name: str = CheckKind.FIREBASE.value,
    ) -> None:
        self.name = name
        self._sink = sink
        self._crash_reporting_enabled = crash_reporting_enabled

    async def run(self) -> CheckReport:
        available = self._sink is not None and self._sink.available
        services: dict[str, Any] = {
            "analytics": {
                "status": "healthy" if available else "warning",
                "initialized": available,
            },
            "crash_reporting": {
                "status": "healthy",
                "crash_reporting_enabled": self._crash_reporting_enabled,
            },
        }
        status = CheckStatus.HEALTHY if available else CheckStatus.WARNING
        return CheckReport(name=self.name, status=status.value, details={"services": services})


class ApplicationHealthCheck(HealthCheck):
    """Application state plus the error tracker's own health."""

    name = CheckKind.APPLICATION.value

    def __init__(
        self,
        environment: str,
        app_version: str,
        error_fn: ErrorStatsFn | None,
        error_rate_threshold: float = 0.05,
    ) -> None:
        self._environment = environment
        self._app_version = app_version
        self._error_fn = error_fn
        self._error_rate_threshold = error_rate_threshold

    async def run(self) -> CheckReport:
        status = CheckStatus.HEALTHY
        details: dict[str, Any] = {
            "app_state": {
                "status": "healthy",
                "environment": self._environment,
                "version": self._app_version,
                "is_production": self._environment == "production",
            },
        }

        if self._error_fn is None:
            details["error_tracking"] = {
                "status": "warning",
                "error": "Error tracking service not initialized",
            }
            return CheckReport(name=self.name, status=CheckStatus.WARNING.value, details=details)

        stats = self._error_fn()
        tracking: dict[str, Any] = {"status": "healthy", "error_stats": stats.model_dump(mode="json")}
        if stats.error_rate_per_minute > self._error_rate_threshold:
            tracking["warning"] = f"High error rate: {stats.error_rate_per_minute * 100:.2f}%"
            status = CheckStatus.WARNING
        details["error_tracking"] = tracking
        details["monitoring"] = {"status": "healthy", "active": True}

        return CheckReport(name=self.name, status=status.value, details=details)
