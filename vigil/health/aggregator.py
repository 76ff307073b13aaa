"""Status precedence and consecutive-failure tracking."""

from __future__ import annotations

from collections.abc import Mapping

from vigil.core.types import CheckReport, CheckStatus, HealthStatus


def aggregate(checks: Mapping[str, CheckReport]) -> HealthStatus:
    """Merge subsystem reports into one overall status.

    critical/error anywhere wins immediately; otherwise any warning gives
    warning; otherwise all-healthy gives healthy; anything else is unknown.
    An empty mapping is healthy.
    """
    overall = HealthStatus.HEALTHY
    for report in checks.values():
        status = report.check_status
        if status in (CheckStatus.CRITICAL, CheckStatus.ERROR):
            return HealthStatus.CRITICAL
        if status == CheckStatus.WARNING:
            overall = HealthStatus.WARNING
        elif status != CheckStatus.HEALTHY and overall == HealthStatus.HEALTHY:
            overall = HealthStatus.UNKNOWN
    return overall


class FailureTracker:
    """Consecutive error/critical count per check name.

    A failing report increments the counter; any other status resets it.
    """

    def __init__(self, threshold: int = 3) -> None:
        self._threshold = threshold
        self._counts: dict[str, int] = {}

    @property
    def threshold(self) -> int:
        return self._threshold

    def record(self, checks: Mapping[str, CheckReport]) -> list[str]:
        """Update counters; return names that just reached the threshold."""
        reached: list[str] = []
        for name, report in checks.items():
            if report.failing:
                self._counts[name] = self._counts.get(name, 0) + 1
                if self._counts[name] == self._threshold:
                    reached.append(name)
            else:
                self._counts[name] = 0
        return reached

    def count(self, name: str) -> int:
        return self._counts.get(name, 0)

    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def over_threshold(self) -> dict[str, int]:
        return {n: c for n, c in self._counts.items() if c >= self._threshold}

    def reset(self) -> None:
        self._counts.clear()
