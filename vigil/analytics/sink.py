"""Analytics sinks — where outbound events go."""

from __future__ import annotations

import abc
from typing import Any

import aiohttp
import structlog

from vigil.analytics.events import AnalyticsEvent
from vigil.core.config import AnalyticsConfig
from vigil.core.exceptions import AnalyticsError

logger = structlog.get_logger(__name__)


class AnalyticsSink(abc.ABC):
    """Base class for analytics/crash-reporting sinks."""

    @property
    def available(self) -> bool:
        """Whether the sink is ready to accept events."""
        return True

    @abc.abstractmethod
    async def log_event(self, name: str, params: dict[str, Any]) -> None:
        """Record one event. Raises on delivery failure."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class NullSink(AnalyticsSink):
    """Discards every event."""

    @property
    def available(self) -> bool:
        return False

    async def log_event(self, name: str, params: dict[str, Any]) -> None:
        return None


class LoggingSink(AnalyticsSink):
    """Writes events to the structured log under ``analytics_event``."""

    async def log_event(self, name: str, params: dict[str, Any]) -> None:
        logger.info("analytics_event", event_name=name, params=params)


class HttpAnalyticsSink(AnalyticsSink):
    """POSTs ``{"name": ..., "params": {...}}`` to a collector endpoint."""

    def __init__(self, config: AnalyticsConfig) -> None:
        self._endpoint = config.endpoint.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    @property
    def available(self) -> bool:
        return bool(self._endpoint)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def log_event(self, name: str, params: dict[str, Any]) -> None:
        if not self._endpoint:
            raise AnalyticsError("analytics endpoint not configured")

        payload = {"name": name, "params": params}
        try:
            session = self._get_session()
            async with session.post(self._endpoint, json=payload) as resp:
                if resp.status in (200, 201, 202, 204):
                    return
                body = await resp.text()
                logger.warning(
                    "analytics_send_failed",
                    event_name=name,
                    status=resp.status,
                    body=body[:200],
                )
                raise AnalyticsError(f"collector returned HTTP {resp.status}")
        except aiohttp.ClientError as exc:
            raise AnalyticsError(f"collector unreachable: {exc}") from exc

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


def create_sink(config: AnalyticsConfig) -> AnalyticsSink:
    """HTTP sink when enabled with an endpoint, else log-only."""
    if config.enabled and config.endpoint.get_secret_value():
        return HttpAnalyticsSink(config)
    return LoggingSink()


async def track(sink: AnalyticsSink | None, event: AnalyticsEvent) -> bool:
    """Emit *event* without letting a sink failure reach the caller."""
    if sink is None:
        return False
    try:
        await sink.log_event(event.name, event.params())
    except Exception:
        logger.exception("analytics_track_error", event_name=event.name)
        return False
    return True
