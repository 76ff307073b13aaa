"""Notification senders — one per NotificationChannel."""

from __future__ import annotations

import abc
from datetime import datetime

import structlog

from vigil.alerts.types import AlertNotification, NotificationChannel
from vigil.analytics.events import NotificationSentEvent
from vigil.analytics.sink import AnalyticsSink
from vigil.core.exceptions import NotificationDeliveryError

logger = structlog.get_logger(__name__)

# Separate logger so alert text can be routed to its own handler.
console_logger = structlog.get_logger("vigil.alerts.console")


class NotificationSender(abc.ABC):
    """Base class for channel-specific delivery."""

    channel: NotificationChannel

    @abc.abstractmethod
    async def send(self, notification: AlertNotification, now: datetime) -> None:
        """Deliver one notification at tick time *now*. Raises on failure."""

    async def close(self) -> None:
        """Release resources."""


class ConsoleSender(NotificationSender):
    """Writes the rendered alert to the structured log."""

    channel = NotificationChannel.CONSOLE

    async def send(self, notification: AlertNotification, now: datetime) -> None:
        console_logger.warning(
            "alert_notification",
            notification_id=notification.id,
            incident_id=notification.incident_id,
            message=notification.message,
        )


class AnalyticsSender(NotificationSender):
    """Records the notification as an ``alert_notification_sent`` event."""

    channel = NotificationChannel.FIREBASE

    def __init__(self, sink: AnalyticsSink | None) -> None:
        self._sink = sink

    async def send(self, notification: AlertNotification, now: datetime) -> None:
        if self._sink is None:
            raise NotificationDeliveryError("no analytics sink configured")
        event = NotificationSentEvent(
            notification_id=notification.id,
            incident_id=notification.incident_id,
            channel=self.channel.value,
            timestamp=now.isoformat(),
        )
        await self._sink.log_event(event.name, event.params())


class EmailSender(NotificationSender):
    """Email delivery. Not integrated yet, so sending is a no-op."""

    channel = NotificationChannel.EMAIL

    async def send(self, notification: AlertNotification, now: datetime) -> None:
        logger.debug("notification_channel_not_wired", channel=self.channel.value)


class SlackSender(NotificationSender):
    """Slack delivery. Not integrated yet, so sending is a no-op."""

    channel = NotificationChannel.SLACK

    async def send(self, notification: AlertNotification, now: datetime) -> None:
        logger.debug("notification_channel_not_wired", channel=self.channel.value)


def default_senders(sink: AnalyticsSink | None) -> dict[NotificationChannel, NotificationSender]:
    """Sender for every channel, analytics going through *sink*."""
    senders: list[NotificationSender] = [
        ConsoleSender(),
        AnalyticsSender(sink),
        EmailSender(),
        SlackSender(),
    ]
    return {s.channel: s for s in senders}

