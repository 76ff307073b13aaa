"""Exception hierarchy for the monitoring core."""

from __future__ import annotations


class VigilError(Exception):
    """Base exception for all monitoring errors."""


class MissingDependencyError(VigilError):
    """A service was initialized without a collaborator it requires."""


class StorageError(VigilError):
    """Failed to read or write a persisted blob."""


class AnalyticsError(VigilError):
    """The analytics sink rejected or failed to receive an event."""


class NotificationDeliveryError(VigilError):
    """A notification sender could not deliver its message."""


class RuleConfigError(VigilError):
    """An alert rule declared in configuration is invalid."""
