"""Scheduler and stack wiring."""

from vigil.monitor.factory import MonitorStack, create_checks, create_monitor_stack
from vigil.monitor.scheduler import Scheduler

__all__ = [
    "MonitorStack",
    "Scheduler",
    "create_checks",
    "create_monitor_stack",
]
