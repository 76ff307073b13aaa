#!/usr/bin/env python3
"""Monitoring entrypoint — wires the stack with local providers and runs it.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import socket
import sys

import structlog

from vigil.core.config import load_settings
from vigil.core.logging import ErrorRateTracker, setup_logging
from vigil.core.types import PerformanceStats
from vigil.health.checks import process_rss_bytes
from vigil.health.report import build_health_report
from vigil.monitor.factory import create_monitor_stack

logger = structlog.get_logger(__name__)


def _process_performance() -> PerformanceStats:
    """Host-local performance stats; no cache or request timing available."""
    return PerformanceStats(
        cache_hit_rate=1.0,
        memory_usage_bytes=process_rss_bytes(),
    )


def _network_online() -> bool:
    try:
        socket.getaddrinfo("localhost", None)
    except OSError:
        return False
    return True


async def run(args: argparse.Namespace) -> int:
    """Start the monitoring stack and run until interrupted."""
    settings = load_settings(args.config)
    errors = ErrorRateTracker()
    setup_logging(level=args.log_level, error_tracker=errors)

    logger.info(
        "vigil_starting",
        environment=settings.environment,
        storage=settings.storage.backend,
        analytics=settings.analytics.enabled,
    )

    stack = create_monitor_stack(
        settings,
        error_fn=errors.stats,
        performance_fn=_process_performance,
        network_probe=_network_online,
    )

    failed = await stack.initialize()
    if len(failed) == 3:
        logger.error("no_services_initialized")
        print("No monitoring service could be initialized.", file=sys.stderr)
        await stack.close()
        return 1

    await stack.start()
    logger.info("vigil_running", failed_services=failed)

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("vigil_shutting_down")
    report = build_health_report(stack.health_monitor, settings)
    await stack.close()

    logger.info(
        "vigil_stopped",
        health_status=report["health"]["status"],
        active_incidents=len(stack.incidents.get_active_incidents()),
        error_count=errors.stats().total_errors,
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the in-process monitoring and alerting loop.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
