#!/usr/bin/env python3
"""
Watch Sentinel for master switches and point DNS records at the new master.

Usage:
    python -m sentinel_sync_dns.watch --config config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional, Sequence

from . import events
from .backends import DNSBackend, close_all
from .common import AppConfig, ConfigError, SentinelUnavailable, load_config
from .dispatch import dispatch, summarize
from .log import LOG_LEVELS, setup_logging
from .registry import BackendRegistry, build_backends, default_registry
from .supervisor import SentinelSupervisor

logger = logging.getLogger(__name__)


class Consumer:
    """Handle notifications one at a time, in arrival order."""

    def __init__(self, supervisor: SentinelSupervisor, backends: Sequence[DNSBackend]):
        self.supervisor = supervisor
        self.backends = backends
        self.in_flight: Optional[asyncio.Future] = None

    async def run(self) -> None:
        async for channel, payload in self.supervisor.messages():
            logger.debug("Received Sentinel event: channel=%s payload=%s", channel, payload)
            event = events.parse(channel, payload)
            if event is None:
                continue
            # Vendor calls block; run them off the loop so the health check keeps ticking.
            self.in_flight = asyncio.ensure_future(
                asyncio.to_thread(dispatch, event, self.backends)
            )
            # Cancelling the consumer must not abandon a half-applied update.
            outcomes = await asyncio.shield(self.in_flight)
            self.in_flight = None
            logger.info(
                "Master %s -> %s: %s", event.group_name, event.new_address, summarize(outcomes)
            )

    async def drain(self) -> None:
        """Wait for a dispatch that was running when the consumer stopped."""
        pending, self.in_flight = self.in_flight, None
        if pending is None:
            return
        if not pending.done():
            logger.info("Waiting for in-flight DNS update to finish")
        try:
            outcomes = await pending
        except Exception:
            logger.exception("In-flight DNS update failed")
            return
        logger.info("In-flight DNS update finished: %s", summarize(outcomes))


async def run(
    config: AppConfig,
    registry: Optional[BackendRegistry] = None,
    supervisor: Optional[SentinelSupervisor] = None,
    stop: Optional[asyncio.Event] = None,
) -> int:
    backends = build_backends(registry or default_registry(), config.backends)
    if not backends:
        logger.warning("No usable DNS providers configured; events will only be logged")

    if supervisor is None:
        supervisor = SentinelSupervisor(config.sentinel.address, config.sentinel.password)
    try:
        await supervisor.connect()
    except SentinelUnavailable:
        close_all(backends)
        raise

    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop, sig, stop)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # not available off the main thread or on some platforms
            pass

    logger.info("Listening for Sentinel events...")
    consumer = Consumer(supervisor, backends)
    consuming = asyncio.create_task(consumer.run(), name="consume")
    prober = asyncio.create_task(supervisor.run_probe(), name="probe")
    try:
        await stop.wait()
    finally:
        for task in (consuming, prober):
            task.cancel()
        await asyncio.gather(consuming, prober, return_exceptions=True)
        await consumer.drain()
        await supervisor.close()
        close_all(backends)
        for sig in installed:
            loop.remove_signal_handler(sig)
    return 0


def _request_stop(sig: signal.Signals, stop: asyncio.Event) -> None:
    logger.info("Received %s, shutting down", sig.name)
    stop.set()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Keep DNS records pointed at the current Redis Sentinel master."
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config YAML (default: config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Log level (default: $SENTINEL_SYNC_DNS_LOG_LEVEL or INFO)",
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        logger.info(
            "Config loaded: sentinel=%s masters=%s",
            config.sentinel.hosts[0], ", ".join(config.sentinel.master_names) or "-",
        )
        return asyncio.run(run(config))
    except (ConfigError, SentinelUnavailable, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
