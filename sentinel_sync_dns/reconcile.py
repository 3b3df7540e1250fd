#!/usr/bin/env python3
"""
Converge every DNS provider to the current master once.

Repairs records after notifications were missed while the watcher was down
or disconnected.

Usage:
    python -m sentinel_sync_dns.reconcile --config config.yaml
    python -m sentinel_sync_dns.reconcile --config config.yaml --group mymaster --address 10.0.0.2
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import redis
from redis.exceptions import RedisError

from .backends import close_all
from .common import AppConfig, ConfigError, SentinelConfig, SentinelUnavailable, load_config
from .dispatch import Outcome, dispatch, summarize
from .events import FailoverEvent
from .log import LOG_LEVELS, setup_logging
from .registry import BackendRegistry, build_backends, default_registry

logger = logging.getLogger(__name__)


def current_masters(sentinel: SentinelConfig) -> Dict[str, str]:
    """Ask Sentinel for the address of every configured master name."""
    if not sentinel.master_names:
        raise ConfigError("No sentinel.master_name configured; pass --group and --address")

    host, port = sentinel.address
    client = redis.Redis(
        host=host,
        port=port,
        password=sentinel.password,
        decode_responses=True,
        socket_connect_timeout=5.0,
        socket_timeout=5.0,
    )
    masters: Dict[str, str] = {}
    try:
        for name in sentinel.master_names:
            addr = client.sentinel_get_master_addr_by_name(name)
            if not addr:
                logger.warning("Sentinel does not know master %s, skipping", name)
                continue
            masters[name] = addr[0]
    except RedisError as e:
        raise SentinelUnavailable(f"Cannot query Sentinel {host}:{port}: {e}") from e
    finally:
        client.close()
    return masters


def reconcile(
    config: AppConfig,
    group: Optional[str] = None,
    address: Optional[str] = None,
    registry: Optional[BackendRegistry] = None,
    resolve: Callable[[SentinelConfig], Dict[str, str]] = current_masters,
) -> List[Outcome]:
    backends = build_backends(registry or default_registry(), config.backends)
    outcomes: List[Outcome] = []
    try:
        targets = {group: address} if group and address else resolve(config.sentinel)
        for name, addr in targets.items():
            event = FailoverEvent(
                group_name=name,
                new_address=addr,
                raw_payload=f"reconcile {name} {addr}",
                received_at=datetime.now(timezone.utc),
            )
            result = dispatch(event, backends)
            logger.info("Master %s -> %s: %s", name, addr, summarize(result))
            outcomes.extend(result)
    finally:
        close_all(backends)
    return outcomes


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Point DNS records at the current Sentinel master(s) once."
    )
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML")
    parser.add_argument("--group", help="Master name to converge (requires --address)")
    parser.add_argument("--address", help="Address to point the master's record at")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default=None)

    args = parser.parse_args(argv)
    if bool(args.group) != bool(args.address):
        parser.error("--group and --address must be given together")
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        outcomes = reconcile(config, args.group, args.address)
    except (ConfigError, SentinelUnavailable, OSError) as e:
        logger.error("%s", e)
        return 1

    if not outcomes:
        logger.warning("Nothing was reconciled")
    return 0 if all(o.success for o in outcomes) else 1


if __name__ == "__main__":
    raise SystemExit(main())
