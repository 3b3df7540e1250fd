"""Turn Sentinel pub/sub messages into failover events."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

SWITCH_MASTER = "+switch-master"
CONVERT_TO_MASTER = "*:convert-to-master"

CHANNELS = (
    "__sentinel__:hello",
    "+sentinel",
    SWITCH_MASTER,
    "+slave",
    "+reboot",
)
PATTERNS = (CONVERT_TO_MASTER,)


@dataclasses.dataclass(frozen=True)
class FailoverEvent:
    group_name: str
    new_address: str
    raw_payload: str
    received_at: datetime
    old_address: str = ""
    old_port: str = ""
    new_port: str = ""


def parse(channel: str, payload: str, now: Optional[datetime] = None) -> Optional[FailoverEvent]:
    """
    Parse one notification.

    Only ``+switch-master`` with ``<group> <old-ip> <old-port> <new-ip> <new-port>``
    yields an event. Malformed payloads are logged and dropped.
    """
    if channel != SWITCH_MASTER:
        logger.info("Sentinel event %s: %s", channel, payload)
        return None

    parts = payload.split(" ")
    if len(parts) != 5 or not all(parts):
        logger.warning("Invalid %s payload: %r", SWITCH_MASTER, payload)
        return None

    group, old_ip, old_port, new_ip, new_port = parts
    logger.info("Master switch: group=%s %s:%s -> %s:%s", group, old_ip, old_port, new_ip, new_port)
    return FailoverEvent(
        group_name=group,
        new_address=new_ip,
        raw_payload=payload,
        received_at=now or datetime.now(timezone.utc),
        old_address=old_ip,
        old_port=old_port,
        new_port=new_port,
    )
