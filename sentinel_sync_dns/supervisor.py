"""
Live subscription to the Sentinel notification channels.

The supervisor owns one (client, pubsub) handle. ``messages()`` forwards
notifications while ``run_probe()`` pings the Sentinel on a timer and replaces
the handle after a disconnect. Missed notifications are not replayed.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from .common import SentinelUnavailable
from .events import CHANNELS, PATTERNS

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (RedisError, OSError)


class SubscriptionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CLOSING = "closing"


def redis_client(host: str, port: int, password: Optional[str]) -> aioredis.Redis:
    return aioredis.Redis(
        host=host,
        port=port,
        password=password,
        decode_responses=True,
        socket_connect_timeout=5.0,
        socket_timeout=5.0,
    )


class SentinelSupervisor:
    def __init__(
        self,
        address: Tuple[str, int],
        password: Optional[str] = None,
        *,
        probe_interval: float = 5.0,
        reconnect_attempts: int = 3,
        backoff_base: float = 1.0,
        backoff_cap: float = 3.0,
        client_factory: Optional[Callable[[str, int, Optional[str]], Any]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.host, self.port = address
        self.password = password
        self.probe_interval = probe_interval
        self.reconnect_attempts = reconnect_attempts
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self._client_factory = client_factory or redis_client
        self._sleep = sleep

        self.state = SubscriptionState.DISCONNECTED
        self._client: Any = None
        self._pubsub: Any = None
        # Held only while the handle is read or replaced, never across I/O.
        self._swap_lock = asyncio.Lock()
        self._connected = asyncio.Event()
        self._disconnected = asyncio.Event()

    @property
    def target(self) -> str:
        return f"{self.host}:{self.port}"

    async def _open(self) -> Tuple[Any, Any]:
        client = self._client_factory(self.host, self.port, self.password)
        try:
            await client.ping()
            pubsub = client.pubsub()
            await pubsub.subscribe(*CHANNELS)
            await pubsub.psubscribe(*PATTERNS)
        except Exception:
            await self._release(client, None)
            raise
        return client, pubsub

    async def _release(self, client: Any, pubsub: Any) -> None:
        for handle in (pubsub, client):
            if handle is None:
                continue
            try:
                await handle.aclose()
            except TRANSPORT_ERRORS as e:
                logger.debug("Error while closing Sentinel handle: %s", e)

    async def _swap(self, handle: Tuple[Any, Any]) -> None:
        async with self._swap_lock:
            old = (self._client, self._pubsub)
            self._client, self._pubsub = handle
            self.state = SubscriptionState.CONNECTED
            self._disconnected.clear()
            self._connected.set()
        await self._release(*old)

    async def connect(self) -> None:
        """First connection. Failing here is fatal for the caller."""
        try:
            handle = await self._open()
        except TRANSPORT_ERRORS as e:
            raise SentinelUnavailable(f"Cannot connect to Sentinel {self.target}: {e}") from e
        await self._swap(handle)
        logger.info("Connected to Sentinel %s, subscribed to %s", self.target, ", ".join(CHANNELS + PATTERNS))

    def _mark_disconnected(self, reason: str) -> None:
        if self.state is SubscriptionState.CLOSING:
            return
        if self.state is SubscriptionState.CONNECTED:
            logger.warning("Sentinel connection lost (%s)", reason)
        self.state = SubscriptionState.DISCONNECTED
        self._connected.clear()
        self._disconnected.set()

    async def messages(self) -> AsyncIterator[Tuple[str, str]]:
        """Yield ``(channel, payload)`` for every notification, across reconnects."""
        while self.state is not SubscriptionState.CLOSING:
            if not self._connected.is_set():
                await self._connected.wait()
                continue
            async with self._swap_lock:
                pubsub = self._pubsub
            if pubsub is None:
                break
            try:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            except TRANSPORT_ERRORS as e:
                if pubsub is self._pubsub:
                    self._mark_disconnected(f"subscription error: {e}")
                continue
            if not message or message.get("type") not in ("message", "pmessage"):
                continue
            yield str(message["channel"]), str(message["data"])

    async def probe(self) -> bool:
        async with self._swap_lock:
            client = self._client
        if client is None:
            return False
        try:
            await client.ping()
        except TRANSPORT_ERRORS as e:
            logger.warning("Sentinel health probe failed: %s", e)
            return False
        return True

    async def reconnect(self) -> bool:
        """
        Up to ``reconnect_attempts`` attempts against the same address, with
        backoff ``min(base * 2**n, cap)`` before each one.
        """
        self._disconnected.clear()
        for attempt in range(self.reconnect_attempts):
            delay = min(self.backoff_base * 2 ** attempt, self.backoff_cap)
            await self._sleep(delay)
            if self.state is SubscriptionState.CLOSING:
                return False
            try:
                handle = await self._open()
            except TRANSPORT_ERRORS as e:
                logger.warning(
                    "Reconnect attempt %d/%d to %s failed: %s",
                    attempt + 1, self.reconnect_attempts, self.target, e,
                )
                continue
            if self.state is SubscriptionState.CLOSING:
                await self._release(*handle)
                return False
            await self._swap(handle)
            logger.info("Reconnected to Sentinel %s", self.target)
            return True

        logger.error(
            "Could not reconnect to Sentinel %s after %d attempts, retrying in %ss",
            self.target, self.reconnect_attempts, self.probe_interval,
        )
        return False

    async def run_probe(self) -> None:
        while self.state is not SubscriptionState.CLOSING:
            try:
                await asyncio.wait_for(self._disconnected.wait(), timeout=self.probe_interval)
            except asyncio.TimeoutError:
                pass
            if self.state is SubscriptionState.CLOSING:
                return
            if self.state is SubscriptionState.CONNECTED and not await self.probe():
                self._mark_disconnected("health probe failed")
            if self.state is SubscriptionState.DISCONNECTED:
                await self.reconnect()

    async def close(self) -> None:
        self.state = SubscriptionState.CLOSING
        self._connected.set()
        self._disconnected.set()
        async with self._swap_lock:
            client, pubsub = self._client, self._pubsub
            self._client = self._pubsub = None
        await self._release(client, pubsub)
        logger.info("Sentinel subscription closed")
