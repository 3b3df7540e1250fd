"""Shared fakes: an in-memory record store and a fake async Redis."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from sentinel_sync_dns.backends import DNSBackend, RecordSet
from sentinel_sync_dns.common import BackendConfig, ProviderError


class InMemoryRecordClient:
    """Behaves like a vendor API: list by exact name, create, update by id."""

    def __init__(self):
        self.records: Dict[str, RecordSet] = {}
        self.calls: List[tuple] = []
        self.closed = False
        self._next_id = 1

    def add(self, name: str, values, rtype: str = "A", ttl: int = 60, record_id: Optional[str] = "") -> str:
        if record_id == "":
            record_id = f"rec-{self._next_id}"
            self._next_id += 1
        key = record_id or f"anon-{len(self.records)}"
        self.records[key] = RecordSet(id=record_id, name=name, type=rtype, ttl=ttl, values=frozenset(values))
        return record_id

    def list_records(self, fqdn, hostname):
        self.calls.append(("list", fqdn))
        return [r for r in self.records.values() if r.name == fqdn]

    def create_record(self, fqdn, hostname, rtype, ttl, values):
        self.calls.append(("create", fqdn, rtype, ttl, tuple(values)))
        return self.add(fqdn, values, rtype=rtype, ttl=ttl)

    def update_record(self, record_id, fqdn, hostname, rtype, ttl, values):
        self.calls.append(("update", record_id, rtype, ttl, tuple(values)))
        self.records[record_id] = RecordSet(
            id=record_id, name=fqdn, type=rtype, ttl=ttl, values=frozenset(values)
        )

    def close(self):
        self.closed = True

    def values_for(self, fqdn: str) -> List[frozenset]:
        return [r.values for r in self.records.values() if r.name == fqdn]


class FailingRecordClient(InMemoryRecordClient):
    def list_records(self, fqdn, hostname):
        raise ProviderError("boom")


def make_config(name: str = "test", **overrides) -> BackendConfig:
    values = dict(
        name=name,
        backend_type="memory",
        zone_id="zone-1",
        domain="example.com",
        record_type="A",
        ttl=60,
    )
    values.update(overrides)
    return BackendConfig(**values)


def make_backend(name: str = "test", client=None, **overrides) -> DNSBackend:
    return DNSBackend(make_config(name, **overrides), client or InMemoryRecordClient())


class FakePubSub:
    def __init__(self, messages=None, error: Optional[BaseException] = None):
        self.queue = list(messages or [])
        self.error = error
        self.channels: List[str] = []
        self.patterns: List[str] = []
        self.closed = False

    async def subscribe(self, *channels):
        self.channels.extend(channels)

    async def psubscribe(self, *patterns):
        self.patterns.extend(patterns)

    async def get_message(self, ignore_subscribe_messages=False, timeout=0.0):
        if self.error is not None:
            raise self.error
        if self.queue:
            return self.queue.pop(0)
        await asyncio.sleep(0.01)
        return None

    async def aclose(self):
        self.closed = True


class FakeRedis:
    def __init__(self, pubsub: Optional[FakePubSub] = None, ping_error: Optional[BaseException] = None):
        self._pubsub = pubsub or FakePubSub()
        self.ping_error = ping_error
        self.pings = 0
        self.closed = False

    async def ping(self):
        self.pings += 1
        if self.ping_error is not None:
            raise self.ping_error
        return True

    def pubsub(self):
        return self._pubsub

    async def aclose(self):
        self.closed = True


def message(channel: str, data: str) -> dict:
    return {"type": "message", "pattern": None, "channel": channel, "data": data}


class ClientSequence:
    """Client factory handing out prepared fake clients in order."""

    def __init__(self, *clients: FakeRedis):
        self.clients = list(clients)
        self.created: List[FakeRedis] = []

    def __call__(self, host, port, password):
        client = self.clients.pop(0)
        self.created.append(client)
        return client


@pytest.fixture
def memory_client():
    return InMemoryRecordClient()
