import pytest

from sentinel_sync_dns.backends import (
    CreateFailed,
    QueryFailed,
    RecordIdentifierMissing,
    UpdateFailed,
    same_name,
)
from sentinel_sync_dns.common import ProviderError

from conftest import FailingRecordClient, InMemoryRecordClient, make_backend


def test_converge_creates_missing_record(memory_client):
    backend = make_backend(client=memory_client)

    result = backend.converge("db-primary", "10.0.0.5")

    assert result.action == "created"
    assert result.fqdn == "db-primary.example.com"
    assert memory_client.values_for("db-primary.example.com") == [frozenset({"10.0.0.5"})]
    assert ("create", "db-primary.example.com", "A", 60, ("10.0.0.5",)) in memory_client.calls


def test_converge_updates_same_record_id(memory_client):
    backend = make_backend(client=memory_client)

    created = backend.converge("db-primary", "10.0.0.5")
    updated = backend.converge("db-primary", "10.0.0.9")

    assert updated.action == "updated"
    assert updated.record_id == created.record_id
    assert list(memory_client.records) == [created.record_id]
    assert memory_client.values_for("db-primary.example.com") == [frozenset({"10.0.0.9"})]


def test_converge_twice_is_idempotent(memory_client):
    backend = make_backend(client=memory_client)

    backend.converge("mymaster", "10.0.0.2")
    second = backend.converge("mymaster", "10.0.0.2")

    assert second.action == "unchanged"
    assert memory_client.values_for("mymaster.example.com") == [frozenset({"10.0.0.2"})]
    assert [c[0] for c in memory_client.calls] == ["list", "create", "list"]


def test_converge_refreshes_ttl_and_type(memory_client):
    memory_client.add("mymaster.example.com", ["10.0.0.2"], rtype="A", ttl=300)
    backend = make_backend(client=memory_client, ttl=30)

    result = backend.converge("mymaster", "10.0.0.2")

    assert result.action == "updated"
    (record,) = memory_client.records.values()
    assert record.ttl == 30


def test_converge_replaces_multi_value_set(memory_client):
    record_id = memory_client.add("mymaster.example.com", ["10.0.0.1", "10.0.0.2"])
    backend = make_backend(client=memory_client)

    backend.converge("mymaster", "10.0.0.2")

    assert memory_client.records[record_id].values == frozenset({"10.0.0.2"})


def test_converge_uses_first_of_several_matches(memory_client):
    first = memory_client.add("mymaster.example.com", ["10.0.0.1"])
    second = memory_client.add("mymaster.example.com", ["10.0.0.3"])
    backend = make_backend(client=memory_client)

    result = backend.converge("mymaster", "10.0.0.2")

    assert result.record_id == first
    assert memory_client.records[first].values == frozenset({"10.0.0.2"})
    assert memory_client.records[second].values == frozenset({"10.0.0.3"})


def test_converge_ignores_loose_matches():
    client = InMemoryRecordClient()
    client.add("mymaster.example.com.extra", ["10.9.9.9"])
    client.list_records = lambda fqdn, hostname: list(client.records.values())
    backend = make_backend(client=client)

    result = backend.converge("mymaster", "10.0.0.2")

    assert result.action == "created"


def test_converge_requires_record_identifier(memory_client):
    memory_client.add("mymaster.example.com", ["10.0.0.1"], record_id=None)
    backend = make_backend(client=memory_client)

    with pytest.raises(RecordIdentifierMissing):
        backend.converge("mymaster", "10.0.0.2")


def test_query_failure_is_wrapped():
    backend = make_backend(client=FailingRecordClient())

    with pytest.raises(QueryFailed) as exc_info:
        backend.converge("mymaster", "10.0.0.2")

    assert isinstance(exc_info.value.cause, ProviderError)
    assert exc_info.value.__cause__ is exc_info.value.cause


def test_create_failure_is_wrapped(memory_client):
    def refuse(*args):
        raise ProviderError("unreachable")

    memory_client.create_record = refuse
    backend = make_backend(client=memory_client)

    with pytest.raises(CreateFailed) as exc_info:
        backend.converge("mymaster", "10.0.0.2")
    assert str(exc_info.value.cause) == "unreachable"


def test_update_failure_is_wrapped(memory_client):
    memory_client.add("mymaster.example.com", ["10.0.0.1"])

    def refuse(*args):
        raise ProviderError("quota exceeded")

    memory_client.update_record = refuse
    backend = make_backend(client=memory_client)

    with pytest.raises(UpdateFailed):
        backend.converge("mymaster", "10.0.0.2")


def test_handles_all_groups_by_default():
    assert make_backend().handles("anything")
    restricted = make_backend(groups=("cache",))
    assert restricted.handles("cache")
    assert not restricted.handles("mymaster")


def test_same_name_ignores_trailing_dot_and_case():
    assert same_name("MyMaster.Example.com.", "mymaster.example.com")
    assert not same_name("mymaster.example.com", "mymaster.example.org")
