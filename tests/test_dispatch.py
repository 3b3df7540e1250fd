from datetime import datetime, timezone

import pytest

from sentinel_sync_dns.dispatch import Outcome, dispatch, summarize
from sentinel_sync_dns.events import FailoverEvent

from conftest import FailingRecordClient, InMemoryRecordClient, make_backend


def make_event(group="mymaster", address="10.0.0.2"):
    return FailoverEvent(
        group_name=group,
        new_address=address,
        raw_payload=f"{group} 10.0.0.1 6379 {address} 6379",
        received_at=datetime.now(timezone.utc),
    )


@pytest.mark.parametrize("failing_first", [True, False])
def test_failure_does_not_block_other_backends(failing_first):
    good_client = InMemoryRecordClient()
    good = make_backend("A", client=good_client)
    bad = make_backend("B", client=FailingRecordClient())
    backends = [bad, good] if failing_first else [good, bad]

    outcomes = dispatch(make_event(), backends)

    by_name = {o.backend_name: o for o in outcomes}
    assert by_name["A"].success and by_name["A"].error is None
    assert not by_name["B"].success and by_name["B"].error is not None
    assert good_client.values_for("mymaster.example.com") == [frozenset({"10.0.0.2"})]


def test_outcomes_follow_backend_order():
    backends = [make_backend(n) for n in ("one", "two", "three")]

    outcomes = dispatch(make_event(), backends)

    assert [o.backend_name for o in outcomes] == ["one", "two", "three"]
    assert all(o.action == "created" for o in outcomes)


def test_backends_for_other_groups_are_skipped():
    client = InMemoryRecordClient()
    backends = [make_backend("cache-only", client=client, groups=("cache",)), make_backend("all")]

    outcomes = dispatch(make_event("mymaster"), backends)

    assert [o.backend_name for o in outcomes] == ["all"]
    assert client.calls == []


def test_end_to_end_switch_master():
    from sentinel_sync_dns import events

    client = InMemoryRecordClient()
    event = events.parse("+switch-master", "mymaster 10.0.0.1 6379 10.0.0.2 6379")

    outcomes = dispatch(event, [make_backend(client=client, domain="example.com")])

    assert outcomes[0].success
    assert client.values_for("mymaster.example.com") == [frozenset({"10.0.0.2"})]


def test_summarize():
    assert summarize([]) == "no backends matched"
    text = summarize([Outcome("a", True), Outcome("b", False, RuntimeError("x"))])
    assert text == "1/2 backends updated (failed: b)"
