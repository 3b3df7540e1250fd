"""
DNS backend and the shared converge logic.

A backend pairs one configured zone with a vendor ``RecordClient``. Vendors only
offer list/create/update, so ``converge`` builds the create-or-update sequence
on top of them and is safe to repeat.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import FrozenSet, Iterable, List, Optional, Protocol

from .common import BackendConfig, ProviderError

logger = logging.getLogger(__name__)


class QueryFailed(ProviderError):
    pass


class RecordIdentifierMissing(ProviderError):
    pass


class CreateFailed(ProviderError):
    pass


class UpdateFailed(ProviderError):
    pass


@dataclasses.dataclass(frozen=True)
class RecordSet:
    id: Optional[str]
    name: str
    type: str
    ttl: int
    values: FrozenSet[str]


@dataclasses.dataclass(frozen=True)
class ConvergeResult:
    fqdn: str
    action: str         # "created", "updated" or "unchanged"
    record_id: Optional[str]


class RecordClient(Protocol):
    """Record-management surface of one vendor API, bound to one zone."""

    def list_records(self, fqdn: str, hostname: str) -> List[RecordSet]:
        ...

    def create_record(
        self, fqdn: str, hostname: str, rtype: str, ttl: int, values: List[str]
    ) -> Optional[str]:
        ...

    def update_record(
        self,
        record_id: str,
        fqdn: str,
        hostname: str,
        rtype: str,
        ttl: int,
        values: List[str],
    ) -> None:
        ...

    def close(self) -> None:
        ...


def same_name(a: str, b: str) -> bool:
    return a.rstrip(".").lower() == b.rstrip(".").lower()


class DNSBackend:
    def __init__(self, config: BackendConfig, client: RecordClient):
        self.config = config
        self.client = client

    @property
    def name(self) -> str:
        return self.config.name

    def handles(self, group: str) -> bool:
        return not self.config.groups or group in self.config.groups

    def fqdn(self, hostname: str) -> str:
        return f"{hostname}.{self.config.domain}"

    def converge(self, hostname: str, address: str) -> ConvergeResult:
        """
        Make ``hostname.domain`` resolve to exactly ``address``.

        The record is always re-read from the vendor. When several records
        match, the first one in the vendor's listing order is used.
        """
        cfg = self.config
        fqdn = self.fqdn(hostname)
        logger.info("[%s] converging %s -> %s", cfg.name, fqdn, address)

        try:
            listed = self.client.list_records(fqdn, hostname)
        except ProviderError as e:
            raise QueryFailed(f"[{cfg.name}] query for {fqdn} failed: {e}", cause=e) from e

        matches = [r for r in listed if same_name(r.name, fqdn)]

        if not matches:
            logger.info("[%s] no record for %s, creating", cfg.name, fqdn)
            try:
                record_id = self.client.create_record(
                    fqdn, hostname, cfg.record_type, cfg.ttl, [address]
                )
            except ProviderError as e:
                raise CreateFailed(
                    f"[{cfg.name}] create {cfg.record_type} {fqdn} -> {address} failed: {e}",
                    cause=e,
                ) from e
            return ConvergeResult(fqdn=fqdn, action="created", record_id=record_id)

        if len(matches) > 1:
            logger.warning(
                "[%s] %d records match %s, using the first (id=%s)",
                cfg.name, len(matches), fqdn, matches[0].id,
            )
        current = matches[0]
        if not current.id:
            raise RecordIdentifierMissing(
                f"[{cfg.name}] record {fqdn} was returned without an identifier"
            )

        if (
            current.values == frozenset([address])
            and current.type.upper() == cfg.record_type
            and current.ttl == cfg.ttl
        ):
            logger.info("[%s] %s already points to %s", cfg.name, fqdn, address)
            return ConvergeResult(fqdn=fqdn, action="unchanged", record_id=current.id)

        logger.info(
            "[%s] updating record %s (%s): %s -> %s",
            cfg.name, current.id, fqdn, sorted(current.values), address,
        )
        try:
            self.client.update_record(
                current.id, fqdn, hostname, cfg.record_type, cfg.ttl, [address]
            )
        except ProviderError as e:
            raise UpdateFailed(
                f"[{cfg.name}] update of record {current.id} ({fqdn}) failed: {e}",
                cause=e,
            ) from e
        return ConvergeResult(fqdn=fqdn, action="updated", record_id=current.id)

    def close(self) -> None:
        self.client.close()


def close_all(backends: Iterable[DNSBackend]) -> None:
    for backend in backends:
        try:
            backend.close()
        except ProviderError as e:
            logger.warning("[%s] error while closing client: %s", backend.name, e)
