"""
Configuration model, loaders and the shared exception hierarchy.

This module is intentionally minimal and dependency-light.
"""

from __future__ import annotations

import dataclasses
import os
import re
from typing import List, Dict, Any, Optional, Tuple

import yaml


DEFAULT_SENTINEL_PORT = 26379

_ENV_REF = re.compile(r"^\$\{([A-Za-z_][A-Za-z0-9_]*)\}$")


class ConfigError(Exception):
    pass


class InvalidRecordConfig(ConfigError):
    pass


class InvalidCredentials(ConfigError):
    pass


class ProviderError(Exception):
    """A DNS vendor call failed.

    ``cause`` holds the underlying transport or API error, when there is one.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class SentinelUnavailable(Exception):
    pass


@dataclasses.dataclass(frozen=True)
class SentinelConfig:
    name: str
    hosts: List[str]
    password: Optional[str] = None
    master_names: List[str] = dataclasses.field(default_factory=list)

    @property
    def address(self) -> Tuple[str, int]:
        """
        The single entry point used for every (re)connection.
        Additional hosts are accepted but not failed over to.
        """
        return parse_host(self.hosts[0])


@dataclasses.dataclass(frozen=True)
class BackendConfig:
    name: str
    backend_type: str
    zone_id: str
    domain: str
    record_type: str
    ttl: int
    credentials: Dict[str, str] = dataclasses.field(default_factory=dict)
    groups: Tuple[str, ...] = ()

    def validate(self) -> None:
        if not self.record_type:
            raise InvalidRecordConfig(f"Backend {self.name}: record type is required")
        if not isinstance(self.ttl, int) or self.ttl <= 0:
            raise InvalidRecordConfig(
                f"Backend {self.name}: ttl must be a positive integer, got {self.ttl!r}"
            )
        if not self.domain:
            raise InvalidRecordConfig(f"Backend {self.name}: 'domain' is required")
        if not self.zone_id:
            raise InvalidRecordConfig(f"Backend {self.name}: 'zone_id' is required")

    def require_credentials(self, *keys: str) -> Dict[str, str]:
        missing = [k for k in keys if not self.credentials.get(k)]
        if missing:
            raise InvalidCredentials(
                f"Backend {self.name} ({self.backend_type}) is missing credentials: "
                + ", ".join(missing)
            )
        return {k: self.credentials[k] for k in keys}


@dataclasses.dataclass(frozen=True)
class AppConfig:
    sentinel: SentinelConfig
    backends: List[Dict[str, Any]]


def parse_host(host: str) -> Tuple[str, int]:
    host = host.strip()
    if not host:
        raise ConfigError("Empty sentinel host entry")
    if host.startswith("["):
        # [v6]:port
        addr, _, rest = host[1:].partition("]")
        port = rest.lstrip(":") or DEFAULT_SENTINEL_PORT
        try:
            return addr, int(port)
        except ValueError:
            raise ConfigError(f"Invalid sentinel port in {host!r}")
    if host.count(":") == 1:
        addr, port = host.split(":")
        try:
            return addr, int(port)
        except ValueError:
            raise ConfigError(f"Invalid sentinel port in {host!r}")
    return host, DEFAULT_SENTINEL_PORT


def load_config(path: str) -> AppConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ConfigError("Config must be a YAML mapping")

    sentinel = data.get("sentinel")
    if not isinstance(sentinel, dict):
        raise ConfigError("Config must have a 'sentinel' mapping")

    host = sentinel.get("host")
    if not host:
        raise ConfigError("Missing required key in sentinel config: host")
    hosts = [h.strip() for h in str(host).split(",") if h.strip()]
    if not hosts:
        raise ConfigError("Missing required key in sentinel config: host")
    parse_host(hosts[0])

    master_names = sentinel.get("master_name") or []
    if isinstance(master_names, str):
        master_names = [master_names]

    password = sentinel.get("password")
    sentinel_cfg = SentinelConfig(
        name=str(sentinel.get("name") or ""),
        hosts=hosts,
        password=expand_env(str(password)) if password else None,
        master_names=[str(m) for m in master_names],
    )

    providers = data.get("dns-providers") or []
    if not isinstance(providers, list):
        raise ConfigError("'dns-providers' must be a list")

    return AppConfig(sentinel=sentinel_cfg, backends=providers)


# Credential blocks per backend type, as they appear in the config file.
CREDENTIAL_SECTIONS = {
    "huaweicloud-private": "huaweicloud",
    "tencentcloud-private": "tencentcloud",
}


def backend_config_from_entry(entry: Dict[str, Any]) -> BackendConfig:
    if not isinstance(entry, dict):
        raise ConfigError("Each dns-providers entry must be a mapping")

    name = entry.get("name")
    backend_type = entry.get("type")
    if not name or not backend_type:
        raise ConfigError(f"Invalid dns-providers entry (name and type required): {entry}")

    records = entry.get("record") or []
    if isinstance(records, dict):
        records = [records]
    if not records or not isinstance(records[0], dict):
        raise InvalidRecordConfig(f"Backend {name}: at least one 'record' entry is required")
    record = records[0]
    try:
        ttl = int(record.get("ttl", 0))
    except (TypeError, ValueError):
        raise InvalidRecordConfig(f"Backend {name}: ttl must be an integer")

    section = CREDENTIAL_SECTIONS.get(backend_type, backend_type)
    raw_credentials = entry.get(section) or {}
    if not isinstance(raw_credentials, dict):
        raise InvalidCredentials(f"Backend {name}: '{section}' must be a mapping")
    credentials = {
        str(k): expand_env(str(v)) for k, v in raw_credentials.items() if v is not None
    }

    groups = entry.get("groups") or []
    if isinstance(groups, str):
        groups = [groups]

    cfg = BackendConfig(
        name=str(name),
        backend_type=str(backend_type),
        zone_id=str(entry.get("zone_id") or ""),
        domain=str(entry.get("domain") or "").rstrip("."),
        record_type=str(record.get("type") or "").upper(),
        ttl=ttl,
        credentials=credentials,
        groups=tuple(str(g) for g in groups),
    )
    cfg.validate()
    return cfg


def expand_env(value: str) -> str:
    """Resolve a ``${VAR}`` reference from the environment; other values pass through."""
    m = _ENV_REF.match(value)
    if not m:
        return value
    return get_env_or_raise(m.group(1))


def get_env_or_raise(key: str) -> str:
    val = os.getenv(key)
    if not val:
        raise ConfigError(f"Missing required environment variable: {key}")
    return val
