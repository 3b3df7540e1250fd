"""
Backend registry and construction.

Maps a backend type (the ``type`` field of a dns-providers entry) to the
callable that builds a ``DNSBackend`` from its ``BackendConfig``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List

from .backends import DNSBackend
from .common import BackendConfig, ConfigError, ProviderError, backend_config_from_entry

logger = logging.getLogger(__name__)

BackendConstructor = Callable[[BackendConfig], DNSBackend]


class DuplicateRegistration(ConfigError):
    pass


class UnknownBackendType(ConfigError):
    pass


class BackendRegistry:
    def __init__(self):
        self._constructors: Dict[str, BackendConstructor] = {}

    def register(self, type_id: str, constructor: BackendConstructor) -> None:
        if type_id in self._constructors:
            raise DuplicateRegistration(f"Backend type already registered: {type_id}")
        self._constructors[type_id] = constructor
        logger.debug("Registered backend type: %s", type_id)

    def create(self, type_id: str, config: BackendConfig) -> DNSBackend:
        """Build a backend; the constructor's own validation errors propagate unchanged."""
        constructor = self._constructors.get(type_id)
        if constructor is None:
            raise UnknownBackendType(
                f"Unsupported backend type: {type_id} "
                f"(known: {', '.join(self.types()) or 'none'})"
            )
        return constructor(config)

    def types(self) -> List[str]:
        return sorted(self._constructors)

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._constructors


def default_registry() -> BackendRegistry:
    from .clients import huaweicloud_private, tencentcloud_private

    registry = BackendRegistry()
    registry.register("huaweicloud-private", huaweicloud_private)
    registry.register("tencentcloud-private", tencentcloud_private)
    return registry


def build_backends(
    registry: BackendRegistry, entries: Iterable[Dict[str, Any]]
) -> List[DNSBackend]:
    """
    Build every configured backend.

    An entry that fails validation is logged and skipped so the remaining
    backends still get updates.
    """
    backends: List[DNSBackend] = []
    for entry in entries:
        label = entry.get("name", "?") if isinstance(entry, dict) else "?"
        try:
            cfg = backend_config_from_entry(entry)
            backend = registry.create(cfg.backend_type, cfg)
        except (ConfigError, ProviderError) as e:
            logger.error("Failed to initialise DNS provider %s: %s", label, e)
            continue
        logger.info("DNS provider %s ready: domain=%s", backend.name, cfg.domain)
        backends.append(backend)
    return backends
