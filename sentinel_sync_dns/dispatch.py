"""Fan a failover event out to every backend."""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Optional, Sequence

from .backends import DNSBackend
from .events import FailoverEvent

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Outcome:
    backend_name: str
    success: bool
    error: Optional[BaseException] = None
    action: Optional[str] = None


def dispatch(event: FailoverEvent, backends: Sequence[DNSBackend]) -> List[Outcome]:
    """
    Converge ``event.group_name`` to ``event.new_address`` on each backend in turn.

    A failing backend is recorded and the next one is still attempted.
    Backends restricted to other groups are skipped.
    """
    outcomes: List[Outcome] = []
    for backend in backends:
        if not backend.handles(event.group_name):
            logger.debug("[%s] not configured for group %s, skipping", backend.name, event.group_name)
            continue
        try:
            result = backend.converge(event.group_name, event.new_address)
        except Exception as e:  # any backend failure stays isolated to that backend
            logger.error("[%s] DNS update failed: %s", backend.name, e)
            outcomes.append(Outcome(backend_name=backend.name, success=False, error=e))
            continue
        logger.info("[%s] DNS record %s %s", backend.name, result.fqdn, result.action)
        outcomes.append(Outcome(backend_name=backend.name, success=True, action=result.action))
    return outcomes


def summarize(outcomes: Sequence[Outcome]) -> str:
    if not outcomes:
        return "no backends matched"
    ok = [o.backend_name for o in outcomes if o.success]
    failed = [o.backend_name for o in outcomes if not o.success]
    text = f"{len(ok)}/{len(outcomes)} backends updated"
    if failed:
        text += f" (failed: {', '.join(failed)})"
    return text
