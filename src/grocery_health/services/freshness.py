"""Guard against slow responses overwriting newer state."""

import threading
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestTicket:
    """Identifies one request for a logical resource."""

    resource: str
    sequence: int


@dataclass
class LatestRequestGuard:
    """Hands out increasing tickets per resource.

    Only the holder of the most recent ticket may publish its result.
    """

    _latest: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def issue(self, resource: str) -> RequestTicket:
        """Start a new request, superseding earlier ones."""
        with self._lock:
            sequence = self._latest.get(resource, 0) + 1
            self._latest[resource] = sequence
            return RequestTicket(resource=resource, sequence=sequence)

    def is_current(self, ticket: RequestTicket) -> bool:
        """True if no newer request for the resource has been issued."""
        with self._lock:
            return self._latest.get(ticket.resource) == ticket.sequence
