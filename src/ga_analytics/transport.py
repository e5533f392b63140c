"""Primary transport: the tag command queue and the tag script loader.

``TagCommandQueue`` replaces the ambient ``gtag()`` / ``dataLayer`` stub.
Callers can always invoke it synchronously; commands are recorded until the
loader produces a real backend, then replayed to it in order.  If the load
fails the queue is discarded and further commands become no-ops, so nothing
reaches the backend twice or after a failure.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Protocol, Tuple

import httpx

from ga_analytics.errors import TransportLoadFailed

logger = logging.getLogger(__name__)

TagCommand = Tuple[Any, ...]
TagBackend = Callable[..., None]


class ScriptLoader(Protocol):
    async def load(self, url: str) -> TagBackend:
        """Load the tag script; raise TransportLoadFailed on an explicit error."""
        ...


# ---------------------------------------------------------------------------
# Command queue (gtag stub)
# ---------------------------------------------------------------------------


class TagCommandQueue:
    """Records ``gtag``-style commands until a backend is attached."""

    def __init__(self, max_events: int = 10_000):
        self.max_events = max_events
        self._queue: List[TagCommand] = []
        self._backend: Optional[TagBackend] = None
        self._discarded = False

    def __call__(self, *command: Any) -> None:
        if self._discarded:
            return
        if self._backend is None:
            if command[:1] == ("event",) and self._queued_events() >= self.max_events:
                self.evict_oldest_event()
            self._queue.append(command)
            return
        self._forward(command)

    @property
    def attached(self) -> bool:
        return self._backend is not None

    @property
    def queued(self) -> List[TagCommand]:
        return list(self._queue)

    def attach(self, backend: TagBackend) -> None:
        """Replay queued commands to ``backend`` and forward later ones."""
        if self._discarded or self._backend is not None:
            return
        self._backend = backend
        queued, self._queue = self._queue, []
        for command in queued:
            self._forward(command)

    def evict_oldest_event(self) -> Optional[TagCommand]:
        """Drop the oldest queued ``event`` command; setup commands are kept."""
        for index, command in enumerate(self._queue):
            if command[:1] == ("event",):
                return self._queue.pop(index)
        return None

    def _queued_events(self) -> int:
        return sum(1 for command in self._queue if command[:1] == ("event",))

    def discard(self) -> int:
        """Drop queued commands and ignore all future ones."""
        dropped = len(self._queue)
        self._queue = []
        self._discarded = True
        return dropped

    def _forward(self, command: TagCommand) -> None:
        try:
            self._backend(*command)
        except Exception:
            logger.exception("Tag backend rejected command %r", command[:1])


# ---------------------------------------------------------------------------
# Backend + loader
# ---------------------------------------------------------------------------


class CollectBackend:
    """Interprets ``js`` / ``config`` / ``event`` commands once the tag is live.

    Event hits are delegated to ``sender`` (anything with
    ``send(name, params)``), which owns encoding and HTTP delivery.
    """

    def __init__(self, sender: Any, measurement_id: str = ""):
        self.sender = sender
        self.measurement_id = measurement_id
        self.started_at = None

    def __call__(self, command: str, *args: Any) -> None:
        if command == "js":
            self.started_at = args[0] if args else None
        elif command == "config":
            target = args[0] if args else ""
            if self.measurement_id and target != self.measurement_id:
                logger.warning(
                    "Ignoring config for %s; backend is bound to %s",
                    target,
                    self.measurement_id,
                )
                return
            self.measurement_id = target
        elif command == "event":
            name = args[0]
            params = args[1] if len(args) > 1 else None
            self.sender.send(name, params)
        else:
            logger.debug("Unsupported tag command %r", command)


class HttpScriptLoader:
    """Fetches the tag script over HTTP; success yields a CollectBackend."""

    def __init__(self, sender: Any, client: Optional[httpx.AsyncClient] = None):
        self.sender = sender
        self._client = client

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        try:
            return await client.get(url)
        except httpx.HTTPError as exc:
            raise TransportLoadFailed(
                f"{exc.__class__.__name__}: {exc}" if str(exc) else exc.__class__.__name__
            ) from exc

    async def load(self, url: str) -> TagBackend:
        if self._client is not None:
            response = await self._fetch(self._client, url)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._fetch(client, url)

        if not response.is_success:
            raise TransportLoadFailed(f"HTTP {response.status_code} loading {url}")
        logger.debug("Loaded tag script from %s", url)
        return CollectBackend(self.sender)
