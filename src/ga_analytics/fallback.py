"""Best-effort fallback delivery straight to the collection endpoint.

Used once the tag script is known to be unavailable.  Sends are one-way,
at-most-once and never retried: a failed send is logged and forgotten.

Wire format (GET query string)::

    v=2&tid=<measurement id>&cid=<client id>&en=<event name>
        &ep.<key>=<string|bool value>&epn.<key>=<numeric value>
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Set, Tuple

import httpx

from ga_analytics.config import AnalyticsConfig
from ga_analytics.errors import FallbackSendFailed
from ga_analytics.events import EventParams, PendingEvent
from ga_analytics.storage import ClientIdProvider

logger = logging.getLogger(__name__)

# Queues the URL for delivery and returns True, or returns False if it cannot.
Beacon = Callable[[str], bool]

# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_event_query(
    measurement_id: str,
    client_id: str,
    name: str,
    params: Optional[EventParams] = None,
    version: str = "2",
) -> List[Tuple[str, str]]:
    """Build the ordered query pairs for one collect hit.

    Numbers go under ``epn.`` and strings/booleans under ``ep.`` so the
    receiver keeps the type; ``None`` values are left out entirely.
    """
    pairs = [("v", version), ("tid", measurement_id), ("cid", client_id), ("en", name)]
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            pairs.append((f"epn.{key}", _format_value(value)))
        else:
            pairs.append((f"ep.{key}", _format_value(value)))
    return pairs


def build_collect_url(base_url: str, pairs: List[Tuple[str, str]]) -> str:
    return str(httpx.URL(base_url, params=pairs))


# ---------------------------------------------------------------------------
# Sender
# ---------------------------------------------------------------------------


class FallbackSender:
    """Fire-and-forget collect requests, tracked so shutdown can drain them."""

    def __init__(
        self,
        config: AnalyticsConfig,
        client_ids: ClientIdProvider,
        client: Optional[httpx.AsyncClient] = None,
        beacon: Optional[Beacon] = None,
        request_timeout: float = 10.0,
    ):
        self.config = config
        self.client_ids = client_ids
        self.beacon = beacon
        self.request_timeout = request_timeout

        self._client = client
        self._owns_client = client is None
        self._pending_tasks: Set[asyncio.Task] = set()

    # -- lazy init --

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.request_timeout)
        return self._client

    def build_url(self, name: str, params: Optional[EventParams] = None) -> str:
        pairs = encode_event_query(
            self.config.measurement_id or "",
            self.client_ids.get(),
            name,
            params,
            version=self.config.protocol_version,
        )
        return build_collect_url(self.config.collect_url, pairs)

    # -- public API --

    def send(self, name: str, params: Optional[EventParams] = None) -> None:
        """Deliver one event; never raises."""
        try:
            url = self.build_url(name, params)
        except Exception:
            logger.exception("Could not encode fallback event %s", name)
            return

        if self.beacon is not None:
            try:
                if self.beacon(url):
                    logger.debug("Queued fallback event %s via beacon", name)
                    return
            except Exception as exc:
                logger.warning("Beacon rejected fallback event %s: %s", name, exc)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping fallback event %s", name)
            return

        task = loop.create_task(self._deliver(name, url))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    def flush(self, events: Iterable[PendingEvent]) -> int:
        """Send each buffered event once, in insertion order."""
        count = 0
        for event in events:
            self.send(event.name, event.params)
            count += 1
        if count:
            logger.info("Flushed %d pending events to fallback channel", count)
        return count

    async def _get(self, url: str) -> httpx.Response:
        try:
            return await self._get_client().get(url)
        except httpx.HTTPError as exc:
            raise FallbackSendFailed(str(exc) or exc.__class__.__name__) from exc

    async def _deliver(self, name: str, url: str) -> None:
        # The response body is opaque to us; only transport errors matter.
        try:
            response = await self._get(url)
            logger.debug("Fallback event %s sent (HTTP %d)", name, response.status_code)
        except FallbackSendFailed as exc:
            logger.warning("Fallback send failed for %s: %s", name, exc)
        except Exception:
            logger.exception("Unexpected error sending fallback event %s", name)

    @property
    def in_flight(self) -> int:
        return len(self._pending_tasks)

    async def drain_pending(self) -> None:
        """Await every in-flight fallback request."""
        while self._pending_tasks:
            await asyncio.gather(*list(self._pending_tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.drain_pending()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
