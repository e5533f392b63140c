"""GoogleAnalyticsTracker — the main entry point for tracking events.

Wires the context, bootstrapper, dispatcher and fallback sender together.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ga_analytics.bootstrap import TransportBootstrapper
from ga_analytics.config import AnalyticsConfig
from ga_analytics.context import AnalyticsContext
from ga_analytics.dispatcher import Dispatcher
from ga_analytics.events import EventParams, TransportState
from ga_analytics.fallback import Beacon, FallbackSender
from ga_analytics.storage import (
    ClientIdProvider,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from ga_analytics.transport import HttpScriptLoader, ScriptLoader

logger = logging.getLogger(__name__)


class GoogleAnalyticsTracker:
    """Tracks named events through gtag, with a direct-collect fallback.

    Usage::

        tracker = GoogleAnalyticsTracker(AnalyticsConfig.from_env())
        tracker.initialize()          # inside a running event loop
        tracker.track_event("sign_up", {"method": "email"})
        ...
        await tracker.close()

    Usage — Starlette / FastAPI::

        from ga_analytics import AnalyticsMiddleware
        app.add_middleware(AnalyticsMiddleware, tracker=tracker)
    """

    def __init__(
        self,
        config: Optional[AnalyticsConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        loader: Optional[ScriptLoader] = None,
        client: Optional[httpx.AsyncClient] = None,
        beacon: Optional[Beacon] = None,
    ):
        self.config = config if config is not None else AnalyticsConfig.from_env()

        if store is None and self.config.storage_path:
            store = JsonFileKeyValueStore(self.config.storage_path)
        self.client_ids = ClientIdProvider(store, self.config.client_id_key)

        self.context = AnalyticsContext(self.config)
        self._sender = FallbackSender(
            self.config, self.client_ids, client=client, beacon=beacon
        )
        self._bootstrapper = TransportBootstrapper(
            self.context,
            loader if loader is not None else HttpScriptLoader(self._sender, client),
            self._sender,
        )
        self._dispatcher = Dispatcher(self.context, self._sender)

    # ------------------------------------------------------------------ #
    # Primary API
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> TransportState:
        return self.context.state

    def initialize(self) -> None:
        """Start loading the tag transport (idempotent)."""
        try:
            self._bootstrapper.initialize()
        except Exception:
            logger.exception("Analytics initialization failed")

    def track_event(self, name: str, params: Optional[EventParams] = None) -> None:
        """Track one named event; never raises."""
        self._dispatcher.track_event(name, params)

    async def wait_until_resolved(self) -> TransportState:
        return await self._bootstrapper.wait_resolved()

    async def drain_pending(self) -> None:
        """Await in-flight network sends."""
        await self._sender.drain_pending()

    async def close(self):
        """Drain sends and release the HTTP client."""
        await self._sender.close()
        logger.info("GoogleAnalyticsTracker closed")
