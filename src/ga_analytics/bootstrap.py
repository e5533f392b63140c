"""TransportBootstrapper — the only writer of the readiness state.

``initialize()`` starts loading the tag script once per context and arms a
load timer.  The first definitive outcome (load success, load error or
timer expiry) resolves the state; anything arriving later is ignored.

    success          → READY   (pending buffer cleared, not resent)
    error | timeout  → FAILED  (pending buffer flushed to the fallback sender)
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ga_analytics.context import AnalyticsContext
from ga_analytics.errors import TransportLoadFailed, TransportLoadTimedOut
from ga_analytics.events import TransportState
from ga_analytics.transport import ScriptLoader, TagBackend

logger = logging.getLogger(__name__)


class TransportBootstrapper:
    def __init__(self, context: AnalyticsContext, loader: ScriptLoader, sender: Any):
        self.context = context
        self.loader = loader
        self.sender = sender

        self._timer: Optional[asyncio.TimerHandle] = None
        self._load_task: Optional[asyncio.Task] = None
        self._resolved: Optional[asyncio.Future] = None

    @property
    def is_resolved(self) -> bool:
        return self.context.state.is_terminal

    # ------------------------------------------------------------------ #
    # Entry point
    # ------------------------------------------------------------------ #

    def initialize(self) -> None:
        """Start the primary transport.  Only the first call has any effect."""
        ctx = self.context
        if ctx.initialized:
            return

        if not ctx.config.is_configured:
            ctx.initialized = True
            logger.warning(
                "[ga] GA_MEASUREMENT_ID not set; events will only be logged."
            )
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("initialize() needs a running event loop; transport not started")
            return

        ctx.initialized = True
        ctx.commands("js", datetime.now(timezone.utc))
        ctx.commands("config", ctx.config.measurement_id)

        self._resolved = loop.create_future()
        self._load_task = loop.create_task(self._load())
        self._timer = loop.call_later(ctx.config.load_timeout, self._on_timeout)
        logger.debug(
            "Loading tag script %s (timeout %.1fs)",
            ctx.config.tag_script_url,
            ctx.config.load_timeout,
        )

    async def wait_resolved(self) -> TransportState:
        """Wait until the transport reaches a terminal state."""
        if self._resolved is None:
            return self.context.state
        return await asyncio.shield(self._resolved)

    # ------------------------------------------------------------------ #
    # Outcome signals
    # ------------------------------------------------------------------ #

    async def _load(self) -> None:
        try:
            backend = await self.loader.load(self.context.config.tag_script_url)
        except TransportLoadFailed as exc:
            self._on_load_error(exc)
        except Exception as exc:
            self._on_load_error(TransportLoadFailed(repr(exc)))
        else:
            self._on_load_success(backend)

    def _on_load_success(self, backend: TagBackend) -> None:
        if self.is_resolved:
            logger.debug("Ignoring late tag load success")
            return
        self._cancel_timer()
        ctx = self.context
        ctx.transition(TransportState.READY)
        ctx.commands.attach(backend)
        dropped = ctx.buffer.clear()
        logger.info(
            "Tag transport ready; %d pending events handed to tag queue", dropped
        )
        self._settle()

    def _on_load_error(self, exc: TransportLoadFailed) -> None:
        if self.is_resolved:
            logger.debug("Ignoring late tag load failure: %s", exc)
            return
        self._fail(exc)

    def _on_timeout(self) -> None:
        self._timer = None
        if self.is_resolved:
            return
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._fail(
            TransportLoadTimedOut(
                f"no load outcome within {self.context.config.load_timeout}s"
            )
        )

    def _fail(self, exc: TransportLoadFailed) -> None:
        self._cancel_timer()
        ctx = self.context
        ctx.transition(TransportState.FAILED)
        ctx.commands.discard()
        logger.warning("[ga] tag transport failed (%s); using fallback channel", exc)
        self.sender.flush(ctx.buffer.drain())
        self._settle()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _settle(self) -> None:
        if self._resolved is not None and not self._resolved.done():
            self._resolved.set_result(self.context.state)
