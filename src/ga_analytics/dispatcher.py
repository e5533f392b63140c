"""Dispatcher — routes each tracked event according to transport readiness.

Instrumentation must never break the calling application, so
``track_event()`` returns nothing and raises nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ga_analytics.context import AnalyticsContext
from ga_analytics.events import EventParams, PendingEvent, TransportState

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, context: AnalyticsContext, sender: Any):
        self.context = context
        self.sender = sender

    def track_event(self, name: str, params: Optional[EventParams] = None) -> None:
        try:
            self._dispatch(name, params)
        except Exception:
            logger.exception("Failed to track event %r", name)

    def _dispatch(self, name: str, params: Optional[EventParams]) -> None:
        if not isinstance(name, str) or not name:
            logger.warning("Ignoring event with invalid name %r", name)
            return

        params = dict(params or {})
        ctx = self.context
        state = ctx.state

        if state is TransportState.UNCONFIGURED:
            logger.info("[ga-stub] %s %s", name, params)
            return

        if state is TransportState.FAILED:
            self.sender.send(name, params)
            return

        if state is TransportState.PENDING:
            if ctx.buffer.append(PendingEvent(name=name, params=params)) is not None:
                ctx.commands.evict_oldest_event()

        # Pending: recorded by the queue until attached.  Ready: forwarded.
        ctx.commands("event", name, params)
