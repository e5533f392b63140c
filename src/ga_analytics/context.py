"""Per-process delivery state shared by the bootstrapper and the dispatcher."""

from __future__ import annotations

import logging
from typing import Optional

from ga_analytics.buffer import PendingBuffer
from ga_analytics.config import AnalyticsConfig
from ga_analytics.errors import InvalidTransition
from ga_analytics.events import ALLOWED_TRANSITIONS, TransportState
from ga_analytics.transport import TagCommandQueue

logger = logging.getLogger(__name__)


class AnalyticsContext:
    """Readiness state, pending buffer, command queue and the one-shot flag.

    Build one per process (or per test) and hand it to both the
    TransportBootstrapper and the Dispatcher.  Only the bootstrapper
    calls ``transition()``.
    """

    def __init__(
        self,
        config: AnalyticsConfig,
        buffer: Optional[PendingBuffer] = None,
        commands: Optional[TagCommandQueue] = None,
    ):
        self.config = config
        # Both pending copies share one limit so they evict the same events.
        limit = config.max_pending_events
        self.buffer = buffer if buffer is not None else PendingBuffer(limit)
        self.commands = (
            commands if commands is not None else TagCommandQueue(limit)
        )
        self.initialized = False
        # Configured contexts are pending from construction so events issued
        # before initialize() are buffered rather than logged and lost.
        self._state = (
            TransportState.PENDING
            if config.is_configured
            else TransportState.UNCONFIGURED
        )

    @property
    def state(self) -> TransportState:
        return self._state

    def transition(self, target: TransportState) -> None:
        if (self._state, target) not in ALLOWED_TRANSITIONS:
            raise InvalidTransition(self._state, target)
        logger.debug("Transport state %s -> %s", self._state.value, target.value)
        self._state = target
