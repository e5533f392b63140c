"""Ordered in-memory queue of events issued while the transport is pending."""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

from ga_analytics.events import PendingEvent

logger = logging.getLogger(__name__)


class PendingBuffer:
    """FIFO buffer drained exactly once when readiness resolves."""

    def __init__(self, max_size: int = 10_000):
        self.max_size = max_size
        self._events: List[PendingEvent] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[PendingEvent]:
        return iter(list(self._events))

    def append(self, event: PendingEvent) -> Optional[PendingEvent]:
        """Queue ``event``; returns the oldest event if it had to be dropped."""
        dropped = None
        if len(self._events) >= self.max_size:
            dropped = self._events.pop(0)
            logger.warning(
                "Pending buffer full (%d); dropping oldest event %s",
                self.max_size,
                dropped.name,
            )
        self._events.append(event)
        return dropped

    def drain(self) -> List[PendingEvent]:
        """Remove and return every buffered event, oldest first."""
        batch = self._events
        self._events = []
        return batch

    def clear(self) -> int:
        """Discard the buffer without delivering it; returns the count dropped."""
        return len(self.drain())
