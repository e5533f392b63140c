"""Exceptions raised inside the delivery layer.

None of these escape ``track_event()`` / ``initialize()``; they exist so the
internal seams (loader, sender, storage) can signal failure precisely and the
boundary can log a meaningful reason.
"""


class AnalyticsError(Exception):
    """Base class for ga_analytics errors."""


class TransportLoadFailed(AnalyticsError):
    """The primary tag script reported an explicit load error."""


class TransportLoadTimedOut(TransportLoadFailed):
    """No load outcome arrived before the load timer expired."""


class FallbackSendFailed(AnalyticsError):
    """A fallback collect request was rejected or could not be issued."""


class StorageUnavailable(AnalyticsError):
    """The durable key-value store cannot be read or written."""


class InvalidTransition(AnalyticsError):
    """A readiness transition not allowed by the state machine."""

    def __init__(self, current, target):
        super().__init__(f"illegal transport state transition {current} -> {target}")
        self.current = current
        self.target = target
