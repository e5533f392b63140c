"""GA Analytics — reliable client-side delivery of Google Analytics events.

Loads the gtag transport once, buffers events while its readiness is
unknown, and falls back to direct collect requests when the tag cannot be
loaded.  Without a measurement id every event is only logged.

Integration points:
    1. Direct API          — tracker.track_event() from any code
    2. Starlette middleware — page views for a FastAPI / Starlette app
"""

from ga_analytics.config import AnalyticsConfig
from ga_analytics.events import PendingEvent, StandardEvent, TransportState
from ga_analytics.fallback import FallbackSender, encode_event_query
from ga_analytics.storage import JsonFileKeyValueStore, MemoryKeyValueStore
from ga_analytics.tracker import GoogleAnalyticsTracker


def __getattr__(name: str):
    if name == "AnalyticsMiddleware":
        from ga_analytics.middleware import AnalyticsMiddleware

        return AnalyticsMiddleware
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GoogleAnalyticsTracker",
    "AnalyticsConfig",
    "TransportState",
    "StandardEvent",
    "PendingEvent",
    "FallbackSender",
    "encode_event_query",
    "MemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "AnalyticsMiddleware",
]

__version__ = "0.1.0"
