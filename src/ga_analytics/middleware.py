"""FastAPI / Starlette ASGI middleware that records page views.

Usage::

    from fastapi import FastAPI
    from ga_analytics import GoogleAnalyticsTracker, AnalyticsMiddleware

    app = FastAPI()
    tracker = GoogleAnalyticsTracker()
    app.add_middleware(AnalyticsMiddleware, tracker=tracker)

    @app.on_event("shutdown")
    async def shutdown():
        await tracker.close()  # drains in-flight fallback sends
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ga_analytics.events import StandardEvent

logger = logging.getLogger(__name__)


class AnalyticsMiddleware(BaseHTTPMiddleware):
    """Tracks a ``page_view`` event for every request outside the skip list.

    The tracker is initialized lazily on the first request, when the event
    loop is guaranteed to be running.  Tracking never affects the response.
    """

    DEFAULT_EXCLUDED_PREFIXES = (
        "/static",
        "/favicon.ico",
        "/health",
    )

    def __init__(
        self,
        app: Any,
        tracker: Any,
        excluded_prefixes: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(app)
        self.tracker = tracker
        self.excluded_prefixes = tuple(
            self.DEFAULT_EXCLUDED_PREFIXES
            if excluded_prefixes is None
            else excluded_prefixes
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        # Fast path: skip excluded requests
        if any(path.startswith(p) for p in self.excluded_prefixes):
            return await call_next(request)

        response = await call_next(request)

        try:
            self.tracker.initialize()
            self.tracker.track_event(
                StandardEvent.PAGE_VIEW.value,
                {
                    "page_path": path,
                    "http_method": request.method,
                    "status_code": response.status_code,
                },
            )
        except Exception:
            logger.exception("Page view tracking failed")

        return response
