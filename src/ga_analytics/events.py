"""Readiness states, event names and the buffered event model.

The transport state machine is

    unconfigured                       (no measurement id, permanent)
    pending → ready | failed           (ready / failed are terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Union

ParamValue = Optional[Union[str, int, float, bool]]
EventParams = Dict[str, ParamValue]

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TransportState(str, Enum):
    """Readiness of the primary (tag script) transport."""

    UNCONFIGURED = "unconfigured"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransportState.PENDING


# Legal transitions; every other pair is rejected by AnalyticsContext.
ALLOWED_TRANSITIONS = {
    (TransportState.PENDING, TransportState.READY),
    (TransportState.PENDING, TransportState.FAILED),
}


class StandardEvent(str, Enum):
    """Event names raised by the pricing / signup application shell."""

    # Navigation
    PAGE_VIEW = "page_view"
    VIEW_PRICING = "view_pricing"

    # Account
    START_SIGNUP = "start_signup"
    SIGN_UP = "sign_up"
    LOGIN = "login"

    # Plans & checkout
    SELECT_PLAN = "select_plan"
    BEGIN_CHECKOUT = "begin_checkout"
    PURCHASE = "purchase"

    # Product usage
    FEATURE_USE = "feature_use"


# ---------------------------------------------------------------------------
# Event data class
# ---------------------------------------------------------------------------


@dataclass
class PendingEvent:
    """An event issued while the primary transport's readiness is unknown.

    Owned by the PendingBuffer until the bootstrapper resolves; then it is
    either dropped (primary ready) or handed to the fallback sender once.
    """

    name: str
    params: EventParams = field(default_factory=dict)
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("event name must be a non-empty string")
        self.params = dict(self.params or {})

    def present_params(self) -> EventParams:
        """Parameters with absent (None) values dropped."""
        return {k: v for k, v in self.params.items() if v is not None}
