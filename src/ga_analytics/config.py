"""Static configuration for the analytics delivery layer.

Resolved once at process start.  A missing measurement id is a valid
configuration: the tracker then runs in console-only (unconfigured) mode.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_SCRIPT_URL = "https://www.googletagmanager.com/gtag/js?id={measurement_id}"
DEFAULT_COLLECT_URL = "https://www.google-analytics.com/g/collect"
DEFAULT_LOAD_TIMEOUT = 5.0
DEFAULT_MAX_PENDING_EVENTS = 10_000
DEFAULT_CLIENT_ID_KEY = "ga_fallback_client_id"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsConfig:
    measurement_id: Optional[str] = None
    load_timeout: float = DEFAULT_LOAD_TIMEOUT
    script_url: str = DEFAULT_SCRIPT_URL
    collect_url: str = DEFAULT_COLLECT_URL
    protocol_version: str = "2"
    client_id_key: str = DEFAULT_CLIENT_ID_KEY
    storage_path: Optional[str] = None
    max_pending_events: int = DEFAULT_MAX_PENDING_EVENTS

    def __post_init__(self):
        # Blank ids count as absent
        mid = (self.measurement_id or "").strip() or None
        object.__setattr__(self, "measurement_id", mid)
        if self.load_timeout <= 0:
            raise ValueError("load_timeout must be positive")
        if self.max_pending_events < 1:
            raise ValueError("max_pending_events must be at least 1")

    @property
    def is_configured(self) -> bool:
        return self.measurement_id is not None

    @property
    def tag_script_url(self) -> str:
        return self.script_url.format(measurement_id=self.measurement_id or "")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnalyticsConfig":
        """Build a config from GA_* environment variables."""
        env = os.environ if environ is None else environ
        return cls(
            measurement_id=env.get("GA_MEASUREMENT_ID"),
            load_timeout=_positive_float(env, "GA_LOAD_TIMEOUT", DEFAULT_LOAD_TIMEOUT),
            storage_path=env.get("GA_STORAGE_PATH") or None,
        )


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        value = None
    if value is None or not math.isfinite(value) or value <= 0:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default
    return value
