"""
Metrics Emitter

Fire-and-forget analytics events.

Events are written as single-line JSON records on this module's logger:

    [metric] {"event": "rating_submitted", "book_id": 7, "rating": 5, "source": "user", "ts": 1718000000000}

Emission is best effort: a failing sink is logged at debug level and never
propagates to the request. DISABLE_ANALYTICS=true silences the emitter.

Usage:
    from library_catalog.services.metrics import MetricEvent, get_metrics

    get_metrics().emit(MetricEvent.RATING_SUBMITTED, book_id=7, rating=5, source="user")
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
from typing import Any

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)


class MetricEvent(StrEnum):
    """Names of the emitted events."""

    RATING_SUBMITTED = "rating_submitted"


@dataclass
class Metric:
    """
    A single analytics record.

    Attributes:
        event: Event name
        payload: Event attributes
        ts: Milliseconds since the epoch
    """

    event: str
    payload: dict[str, Any]
    ts: int = field(default_factory=lambda: int(time.time() * 1000))

    def to_dict(self) -> dict[str, Any]:
        return {"event": str(self.event), **self.payload, "ts": self.ts}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class MetricsEmitter:
    """Writes metrics to the log; never raises."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def emit(self, event: str, **payload: Any) -> Metric | None:
        """
        Record an event.

        Returns:
            The emitted Metric, or None when disabled or the sink failed
        """
        if not self.enabled:
            return None
        try:
            metric = Metric(event=event, payload=payload)
            logger.info(f"[metric] {metric.to_json()}")
            return metric
        except Exception as e:  # metrics must never break a request
            logger.debug(f"Metric emission failed for {event}: {e}")
            return None


@lru_cache
def get_metrics() -> MetricsEmitter:
    """Process-wide emitter configured from settings."""
    return MetricsEmitter(enabled=not get_settings().disable_analytics)
