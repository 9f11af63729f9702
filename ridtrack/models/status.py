"""Status signals surfaced by the tracking engine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class StatusLevel(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class TrackingCounters(BaseModel):
    """Counters for recoveries that would otherwise be silent."""

    viewport_substitutions: int = 0
    subscription_expiries: int = 0
    feed_errors: int = 0
    renewals: int = 0
    renewal_failures: int = 0


class TrackingStatus(BaseModel):
    """Current connection and data-freshness state of the tracker."""

    level: StatusLevel = Field(default=StatusLevel.IDLE)
    message: str = Field(default="Waiting for first refresh")
    stale: bool = Field(
        default=False, description="True when showing last known traffic"
    )
    tracked_count: int = Field(default=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    counters: TrackingCounters = Field(default_factory=TrackingCounters)


__all__ = ["StatusLevel", "TrackingCounters", "TrackingStatus"]
