"""Models for tracked aircraft derived from the Remote ID feed."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Aircraft(BaseModel):
    """Canonical, de-duplicated representation of a tracked aircraft."""

    id: str = Field(..., description="Hardware address, session id or record id")
    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")
    altitude_m: Optional[float] = Field(default=None, description="Altitude in meters")
    speed_mps: Optional[float] = Field(
        default=None, description="Ground speed in meters per second"
    )
    heading_deg: Optional[float] = Field(
        default=None, description="Track heading in degrees"
    )
    timestamp: Optional[datetime] = Field(
        default=None, description="Observation time reported by the feed"
    )

    model_config = ConfigDict(extra="ignore")


__all__ = ["Aircraft"]
