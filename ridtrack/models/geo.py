"""Geographic primitives shared by the viewport tracker and the renderer."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ViewportBounds(BaseModel):
    """Rectangular geographic viewport in degrees."""

    south: float = Field(..., description="Southern edge latitude")
    west: float = Field(..., description="Western edge longitude")
    north: float = Field(..., description="Northern edge latitude")
    east: float = Field(..., description="Eastern edge longitude")


class GeoPoint(BaseModel):
    """A single position, optionally with altitude."""

    lat: float = Field(..., description="Latitude in decimal degrees")
    lon: float = Field(..., description="Longitude in decimal degrees")
    altitude_m: float = Field(default=0.0, description="Altitude in meters")


__all__ = ["GeoPoint", "ViewportBounds"]
