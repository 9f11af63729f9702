"""Viewport tracking: derive a bounded subscription rectangle from the camera."""

from __future__ import annotations

import logging
import math

from ridtrack.config import settings
from ridtrack.models.geo import GeoPoint, ViewportBounds
from ridtrack.rendering import Renderer

logger = logging.getLogger("ridtrack.tracking.viewport")

EARTH_RADIUS_KM = 6371.0


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def clamp_bounds(bounds: ViewportBounds) -> ViewportBounds:
    return ViewportBounds(
        south=clamp(bounds.south, -90.0, 90.0),
        west=clamp(bounds.west, -180.0, 180.0),
        north=clamp(bounds.north, -90.0, 90.0),
        east=clamp(bounds.east, -180.0, 180.0),
    )


def estimate_diagonal_km(bounds: ViewportBounds | None) -> float | None:
    """Great-circle distance between the south-west and north-east corners.

    Returns None for a missing or antimeridian-crossing (east < west) rectangle.
    """

    if bounds is None or bounds.east < bounds.west:
        return None

    lat1 = math.radians(bounds.south)
    lat2 = math.radians(bounds.north)
    dlat = lat2 - lat1
    dlon = math.radians(bounds.east) - math.radians(bounds.west)
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounds_from_center(center: GeoPoint, buffer_deg: float) -> ViewportBounds:
    return clamp_bounds(
        ViewportBounds(
            south=center.lat - buffer_deg,
            west=center.lon - buffer_deg,
            north=center.lat + buffer_deg,
            east=center.lon + buffer_deg,
        )
    )


def to_view_param(bounds: ViewportBounds) -> str:
    """Serialize bounds as ``south,west,north,east`` with 6 decimal places."""

    return ",".join(
        f"{value:.6f}" for value in (bounds.south, bounds.west, bounds.north, bounds.east)
    )


class ViewportTracker:
    """Compute normalized viewport bounds and detect meaningful camera movement."""

    def __init__(
        self,
        renderer: Renderer | None = None,
        *,
        default_center: GeoPoint | None = None,
        buffer_deg: float | None = None,
        max_diagonal_km: float | None = None,
        change_threshold_deg: float | None = None,
    ) -> None:
        self.renderer = renderer
        self.default_center = default_center or GeoPoint(
            lat=settings.default_view_lat, lon=settings.default_view_lon
        )
        self.buffer_deg = buffer_deg if buffer_deg is not None else settings.default_view_buffer_deg
        self.max_diagonal_km = (
            max_diagonal_km if max_diagonal_km is not None else settings.max_view_diagonal_km
        )
        self.change_threshold_deg = (
            change_threshold_deg
            if change_threshold_deg is not None
            else settings.view_change_threshold_deg
        )
        self.substitutions = 0

    def view_center(self) -> GeoPoint:
        center = self.renderer.get_view_center() if self.renderer else None
        return center or self.default_center

    def fallback_bounds(self) -> ViewportBounds:
        return bounds_from_center(self.default_center, self.buffer_deg)

    def compute_bounds(self, view: ViewportBounds | None = None) -> ViewportBounds:
        """Return clamped bounds for ``view`` (or the renderer's current view).

        Oversized or unmeasurable rectangles are replaced by a buffer
        rectangle around the current view centre.
        """

        if view is None and self.renderer is not None:
            view = self.renderer.get_view_bounds()
        if view is None:
            return self.fallback_bounds()

        sanitized = clamp_bounds(view)
        diagonal = estimate_diagonal_km(sanitized)
        if diagonal is None or not math.isfinite(diagonal) or diagonal > self.max_diagonal_km:
            self.substitutions += 1
            logger.debug(
                "Viewport diagonal %s km exceeds %.1f km; using centred buffer",
                "unknown" if diagonal is None else f"{diagonal:.1f}",
                self.max_diagonal_km,
            )
            return bounds_from_center(self.view_center(), self.buffer_deg)

        return sanitized

    def has_moved(
        self, previous: ViewportBounds | None, current: ViewportBounds
    ) -> bool:
        if previous is None:
            return True
        threshold = self.change_threshold_deg
        return (
            abs(previous.south - current.south) > threshold
            or abs(previous.west - current.west) > threshold
            or abs(previous.north - current.north) > threshold
            or abs(previous.east - current.east) > threshold
        )


__all__ = [
    "EARTH_RADIUS_KM",
    "ViewportTracker",
    "bounds_from_center",
    "clamp",
    "clamp_bounds",
    "estimate_diagonal_km",
    "to_view_param",
]
