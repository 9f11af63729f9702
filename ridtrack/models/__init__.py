"""Pydantic models for the RID live-tracking service."""

from .aircraft import Aircraft
from .geo import GeoPoint, ViewportBounds
from .scene import EntityView, RefreshResponse, SceneResponse, ViewUpdate
from .status import StatusLevel, TrackingCounters, TrackingStatus

__all__ = [
    "Aircraft",
    "EntityView",
    "GeoPoint",
    "RefreshResponse",
    "SceneResponse",
    "StatusLevel",
    "TrackingCounters",
    "TrackingStatus",
    "ViewUpdate",
    "ViewportBounds",
]
