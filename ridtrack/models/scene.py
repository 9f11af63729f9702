"""Request and response models for the tracking HTTP surface."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field

from .geo import GeoPoint, ViewportBounds
from .status import TrackingStatus


class ViewUpdate(BaseModel):
    """Camera state reported by the embedding page."""

    bounds: Optional[ViewportBounds] = Field(
        default=None, description="Visible rectangle, or null if it cannot be computed"
    )
    center: Optional[GeoPoint] = Field(default=None, description="Camera focal point")


class EntityView(BaseModel):
    handle: str
    id: str
    position: GeoPoint
    label: str


class SceneResponse(BaseModel):
    """Rendered entities plus selection and camera target."""

    entities: list[EntityView] = Field(default_factory=list)
    selected_id: Optional[str] = None
    camera_target: Union[ViewportBounds, str, None] = None


class RefreshResponse(BaseModel):
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    status: TrackingStatus


__all__ = ["EntityView", "RefreshResponse", "SceneResponse", "ViewUpdate"]
