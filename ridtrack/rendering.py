"""Rendering collaborator interface and a headless in-memory scene."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Protocol

from ridtrack.models.geo import GeoPoint, ViewportBounds

logger = logging.getLogger("ridtrack.rendering")


class Renderer(Protocol):
    """Interface the tracking engine uses to drive a map or globe."""

    def create_entity(self, entity_id: str, position: GeoPoint, label: str) -> Any:
        """Display a new entity and return an opaque handle for it."""

    def update_entity(self, handle: Any, position: GeoPoint) -> None:
        """Move an existing entity."""

    def remove_entity(self, handle: Any) -> None:
        """Remove an entity from the scene."""

    def get_view_bounds(self) -> ViewportBounds | None:
        """Return the visible rectangle, or None when it cannot be computed."""

    def get_view_center(self) -> GeoPoint | None:
        """Return the camera focal point, or None when unknown."""

    def fly_to(self, target: Any) -> None:
        """Move the camera to a rectangle or an entity handle."""


@dataclass
class RenderedEntity:
    """An entity held by :class:`SceneRenderer`."""

    handle: str
    entity_id: str
    position: GeoPoint
    label: str


class SceneRenderer:
    """Renderer that keeps the scene in memory for a page to poll.

    The embedding page reports its camera through :meth:`set_view` and reads
    back entities and the last camera target.
    """

    def __init__(self) -> None:
        self.entities: dict[str, RenderedEntity] = {}
        self.view_bounds: ViewportBounds | None = None
        self.view_center: GeoPoint | None = None
        self.camera_target: Any = None

    def set_view(
        self, bounds: ViewportBounds | None, center: GeoPoint | None = None
    ) -> None:
        self.view_bounds = bounds
        self.view_center = center

    def create_entity(self, entity_id: str, position: GeoPoint, label: str) -> str:
        handle = f"rid-{entity_id}"
        self.entities[handle] = RenderedEntity(
            handle=handle, entity_id=entity_id, position=position, label=label
        )
        return handle

    def update_entity(self, handle: str, position: GeoPoint) -> None:
        entity = self.entities.get(handle)
        if entity is None:
            logger.debug("Update for unknown entity %s ignored", handle)
            return
        entity.position = position

    def remove_entity(self, handle: str) -> None:
        self.entities.pop(handle, None)

    def get_view_bounds(self) -> ViewportBounds | None:
        return self.view_bounds

    def get_view_center(self) -> GeoPoint | None:
        return self.view_center

    def fly_to(self, target: Any) -> None:
        self.camera_target = target


__all__ = ["RenderedEntity", "Renderer", "SceneRenderer"]
