"""Diff tracked aircraft against rendered entities and apply the changes."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Iterable

from ridtrack.models.aircraft import Aircraft
from ridtrack.models.geo import GeoPoint
from ridtrack.rendering import Renderer
from ridtrack.tracking.staleness import StalenessCache

logger = logging.getLogger("ridtrack.tracking.reconciler")


@dataclass
class ReconcilePlan:
    """Entity operations needed to bring the scene in line with tracked aircraft."""

    to_create: list[Aircraft] = field(default_factory=list)
    to_update: list[Aircraft] = field(default_factory=list)
    to_remove: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.to_update or self.to_remove)


def plan_reconciliation(
    current: Iterable[Aircraft],
    rendered_ids: Iterable[str],
    is_stale: Callable[[str], bool],
) -> ReconcilePlan:
    """Compute create/update/remove sets.

    Rendered ids missing from ``current`` are only removed once stale, so
    short feed gaps do not make entities flicker.
    """

    plan = ReconcilePlan()
    rendered = set(rendered_ids)
    current_ids: set[str] = set()
    for aircraft in current:
        current_ids.add(aircraft.id)
        if aircraft.id in rendered:
            plan.to_update.append(aircraft)
        else:
            plan.to_create.append(aircraft)

    for aircraft_id in rendered:
        if aircraft_id not in current_ids and is_stale(aircraft_id):
            plan.to_remove.append(aircraft_id)
    plan.to_remove.sort()
    return plan


def _position(aircraft: Aircraft) -> GeoPoint:
    return GeoPoint(
        lat=aircraft.lat,
        lon=aircraft.lon,
        altitude_m=aircraft.altitude_m if aircraft.altitude_m is not None else 0.0,
    )


class EntityReconciler:
    """Own rendered entity handles and the focused aircraft id."""

    def __init__(self, renderer: Renderer, cache: StalenessCache) -> None:
        self.renderer = renderer
        self.cache = cache
        self.entities: dict[str, Any] = {}
        self.selected_id: str | None = None

    def reconcile(self, current: list[Aircraft]) -> ReconcilePlan:
        now = self.cache.clock()
        plan = plan_reconciliation(
            current, self.entities.keys(), lambda aircraft_id: self.cache.is_stale(aircraft_id, now)
        )

        for aircraft_id in plan.to_remove:
            self.renderer.remove_entity(self.entities.pop(aircraft_id))
            self.cache.forget(aircraft_id)
            if self.selected_id == aircraft_id:
                self.selected_id = None
        for aircraft in plan.to_update:
            self.renderer.update_entity(self.entities[aircraft.id], _position(aircraft))
        for aircraft in plan.to_create:
            self.entities[aircraft.id] = self.renderer.create_entity(
                aircraft.id, _position(aircraft), aircraft.id
            )

        if not plan.is_empty:
            logger.debug(
                "Reconciled entities: %s created, %s updated, %s removed",
                len(plan.to_create),
                len(plan.to_update),
                len(plan.to_remove),
            )
        return plan

    def select(self, aircraft_id: str) -> bool:
        handle = self.entities.get(aircraft_id)
        if handle is None:
            return False
        self.selected_id = aircraft_id
        self.renderer.fly_to(handle)
        return True


__all__ = ["EntityReconciler", "ReconcilePlan", "plan_reconciliation"]
