"""Tracking endpoints used by the embedding map page."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ridtrack.models import (
    Aircraft,
    EntityView,
    RefreshResponse,
    SceneResponse,
    TrackingStatus,
    ViewUpdate,
)
from ridtrack.rendering import SceneRenderer
from ridtrack.tracking import RefreshDriver

router = APIRouter(prefix="/api/v1/tracking", tags=["tracking"])

logger = logging.getLogger("ridtrack.api.tracking")


def get_driver(request: Request) -> RefreshDriver:
    driver = getattr(request.app.state, "driver", None)
    if driver is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Tracking engine not started",
        )
    return driver


def _scene(driver: RefreshDriver) -> SceneRenderer:
    if not isinstance(driver.renderer, SceneRenderer):
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Renderer does not expose scene state",
        )
    return driver.renderer


@router.get("/status", response_model=TrackingStatus, summary="Tracking status")
def get_status(driver: RefreshDriver = Depends(get_driver)) -> TrackingStatus:
    return driver.status


@router.get("/aircraft", response_model=list[Aircraft], summary="Displayed aircraft")
def list_aircraft(driver: RefreshDriver = Depends(get_driver)) -> list[Aircraft]:
    """Aircraft displayed by the most recent refresh cycle."""

    return driver.displayed


@router.get("/entities", response_model=SceneResponse, summary="Rendered entities")
def list_entities(driver: RefreshDriver = Depends(get_driver)) -> SceneResponse:
    scene = _scene(driver)
    return SceneResponse(
        entities=[
            EntityView(
                handle=entity.handle,
                id=entity.entity_id,
                position=entity.position,
                label=entity.label,
            )
            for entity in scene.entities.values()
        ],
        selected_id=driver.selected_id,
        camera_target=scene.camera_target,
    )


@router.put("/view", status_code=status.HTTP_204_NO_CONTENT, summary="Report camera view")
def update_view(view: ViewUpdate, driver: RefreshDriver = Depends(get_driver)) -> None:
    _scene(driver).set_view(view.bounds, view.center)


@router.post("/refresh", response_model=RefreshResponse, summary="Refresh now")
async def refresh_now(driver: RefreshDriver = Depends(get_driver)) -> RefreshResponse:
    result = await driver.refresh_now()
    return RefreshResponse(
        created=[aircraft.id for aircraft in result.plan.to_create],
        updated=[aircraft.id for aircraft in result.plan.to_update],
        removed=result.plan.to_remove,
        status=result.status,
    )


@router.post("/select/{aircraft_id}", response_model=TrackingStatus, summary="Focus an aircraft")
def select_tracked(
    aircraft_id: str, driver: RefreshDriver = Depends(get_driver)
) -> TrackingStatus:
    if not driver.select_tracked(aircraft_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Aircraft {aircraft_id} is not tracked",
        )
    return driver.status


@router.post(
    "/demo",
    response_model=TrackingStatus,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Seed demo traffic",
)
async def seed_demo_traffic(driver: RefreshDriver = Depends(get_driver)) -> TrackingStatus:
    """Ask the backend to inject synthetic traffic around the current view."""

    if not await driver.seed_demo_traffic():
        logger.warning("Demo traffic request rejected or failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Demo RID injection failed",
        )
    return driver.status
