"""Health check endpoint."""

from fastapi import APIRouter, Request

from ridtrack.config import settings

router = APIRouter()


@router.get("/healthz", summary="Health check")
def health_check(request: Request) -> dict[str, str]:
    """Liveness plus whether the refresh loop is running."""
    driver = getattr(request.app.state, "driver", None)
    return {
        "status": "ok",
        "env": settings.ridtrack_env,
        "driver": "running" if driver is not None and driver.running else "stopped",
    }
