from __future__ import annotations

import contextlib
import logging
import time

from fastapi import FastAPI, Request

from ridtrack.api import api_router
from ridtrack.config import settings
from ridtrack.ingestors import RIDFeedClient
from ridtrack.rendering import SceneRenderer
from ridtrack.tracking import RefreshDriver

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("ridtrack")


def build_driver() -> RefreshDriver:
    """Wire a refresh driver against the configured RID backend."""

    return RefreshDriver(feed=RIDFeedClient(), renderer=SceneRenderer())


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Own one tracking engine for the lifetime of the process."""

    driver = build_driver()
    app.state.driver = driver
    if settings.driver_enabled:
        await driver.start()
    else:
        logger.info("RID refresh loop disabled; refreshes run on request only")

    try:
        yield
    finally:
        await app.state.driver.stop()


app = FastAPI(title="RID Live Tracker", lifespan=lifespan)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log basic request information for observability."""

    start_time = time.time()
    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "HTTP %s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


app.include_router(api_router)


@app.get("/", summary="Root")
def read_root() -> dict[str, str]:
    """Basic root endpoint for quick verification."""

    return {"message": "RID live tracker is running"}
