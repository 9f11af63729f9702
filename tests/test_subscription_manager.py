import asyncio

import httpx
import pytest

from ridtrack.ingestors.rid import RIDFeedClient
from ridtrack.models.geo import GeoPoint, ViewportBounds
from ridtrack.tracking.subscription import SubscriptionManager, SubscriptionState
from ridtrack.tracking.viewport import ViewportTracker

BOUNDS = ViewportBounds(south=33.68, west=-117.83, north=33.70, east=-117.81)


class SubscriptionBackend:
    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        await self.release.wait()
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="backend down")
        return httpx.Response(
            200,
            json={"dss_subscription_response": {"dss_subscription_id": f"sub-{len(self.requests)}"}},
        )


def _manager(backend: SubscriptionBackend, clock) -> SubscriptionManager:
    feed = RIDFeedClient(
        base_url="https://rid.test", api_key="", transport=httpx.MockTransport(backend)
    )
    tracker = ViewportTracker(
        default_center=GeoPoint(lat=33.69, lon=-117.82), change_threshold_deg=0.01
    )
    return SubscriptionManager(feed, tracker, ttl_seconds=25.0, clock=clock)


@pytest.mark.anyio
async def test_concurrent_renewals_share_one_request(clock):
    backend = SubscriptionBackend()
    backend.release.clear()
    manager = _manager(backend, clock)

    first = asyncio.ensure_future(manager.ensure_subscription(BOUNDS))
    second = asyncio.ensure_future(manager.ensure_subscription(BOUNDS))
    await asyncio.sleep(0)
    assert manager.state is SubscriptionState.PENDING

    backend.release.set()
    results = await asyncio.gather(first, second)

    assert results == ["sub-1", "sub-1"]
    assert len(backend.requests) == 1
    assert manager.state is SubscriptionState.ACTIVE


@pytest.mark.anyio
async def test_subscription_reused_until_ttl_or_movement(clock):
    backend = SubscriptionBackend()
    manager = _manager(backend, clock)

    assert await manager.ensure_subscription(BOUNDS) == "sub-1"
    clock.advance(20)
    assert await manager.ensure_subscription(BOUNDS) == "sub-1"
    assert len(backend.requests) == 1

    clock.advance(6)
    assert await manager.ensure_subscription(BOUNDS) == "sub-2"

    moved = BOUNDS.model_copy(update={"north": BOUNDS.north + 0.02})
    assert await manager.ensure_subscription(moved) == "sub-3"
    assert manager.subscription.bounds == moved
    assert manager.renewals == 3


@pytest.mark.anyio
async def test_request_carries_serialized_view(clock):
    backend = SubscriptionBackend()
    manager = _manager(backend, clock)

    await manager.ensure_subscription(BOUNDS)

    request = backend.requests[0]
    assert request.method == "PUT"
    assert request.url.params["view"] == "33.680000,-117.830000,33.700000,-117.810000"


@pytest.mark.anyio
async def test_renewal_failure_leaves_no_subscription(clock):
    backend = SubscriptionBackend(status_code=502)
    manager = _manager(backend, clock)

    assert await manager.ensure_subscription(BOUNDS) is None
    assert manager.state is SubscriptionState.NONE
    assert manager.renewal_failures == 1

    backend.status_code = 200
    assert await manager.ensure_subscription(BOUNDS) == "sub-2"


@pytest.mark.anyio
async def test_invalidate_only_clears_current_handle(clock):
    backend = SubscriptionBackend()
    manager = _manager(backend, clock)
    await manager.ensure_subscription(BOUNDS)

    assert manager.invalidate("sub-old") is False
    assert manager.state is SubscriptionState.ACTIVE

    assert manager.invalidate("sub-1") is True
    assert manager.state is SubscriptionState.NONE
    assert manager.expiries == 1


@pytest.mark.anyio
async def test_acquire_reuses_existing_subscription(clock):
    backend = SubscriptionBackend()
    manager = _manager(backend, clock)

    assert await manager.acquire(BOUNDS) == "sub-1"
    clock.advance(60)
    assert await manager.acquire(BOUNDS) == "sub-1"
    assert len(backend.requests) == 1


@pytest.mark.anyio
async def test_acquire_joins_in_flight_renewal(clock):
    backend = SubscriptionBackend()
    backend.release.clear()
    manager = _manager(backend, clock)

    renewal = asyncio.ensure_future(manager.ensure_subscription(BOUNDS))
    await asyncio.sleep(0)
    demo = asyncio.ensure_future(manager.acquire(BOUNDS))
    await asyncio.sleep(0)
    backend.release.set()

    assert await asyncio.gather(renewal, demo) == ["sub-1", "sub-1"]
    assert len(backend.requests) == 1
