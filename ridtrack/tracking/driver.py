"""Periodic refresh driver tying viewport, subscription, feed, cache and scene together."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import Any, Callable, Optional

from ridtrack.config import settings
from ridtrack.ingestors.rid import FeedError, RIDFeedClient
from ridtrack.models.aircraft import Aircraft
from ridtrack.models.geo import ViewportBounds
from ridtrack.models.status import StatusLevel, TrackingCounters, TrackingStatus
from ridtrack.rendering import Renderer
from ridtrack.tracking.normalizer import normalize_observations
from ridtrack.tracking.reconciler import EntityReconciler, ReconcilePlan
from ridtrack.tracking.staleness import StalenessCache
from ridtrack.tracking.subscription import SubscriptionManager
from ridtrack.tracking.viewport import ViewportTracker, clamp

logger = logging.getLogger("ridtrack.tracking.driver")


@dataclass
class CycleResult:
    """Outcome of one refresh cycle."""

    aircraft: list[Aircraft]
    plan: ReconcilePlan
    status: TrackingStatus


class RefreshDriver:
    """Run refresh cycles on a fixed period and on demand.

    All state lives on this instance and its collaborators; cycles may overlap
    at network awaits without a lock because subscription renewal is
    single-flight and the cache only records last-seen times and snapshots.
    """

    def __init__(
        self,
        *,
        feed: RIDFeedClient,
        renderer: Renderer,
        tracker: Optional[ViewportTracker] = None,
        cache: Optional[StalenessCache] = None,
        subscriptions: Optional[SubscriptionManager] = None,
        reconciler: Optional[EntityReconciler] = None,
        interval: float | None = None,
        demo_followup_delay: float | None = None,
        focus_buffer_deg: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_status: Callable[[TrackingStatus], Any] | None = None,
    ) -> None:
        self.feed = feed
        self.renderer = renderer
        self.tracker = tracker if tracker is not None else ViewportTracker(renderer)
        self.cache = cache if cache is not None else StalenessCache(clock=clock)
        self.subscriptions = (
            subscriptions
            if subscriptions is not None
            else SubscriptionManager(feed, self.tracker, clock=clock)
        )
        self.reconciler = (
            reconciler if reconciler is not None else EntityReconciler(renderer, self.cache)
        )
        self.interval = interval if interval is not None else settings.refresh_interval
        self.demo_followup_delay = (
            demo_followup_delay
            if demo_followup_delay is not None
            else settings.demo_followup_delay
        )
        self.focus_buffer_deg = (
            focus_buffer_deg if focus_buffer_deg is not None else settings.focus_buffer_deg
        )
        self.on_status = on_status

        self.status = TrackingStatus()
        self.displayed: list[Aircraft] = []
        self.auto_focus_done = False
        self.feed_errors = 0
        self._demo_in_flight = False
        self._task: Optional[asyncio.Task] = None
        self._followups: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run())
        logger.info("RID refresh driver started (every %.1fs)", self.interval)

    async def stop(self) -> None:
        tasks = list(self._followups)
        if self._task is not None:
            tasks.append(self._task)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None
        self._followups.clear()
        await self.subscriptions.close()
        logger.info("RID refresh driver stopped")

    async def run(self) -> None:
        """Refresh immediately and then once per interval until cancelled."""

        while True:
            await self._safe_refresh()
            await asyncio.sleep(self.interval)

    async def _safe_refresh(self) -> None:
        try:
            await self.refresh_now()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pragma: no cover - defensive logging
            logger.warning("RID refresh cycle failed: %s", exc, exc_info=True)

    async def refresh_now(self) -> CycleResult:
        """Run one viewport -> subscription -> feed -> cache -> scene cycle."""

        bounds = self.tracker.compute_bounds()
        subscription_id = await self.subscriptions.ensure_subscription(bounds)
        if subscription_id is None:
            stale = self.cache.stale_snapshot()
            return self._display(
                stale,
                StatusLevel.ERROR,
                "Remote ID subscription unavailable",
                stale=bool(stale),
            )

        try:
            observations = await self.feed.fetch_observations(subscription_id)
        except FeedError as exc:
            if self._overtaken(subscription_id):
                return self._unchanged()
            self.feed_errors += 1
            logger.warning("RID feed query failed; showing last known traffic: %s", exc)
            stale = self.cache.stale_snapshot()
            return self._display(
                stale, StatusLevel.ERROR, "Remote ID connection failed", stale=bool(stale)
            )

        if observations is None:
            if not self.subscriptions.invalidate(subscription_id):
                return self._unchanged()
            stale = self.cache.stale_snapshot()
            return self._display(
                stale,
                StatusLevel.CONNECTING,
                "Refreshing Remote ID subscription...",
                stale=bool(stale),
            )

        if self._overtaken(subscription_id):
            return self._unchanged()

        aircraft = normalize_observations(observations)
        self.cache.update(aircraft)
        if aircraft:
            return self._display(
                aircraft, StatusLevel.CONNECTED, f"{len(aircraft)} aircraft tracked"
            )

        stale = self.cache.stale_snapshot()
        if stale:
            return self._display(
                stale,
                StatusLevel.CONNECTED,
                "Connected - showing last known RID traffic",
                stale=True,
            )
        return self._display([], StatusLevel.CONNECTED, "Connected - no RID traffic in view")

    async def seed_demo_traffic(self) -> bool:
        """Inject synthetic traffic around the view centre and refresh shortly after."""

        if self._demo_in_flight:
            logger.debug("Demo RID injection already in flight")
            return False

        self._demo_in_flight = True
        self._set_status(StatusLevel.CONNECTING, "Seeding demo RID traffic...")
        try:
            center = self.tracker.view_center()
            subscription_id = await self.subscriptions.acquire(self.tracker.compute_bounds())
            if subscription_id is None:
                raise FeedError("No subscription available for demo injection")
            await self.feed.inject_demo_traffic(center, subscription_id)
        except FeedError as exc:
            logger.warning("Demo RID injection failed: %s", exc)
            self._set_status(StatusLevel.ERROR, "Demo RID injection failed")
            return False
        finally:
            self._demo_in_flight = False

        self._set_status(StatusLevel.CONNECTED, "Demo RID traffic injected")
        self._schedule_followup()
        return True

    def select_tracked(self, aircraft_id: str) -> bool:
        """Focus an aircraft and fly the camera to it; False for unknown ids."""

        return self.reconciler.select(aircraft_id)

    @property
    def selected_id(self) -> str | None:
        return self.reconciler.selected_id

    def _schedule_followup(self) -> None:
        task = asyncio.create_task(self._followup())
        self._followups.add(task)
        task.add_done_callback(self._followups.discard)

    async def _followup(self) -> None:
        await asyncio.sleep(self.demo_followup_delay)
        await self._safe_refresh()

    def _overtaken(self, subscription_id: str) -> bool:
        if self.subscriptions.subscription_id == subscription_id:
            return False
        logger.debug("Dropping RID response for replaced subscription %s", subscription_id)
        return True

    def _unchanged(self) -> CycleResult:
        return CycleResult(aircraft=self.displayed, plan=ReconcilePlan(), status=self.status)

    def _display(
        self,
        aircraft: list[Aircraft],
        level: StatusLevel,
        message: str,
        *,
        stale: bool = False,
    ) -> CycleResult:
        plan = self.reconciler.reconcile(aircraft)
        self.displayed = aircraft
        self._set_status(level, message, stale=stale, tracked_count=len(aircraft))
        if aircraft and not self.auto_focus_done:
            self._focus_on(aircraft)
        return CycleResult(aircraft=aircraft, plan=plan, status=self.status)

    def _focus_on(self, aircraft: list[Aircraft]) -> None:
        buffer = self.focus_buffer_deg
        lats = [entry.lat for entry in aircraft]
        lons = [entry.lon for entry in aircraft]
        target = ViewportBounds(
            south=clamp(min(lats) - buffer, -90.0, 90.0),
            west=clamp(min(lons) - buffer, -180.0, 180.0),
            north=clamp(max(lats) + buffer, -90.0, 90.0),
            east=clamp(max(lons) + buffer, -180.0, 180.0),
        )
        self.renderer.fly_to(target)
        self.auto_focus_done = True
        logger.info("Focused camera on %s tracked aircraft", len(aircraft))

    def _counters(self) -> TrackingCounters:
        return TrackingCounters(
            viewport_substitutions=self.tracker.substitutions,
            subscription_expiries=self.subscriptions.expiries,
            feed_errors=self.feed_errors,
            renewals=self.subscriptions.renewals,
            renewal_failures=self.subscriptions.renewal_failures,
        )

    def _set_status(self, level: StatusLevel, message: str, **changes: Any) -> None:
        self.status = self.status.model_copy(
            update={
                "level": level,
                "message": message,
                "updated_at": datetime.now(tz=timezone.utc),
                "counters": self._counters(),
                **changes,
            }
        )
        if self.on_status is not None:
            self.on_status(self.status)


__all__ = ["CycleResult", "RefreshDriver"]
