"""Server-side RID subscription lifecycle with single-flight renewal."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Callable, Optional

from ridtrack.config import settings
from ridtrack.ingestors.rid import FeedError, RIDFeedClient
from ridtrack.models.geo import ViewportBounds
from ridtrack.tracking.viewport import ViewportTracker, to_view_param

logger = logging.getLogger("ridtrack.tracking.subscription")


class SubscriptionState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    ACTIVE = "active"


@dataclass
class Subscription:
    """Backend subscription handle plus the viewport it was created for."""

    subscription_id: str
    created_at: float
    bounds: ViewportBounds


class SubscriptionManager:
    """Create, reuse and renew the viewport subscription.

    At most one subscription request is in flight at a time. Callers that need
    a renewal while one is outstanding await the same task and receive the
    same handle.
    """

    def __init__(
        self,
        feed: RIDFeedClient,
        tracker: ViewportTracker,
        *,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.feed = feed
        self.tracker = tracker
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.subscription_ttl
        self.clock = clock
        self.subscription: Optional[Subscription] = None
        self._pending: Optional[asyncio.Task] = None
        self.renewals = 0
        self.renewal_failures = 0
        self.expiries = 0

    @property
    def state(self) -> SubscriptionState:
        if self._pending is not None:
            return SubscriptionState.PENDING
        if self.subscription is not None:
            return SubscriptionState.ACTIVE
        return SubscriptionState.NONE

    @property
    def subscription_id(self) -> str | None:
        return self.subscription.subscription_id if self.subscription else None

    def needs_renewal(self, bounds: ViewportBounds, now: float | None = None) -> bool:
        if self.subscription is None:
            return True
        now = self.clock() if now is None else now
        if now - self.subscription.created_at > self.ttl_seconds:
            return True
        return self.tracker.has_moved(self.subscription.bounds, bounds)

    async def ensure_subscription(self, bounds: ViewportBounds) -> str | None:
        """Return a subscription handle valid for ``bounds``, renewing if needed.

        ``None`` means no subscription is available this cycle.
        """

        if not self.needs_renewal(bounds):
            return self.subscription_id
        return await self._renew(bounds)

    async def acquire(self, bounds: ViewportBounds) -> str | None:
        """Return the current handle, creating one only when none exists."""

        if self._pending is not None:
            return await asyncio.shield(self._pending)
        if self.subscription is not None:
            return self.subscription.subscription_id
        return await self._renew(bounds)

    def invalidate(self, subscription_id: str) -> bool:
        """Forget the subscription after the backend reported it gone.

        Responses for a handle that has already been replaced are ignored.
        """

        if self.subscription is None or self.subscription.subscription_id != subscription_id:
            return False
        logger.info("RID subscription %s expired on backend; will renew", subscription_id)
        self.subscription = None
        self.expiries += 1
        return True

    async def close(self) -> None:
        task = self._pending
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._pending = None

    async def _renew(self, bounds: ViewportBounds) -> str | None:
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._request_subscription(bounds))
        else:
            logger.debug("Joining in-flight RID subscription request")
        return await asyncio.shield(self._pending)

    async def _request_subscription(self, bounds: ViewportBounds) -> str | None:
        requested_at = self.clock()
        try:
            subscription_id = await self.feed.create_subscription(to_view_param(bounds))
        except FeedError as exc:
            logger.warning("RID subscription renewal failed: %s", exc)
            self.subscription = None
            self.renewal_failures += 1
            return None
        finally:
            self._pending = None

        self.subscription = Subscription(
            subscription_id=subscription_id, created_at=requested_at, bounds=bounds
        )
        self.renewals += 1
        logger.info("RID subscription %s active", subscription_id)
        return subscription_id


__all__ = ["Subscription", "SubscriptionManager", "SubscriptionState"]
