"""Last-seen bookkeeping that bridges transient gaps in the RID feed."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Iterable

from ridtrack.config import settings
from ridtrack.models.aircraft import Aircraft

logger = logging.getLogger("ridtrack.tracking.staleness")


@dataclass
class TrackedEntry:
    """Last observation of a tracked aircraft."""

    last_seen_at: float
    aircraft: Aircraft


class StalenessCache:
    """Remember when each aircraft was last observed and the last full snapshot.

    Staleness is applied when reading, so :meth:`stale_snapshot` has no side
    effects and overlapping refresh cycles can share one cache.
    """

    def __init__(
        self,
        *,
        window_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.stale_entity_seconds
        )
        self.clock = clock
        self._entries: dict[str, TrackedEntry] = {}
        self._snapshot: list[Aircraft] = []

    def update(self, aircraft: Iterable[Aircraft]) -> None:
        """Mark every aircraft as seen now; a non-empty list also becomes the snapshot."""

        aircraft = list(aircraft)
        now = self.clock()
        for entry in aircraft:
            self._entries[entry.id] = TrackedEntry(last_seen_at=now, aircraft=entry)
        if aircraft:
            self._snapshot = aircraft

    def last_seen(self, aircraft_id: str) -> float | None:
        entry = self._entries.get(aircraft_id)
        return entry.last_seen_at if entry else None

    def is_stale(self, aircraft_id: str, now: float | None = None) -> bool:
        last_seen = self.last_seen(aircraft_id)
        if last_seen is None:
            return True
        now = self.clock() if now is None else now
        return now - last_seen >= self.window_seconds

    def stale_snapshot(self) -> list[Aircraft]:
        """Return the last snapshot minus aircraft unseen for the whole window."""

        now = self.clock()
        return [entry for entry in self._snapshot if not self.is_stale(entry.id, now)]

    def forget(self, aircraft_id: str) -> None:
        """Drop last-seen bookkeeping for an aircraft whose entity was removed."""

        self._entries.pop(aircraft_id, None)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["StalenessCache", "TrackedEntry"]
