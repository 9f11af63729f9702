"""Normalize heterogeneous RID observations into canonical Aircraft records."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
from typing import Any, Iterable, Mapping

from ridtrack.models.aircraft import Aircraft

logger = logging.getLogger("ridtrack.tracking.normalizer")

# Raw altitudes above this magnitude are reported in millimeters.
ALTITUDE_MM_THRESHOLD = 5000.0
# Numeric timestamps above this magnitude are epoch milliseconds.
EPOCH_MS_THRESHOLD = 1e11

OrderKey = tuple[int, Any]


def _to_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _first_number(*candidates: Any) -> float | None:
    for candidate in candidates:
        number = _to_number(candidate)
        if number is not None:
            return number
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _parse_timestamp(raw_ts: Any) -> datetime | None:
    if raw_ts is None or raw_ts == "":
        return None
    try:
        if isinstance(raw_ts, (int, float)) and not isinstance(raw_ts, bool):
            seconds = raw_ts / 1000.0 if abs(raw_ts) > EPOCH_MS_THRESHOLD else raw_ts
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        if isinstance(raw_ts, str):
            if raw_ts.endswith("Z"):
                raw_ts = raw_ts[:-1] + "+00:00"
            parsed = datetime.fromisoformat(raw_ts)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
    except (OverflowError, OSError, ValueError):
        logger.debug("Failed to parse RID timestamp: %s", raw_ts)
    return None


def _order_key(raw_ts: Any, parsed: datetime | None) -> OrderKey | None:
    """Sort key for duplicate resolution; parsed times outrank opaque raw values."""

    if parsed is not None:
        return (1, parsed.timestamp())
    if raw_ts is None or raw_ts == "":
        return None
    return (0, str(raw_ts))


def _normalize_altitude(raw: float | None) -> float | None:
    if raw is None:
        return None
    return raw / 1000.0 if abs(raw) > ALTITUDE_MM_THRESHOLD else raw


def _normalize(observation: Mapping[str, Any]) -> tuple[Aircraft, OrderKey | None] | None:
    metadata = _mapping(observation.get("metadata"))
    current_state = _mapping(metadata.get("current_state") or metadata.get("currentState"))
    position = _mapping(current_state.get("position"))

    lat = _first_number(observation.get("latitude_dd"), observation.get("lat_dd"), position.get("lat"))
    lon = _first_number(
        observation.get("longitude_dd"),
        observation.get("lon_dd"),
        position.get("lng"),
        position.get("lon"),
    )
    if lat is None or lon is None:
        return None

    aircraft_id = (
        observation.get("icao_address")
        or metadata.get("id")
        or observation.get("session_id")
        or observation.get("id")
        or "unknown"
    )
    raw_timestamp = (
        observation.get("updated_at")
        or observation.get("created_at")
        or current_state.get("timestamp")
    )

    timestamp = _parse_timestamp(raw_timestamp)
    aircraft = Aircraft(
        id=str(aircraft_id),
        lat=lat,
        lon=lon,
        altitude_m=_normalize_altitude(
            _first_number(observation.get("altitude_mm"), position.get("alt"))
        ),
        speed_mps=_first_number(
            current_state.get("speed"), metadata.get("speed_mps"), metadata.get("speed")
        ),
        heading_deg=_first_number(
            current_state.get("track"), metadata.get("heading_deg"), metadata.get("heading")
        ),
        timestamp=timestamp,
    )
    return aircraft, _order_key(raw_timestamp, timestamp)


def normalize_observation(observation: Mapping[str, Any]) -> Aircraft | None:
    """Map one raw observation to an Aircraft, or None if it has no position."""

    normalized = _normalize(observation)
    return normalized[0] if normalized is not None else None


def normalize_observations(observations: Iterable[Any]) -> list[Aircraft]:
    """Normalize and de-duplicate observations by aircraft id.

    A later timestamp replaces an earlier or missing one; an entry without a
    timestamp never replaces an existing one. Timestamps that do not parse
    still order duplicates by their raw value, below any parsed time.
    Output keeps first-seen id order.
    """

    by_id: dict[str, tuple[Aircraft, OrderKey | None]] = {}
    dropped = 0
    for observation in observations:
        if not isinstance(observation, Mapping):
            dropped += 1
            continue
        normalized = _normalize(observation)
        if normalized is None:
            dropped += 1
            continue

        aircraft, key = normalized
        existing = by_id.get(aircraft.id)
        if existing is None:
            by_id[aircraft.id] = normalized
        elif key is not None and (existing[1] is None or key > existing[1]):
            by_id[aircraft.id] = normalized

    if dropped:
        logger.debug("Dropped %s observations without a usable position", dropped)
    return [aircraft for aircraft, _ in by_id.values()]


__all__ = [
    "ALTITUDE_MM_THRESHOLD",
    "EPOCH_MS_THRESHOLD",
    "normalize_observation",
    "normalize_observations",
]
