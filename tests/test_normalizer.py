from datetime import datetime, timezone

import pytest

from ridtrack.tracking.normalizer import normalize_observation, normalize_observations


def test_later_timestamp_wins_for_duplicate_ids():
    observations = [
        {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": "2024-05-03T19:40:00Z"},
        {"id": "A", "lat_dd": 11, "lon_dd": 21, "updated_at": "2024-05-03T19:40:05Z"},
    ]

    aircraft = normalize_observations(observations)

    assert len(aircraft) == 1
    assert aircraft[0].id == "A"
    assert aircraft[0].lat == 11
    assert aircraft[0].lon == 21
    assert aircraft[0].timestamp == datetime(2024, 5, 3, 19, 40, 5, tzinfo=timezone.utc)


def test_earlier_duplicate_does_not_replace_later_one():
    observations = [
        {"id": "A", "lat_dd": 11, "lon_dd": 21, "updated_at": "2024-05-03T19:40:05Z"},
        {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": "2024-05-03T19:40:00Z"},
    ]

    aircraft = normalize_observations(observations)

    assert [(a.lat, a.lon) for a in aircraft] == [(11, 21)]


def test_null_timestamp_never_wins_regardless_of_order():
    timed = {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": "2024-05-03T19:40:00Z"}
    untimed = {"id": "A", "lat_dd": 50, "lon_dd": 60}

    assert normalize_observations([timed, untimed])[0].lat == 10
    assert normalize_observations([untimed, timed])[0].lat == 10


def test_first_untimed_entry_kept_when_all_duplicates_untimed():
    observations = [
        {"id": "A", "lat_dd": 1, "lon_dd": 2},
        {"id": "A", "lat_dd": 3, "lon_dd": 4},
    ]

    assert [(a.lat, a.lon) for a in normalize_observations(observations)] == [(1, 2)]


def test_records_without_position_are_dropped():
    observations = [
        {"id": "A", "lat_dd": 10},
        {"id": "B", "lon_dd": 20},
        {"id": "C", "lat_dd": "n/a", "lon_dd": 20},
        "not-a-record",
        {"id": "D", "lat_dd": 1, "lon_dd": 2},
    ]

    assert [a.id for a in normalize_observations(observations)] == ["D"]


def test_nested_current_state_shape():
    observation = {
        "session_id": "sess-1",
        "created_at": "2024-05-03T19:40:00+00:00",
        "metadata": {
            "current_state": {
                "position": {"lat": "33.7", "lng": "-117.8", "alt": 120.5},
                "speed": 12.5,
                "track": 270,
            }
        },
    }

    aircraft = normalize_observation(observation)

    assert aircraft is not None
    assert aircraft.id == "sess-1"
    assert aircraft.lat == pytest.approx(33.7)
    assert aircraft.lon == pytest.approx(-117.8)
    assert aircraft.altitude_m == pytest.approx(120.5)
    assert aircraft.speed_mps == 12.5
    assert aircraft.heading_deg == 270


def test_camel_case_state_and_metadata_fallbacks():
    observation = {
        "metadata": {
            "id": "meta-7",
            "speed_mps": 4.0,
            "heading": 90,
            "currentState": {"position": {"lat": 1.5, "lon": 2.5}},
        },
    }

    aircraft = normalize_observation(observation)

    assert aircraft is not None
    assert aircraft.id == "meta-7"
    assert (aircraft.lat, aircraft.lon) == (1.5, 2.5)
    assert aircraft.speed_mps == 4.0
    assert aircraft.heading_deg == 90
    assert aircraft.altitude_m is None
    assert aircraft.timestamp is None


def test_millimeter_altitudes_are_converted():
    high = normalize_observation({"id": "A", "lat_dd": 0, "lon_dd": 0, "altitude_mm": 120000})
    low = normalize_observation({"id": "B", "lat_dd": 0, "lon_dd": 0, "altitude_mm": 4500})

    assert high.altitude_m == pytest.approx(120.0)
    assert low.altitude_m == pytest.approx(4500.0)


def test_identity_prefers_hardware_address_and_falls_back_to_unknown():
    with_icao = normalize_observation(
        {"icao_address": "ABC123", "session_id": "s", "id": 9, "lat_dd": 0, "lon_dd": 0}
    )
    anonymous = normalize_observation({"lat_dd": 0, "lon_dd": 0})
    numeric = normalize_observation({"id": 42, "lat_dd": 0, "lon_dd": 0})

    assert with_icao.id == "ABC123"
    assert anonymous.id == "unknown"
    assert numeric.id == "42"


def test_zero_coordinates_are_valid_positions():
    aircraft = normalize_observation({"id": "Z", "latitude_dd": 0, "longitude_dd": 0.0})

    assert aircraft is not None
    assert (aircraft.lat, aircraft.lon) == (0.0, 0.0)


def test_output_never_contains_duplicate_ids_and_keeps_first_seen_order():
    observations = [
        {"id": "B", "lat_dd": 1, "lon_dd": 1, "updated_at": "2024-01-01T00:00:00Z"},
        {"id": "A", "lat_dd": 2, "lon_dd": 2},
        {"id": "B", "lat_dd": 3, "lon_dd": 3, "updated_at": "2024-01-01T00:00:09Z"},
        {"id": "C", "lat_dd": 4, "lon_dd": 4, "updated_at": 1704067200},
        {"id": "A", "lat_dd": 5, "lon_dd": 5, "updated_at": "2024-01-01T00:00:01"},
    ]

    aircraft = normalize_observations(observations)
    ids = [a.id for a in aircraft]

    assert ids == ["B", "A", "C"]
    assert len(ids) == len(set(ids))
    assert aircraft[0].lat == 3
    assert aircraft[1].lat == 5


def test_epoch_millisecond_timestamps_order_duplicates():
    observations = [
        {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": 1714765200000},
        {"id": "A", "lat_dd": 11, "lon_dd": 21, "updated_at": 1714765205000},
        {"id": "A", "lat_dd": 12, "lon_dd": 22, "updated_at": 1714765201000},
    ]

    aircraft = normalize_observations(observations)

    assert [(a.lat, a.lon) for a in aircraft] == [(11, 21)]
    assert aircraft[0].timestamp == datetime(2024, 5, 3, 19, 40, 5, tzinfo=timezone.utc)


def test_epoch_seconds_and_milliseconds_agree():
    seconds = normalize_observation({"id": "A", "lat_dd": 0, "lon_dd": 0, "updated_at": 1714765205})
    millis = normalize_observation({"id": "A", "lat_dd": 0, "lon_dd": 0, "updated_at": 1714765205000})

    assert seconds.timestamp == millis.timestamp


def test_opaque_timestamps_still_order_duplicates():
    first = {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": "t1"}
    second = {"id": "A", "lat_dd": 11, "lon_dd": 21, "updated_at": "t2"}

    for observations in ([first, second], [second, first]):
        aircraft = normalize_observations(observations)
        assert [(a.lat, a.lon) for a in aircraft] == [(11, 21)]
        assert aircraft[0].timestamp is None


def test_parsed_timestamp_outranks_opaque_one():
    opaque = {"id": "A", "lat_dd": 10, "lon_dd": 20, "updated_at": "zzz"}
    parsed = {"id": "A", "lat_dd": 11, "lon_dd": 21, "updated_at": "2024-05-03T19:40:05Z"}
    untimed = {"id": "A", "lat_dd": 12, "lon_dd": 22}

    assert normalize_observations([opaque, parsed])[0].lat == 11
    assert normalize_observations([parsed, opaque])[0].lat == 11
    assert normalize_observations([untimed, opaque])[0].lat == 10
    assert normalize_observations([opaque, untimed])[0].lat == 10
