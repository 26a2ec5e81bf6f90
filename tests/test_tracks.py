from pathlib import Path

import pytest

from geomerge.content.tracks import TrackPlayback, load_track_json, parse_track
from geomerge.sim.grid import LatLng
from geomerge.sim.movement import ManualPositionSource


def test_parse_track_accepts_pairs_and_objects() -> None:
    points = parse_track({"points": [[1.0, 2.0], {"lat": -3, "lng": 4.5}]})

    assert points == [LatLng(1.0, 2.0), LatLng(-3.0, 4.5)]


@pytest.mark.parametrize(
    "payload",
    [
        {"points": "nope"},
        [[1.0]],
        [{"lat": 1.0}],
        [[True, 2.0]],
        [["1", 2.0]],
        [[91.0, 0.0]],
        [[0.0, 181.0]],
    ],
)
def test_parse_track_rejects_bad_points(payload) -> None:
    with pytest.raises(ValueError):
        parse_track(payload)


def test_bundled_example_track_loads() -> None:
    points = load_track_json(Path(__file__).resolve().parents[1] / "content" / "examples" / "campus_walk.json")

    assert len(points) >= 2


def test_playback_emits_each_fix_once() -> None:
    source = ManualPositionSource()
    received: list[tuple[float, float]] = []
    source.subscribe(lambda lat, lng: received.append((lat, lng)))
    playback = TrackPlayback([LatLng(1.0, 2.0), LatLng(3.0, 4.0)])

    assert playback.advance(source) == LatLng(1.0, 2.0)
    assert playback.advance(source) == LatLng(3.0, 4.0)
    assert playback.advance(source) is None
    assert playback.finished
    assert received == [(1.0, 2.0), (3.0, 4.0)]
