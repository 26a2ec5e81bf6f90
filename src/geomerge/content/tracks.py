from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from geomerge.sim.grid import LatLng


def _parse_point(value: Any, *, index: int) -> LatLng:
    if isinstance(value, dict):
        if "lat" not in value or "lng" not in value:
            raise ValueError(f"track[{index}] missing lat or lng")
        lat, lng = value["lat"], value["lng"]
    elif isinstance(value, list) and len(value) == 2:
        lat, lng = value
    else:
        raise ValueError(f"track[{index}] must be {{lat, lng}} or [lat, lng]")
    for name, number in (("lat", lat), ("lng", lng)):
        if isinstance(number, bool) or not isinstance(number, (int, float)):
            raise ValueError(f"track[{index}].{name} must be numeric")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"track[{index}].lat out of range: {lat}")
    if not -180.0 <= lng <= 180.0:
        raise ValueError(f"track[{index}].lng out of range: {lng}")
    return LatLng(float(lat), float(lng))


def parse_track(payload: Any) -> list[LatLng]:
    """Recorded GPS fixes, either a bare list or ``{"points": [...]}``."""
    points = payload.get("points") if isinstance(payload, dict) else payload
    if not isinstance(points, list):
        raise ValueError("track must be a list of points")
    return [_parse_point(point, index=index) for index, point in enumerate(points)]


def load_track_json(path: str | Path) -> list[LatLng]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_track(payload)


class TrackPlayback:
    """Feeds recorded fixes into a position source one at a time."""

    def __init__(self, points: list[LatLng]) -> None:
        self.points = list(points)
        self.index = 0

    @property
    def finished(self) -> bool:
        return self.index >= len(self.points)

    def advance(self, source: Any) -> LatLng | None:
        if self.finished:
            return None
        point = self.points[self.index]
        self.index += 1
        source.emit(point.lat, point.lng)
        return point
