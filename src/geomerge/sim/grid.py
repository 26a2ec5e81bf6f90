from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

TILE_DEGREES = 1e-4


class InvariantError(ValueError):
    """Raised when a token value would break the power-of-two invariant."""


def is_power_of_two(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value > 0 and value & (value - 1) == 0


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


ORIGIN = LatLng(36.997936938057016, -122.05703507501151)


@dataclass(frozen=True, order=True)
class CellCoord:
    """Grid address (i, j); i follows longitude, j follows latitude."""

    i: int
    j: int

    def key(self) -> str:
        return f"{self.i},{self.j}"

    @classmethod
    def from_key(cls, key: str) -> "CellCoord":
        if not isinstance(key, str):
            raise ValueError("cell key must be a string")
        parts = key.split(",")
        if len(parts) != 2:
            raise ValueError(f"invalid cell key: {key!r}")
        try:
            return cls(i=int(parts[0]), j=int(parts[1]))
        except ValueError as exc:
            raise ValueError(f"invalid cell key: {key!r}") from exc

    def offset(self, di: int, dj: int) -> "CellCoord":
        return CellCoord(self.i + di, self.j + dj)

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CellCoord":
        i = data["i"]
        j = data["j"]
        if isinstance(i, bool) or not isinstance(i, int) or isinstance(j, bool) or not isinstance(j, int):
            raise ValueError("cell coord i and j must be integers")
        return cls(i=i, j=j)


@dataclass(frozen=True)
class CellState:
    has_token: bool
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {"hasToken": self.has_token, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CellState":
        has_token = data["hasToken"]
        value = data["value"]
        if not isinstance(has_token, bool):
            raise ValueError("cell hasToken must be a boolean")
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("cell value must be an integer")
        return cls(has_token=has_token, value=value)


def check_cell_state(state: CellState) -> None:
    if state.has_token and state.value <= 0:
        raise InvariantError(f"occupied cell must carry a positive value, got {state.value}")
    if not is_power_of_two(state.value):
        raise InvariantError(f"cell value must be a power of two, got {state.value!r}")


def check_held_token(value: int | None) -> None:
    if value is not None and not is_power_of_two(value):
        raise InvariantError(f"held token must be a power of two, got {value!r}")


def latlng_to_cell(lat: float, lng: float) -> CellCoord:
    return CellCoord(
        i=math.floor(lng / TILE_DEGREES),
        j=math.floor(lat / TILE_DEGREES),
    )


def cell_bounds(coord: CellCoord) -> tuple[LatLng, LatLng]:
    """South-west and north-east corners of a cell."""
    lat = coord.j * TILE_DEGREES
    lng = coord.i * TILE_DEGREES
    return (LatLng(lat, lng), LatLng(lat + TILE_DEGREES, lng + TILE_DEGREES))


def cell_center(coord: CellCoord) -> LatLng:
    return LatLng((coord.j + 0.5) * TILE_DEGREES, (coord.i + 0.5) * TILE_DEGREES)


def chebyshev_distance(a: CellCoord, b: CellCoord) -> int:
    return max(abs(a.i - b.i), abs(a.j - b.j))
