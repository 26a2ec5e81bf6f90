from __future__ import annotations

import hashlib

from geomerge.sim.grid import CellCoord, CellState

TOKEN_PROBABILITY = 0.5
INITIAL_VALUE_TIERS: tuple[tuple[float, int], ...] = (
    (0.01, 8),
    (0.05, 4),
    (0.25, 2),
)
BASE_TOKEN_VALUE = 1


def luck(seed: str) -> float:
    """Map a string seed to a reproducible float in [0, 1)."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False) / 2**64


def initial_token_value(coord: CellCoord) -> int:
    roll = luck(f"value-{coord.key()}")
    for threshold, value in INITIAL_VALUE_TIERS:
        if roll < threshold:
            return value
    return BASE_TOKEN_VALUE


def roll_cell_state(coord: CellCoord) -> CellState:
    return CellState(
        has_token=luck(f"token-{coord.key()}") < TOKEN_PROBABILITY,
        value=initial_token_value(coord),
    )
