from __future__ import annotations

from dataclasses import dataclass

from geomerge.sim.grid import CellCoord, CellState, check_held_token, chebyshev_distance
from geomerge.sim.state import GameState

INTERACTION_RADIUS = 3
WIN_VALUE = 16

OUTCOME_OUT_OF_RANGE = "out_of_range"
OUTCOME_NOTHING = "nothing"
OUTCOME_PICKUP = "pickup"
OUTCOME_DROP = "drop"
OUTCOME_MERGE = "merge"
OUTCOME_BLOCKED = "blocked"
STATE_CHANGING_OUTCOMES = frozenset({OUTCOME_PICKUP, OUTCOME_DROP, OUTCOME_MERGE})


@dataclass(frozen=True)
class InteractionResult:
    outcome: str
    cell: CellState | None
    held_token: int | None

    @property
    def changed(self) -> bool:
        return self.outcome in STATE_CHANGING_OUTCOMES


def resolve_interaction(
    cell: CellState,
    held_token: int | None,
    *,
    distance: int,
    radius: int = INTERACTION_RADIUS,
) -> InteractionResult:
    """Pure transition table for one click; returns the next cell and held token."""
    if distance > radius:
        return InteractionResult(OUTCOME_OUT_OF_RANGE, cell, held_token)

    if held_token is None:
        if not cell.has_token:
            return InteractionResult(OUTCOME_NOTHING, cell, held_token)
        return InteractionResult(OUTCOME_PICKUP, CellState(has_token=False, value=cell.value), cell.value)

    if not cell.has_token:
        return InteractionResult(OUTCOME_DROP, CellState(has_token=True, value=held_token), None)
    if cell.value == held_token:
        return InteractionResult(OUTCOME_MERGE, CellState(has_token=False, value=cell.value), held_token * 2)
    return InteractionResult(OUTCOME_BLOCKED, cell, held_token)


def has_won(held_token: int | None, win_value: int = WIN_VALUE) -> bool:
    return held_token is not None and held_token >= win_value


def format_status(held_token: int | None, win_value: int = WIN_VALUE) -> str:
    text = "Holding: —" if held_token is None else f"Holding: {held_token}"
    if has_won(held_token, win_value):
        text += " 🎉 YOU WIN!"
    return text


class InteractionEngine:
    """Applies click transitions to the store and the player's held token."""

    def __init__(self, state: GameState, *, radius: int = INTERACTION_RADIUS) -> None:
        if radius < 0:
            raise ValueError("interaction radius must be >= 0")
        self.state = state
        self.radius = radius

    def click(self, coord: CellCoord) -> InteractionResult:
        player = self.state.player
        distance = chebyshev_distance(coord, player.cell)
        if distance > self.radius:
            return InteractionResult(OUTCOME_OUT_OF_RANGE, self.state.cells.get(coord), player.held_token)
        result = resolve_interaction(
            self.state.cells.get_or_create(coord),
            player.held_token,
            distance=distance,
            radius=self.radius,
        )
        if not result.changed:
            return result

        check_held_token(result.held_token)
        self.state.cells.set(coord, result.cell)
        player.held_token = result.held_token
        return result
