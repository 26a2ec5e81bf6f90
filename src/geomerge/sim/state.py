from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from geomerge.sim.grid import ORIGIN, CellCoord, check_held_token, latlng_to_cell
from geomerge.sim.store import CellStateStore

DEFAULT_PLAYER_CELL = latlng_to_cell(ORIGIN.lat, ORIGIN.lng)


@dataclass
class PlayerState:
    cell: CellCoord = DEFAULT_PLAYER_CELL
    held_token: int | None = None

    def __post_init__(self) -> None:
        check_held_token(self.held_token)

    def to_dict(self) -> dict[str, Any]:
        return {"cell": self.cell.to_dict(), "heldToken": self.held_token}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerState":
        held_token = data["heldToken"]
        if held_token is not None and (isinstance(held_token, bool) or not isinstance(held_token, int)):
            raise ValueError("player heldToken must be an integer or null")
        return cls(cell=CellCoord.from_dict(data["cell"]), held_token=held_token)


@dataclass
class GameState:
    """Everything that survives a session: the player and every observed cell."""

    player: PlayerState = field(default_factory=PlayerState)
    cells: CellStateStore = field(default_factory=CellStateStore)

    def reset(self) -> None:
        self.player = PlayerState()
        self.cells.clear()

    def replace_with(self, other: "GameState") -> None:
        self.player = other.player
        self.cells.restore(other.cells.items())
