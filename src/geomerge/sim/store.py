from __future__ import annotations

from typing import Iterable, Iterator

from geomerge.sim.grid import CellCoord, CellState, check_cell_state
from geomerge.sim.luck import roll_cell_state


class CellStateStore:
    """Authoritative coordinate -> cell state mapping.

    Entries are created once, on first access, from the seeded generator and
    are never deleted; iteration follows first-materialization order.
    """

    def __init__(self) -> None:
        self._cells: dict[CellCoord, CellState] = {}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, coord: object) -> bool:
        return coord in self._cells

    def get(self, coord: CellCoord) -> CellState | None:
        return self._cells.get(coord)

    def get_or_create(self, coord: CellCoord) -> CellState:
        existing = self._cells.get(coord)
        if existing is not None:
            return existing
        created = roll_cell_state(coord)
        self._cells[coord] = created
        return created

    def set(self, coord: CellCoord, state: CellState) -> None:
        check_cell_state(state)
        self._cells[coord] = state

    def items(self) -> Iterator[tuple[CellCoord, CellState]]:
        return iter(list(self._cells.items()))

    def clear(self) -> None:
        self._cells.clear()

    def restore(self, entries: Iterable[tuple[CellCoord, CellState]]) -> None:
        restored: dict[CellCoord, CellState] = {}
        for coord, state in entries:
            check_cell_state(state)
            if coord in restored:
                raise ValueError(f"duplicate cell entry: {coord.key()}")
            restored[coord] = state
        self._cells = restored

    def to_list(self) -> list[list[object]]:
        return [[coord.key(), state.to_dict()] for coord, state in self._cells.items()]
