from __future__ import annotations

import itertools
from dataclasses import dataclass

from geomerge.sim.grid import CellCoord, CellState, LatLng

Handle = int


@dataclass(frozen=True)
class CellStyle:
    color: str
    fill_opacity: float


OCCUPIED_STYLE = CellStyle(color="lightgreen", fill_opacity=0.3)
EMPTY_STYLE = CellStyle(color="gray", fill_opacity=0.05)


def cell_style(state: CellState) -> CellStyle:
    return OCCUPIED_STYLE if state.has_token else EMPTY_STYLE


class Renderer:
    """Render boundary called by the game core.

    The base implementation draws nothing; front ends override the hooks they
    support. Draw calls return opaque handles that are later passed back to
    ``remove_handle``.
    """

    def __init__(self) -> None:
        self._handles = itertools.count(1)

    def next_handle(self) -> Handle:
        return next(self._handles)

    def draw_cell_outline(self, coord: CellCoord, bounds: tuple[LatLng, LatLng], style: CellStyle) -> Handle:
        return self.next_handle()

    def draw_token(self, coord: CellCoord, value: int) -> Handle:
        return self.next_handle()

    def remove_handle(self, handle: Handle) -> None:
        """Remove a previously drawn outline or token."""

    def set_player_marker(self, position: LatLng) -> None:
        """Move the player marker."""

    def set_range_indicator(self, position: LatLng, radius_cells: int) -> None:
        """Move the interaction-radius indicator."""

    def pan_to(self, position: LatLng) -> None:
        """Recenter the view."""

    def set_status(self, text: str) -> None:
        """Show the held-token status line."""
