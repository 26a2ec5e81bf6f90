from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from geomerge.sim.grid import TILE_DEGREES, CellCoord, LatLng, cell_bounds, latlng_to_cell
from geomerge.sim.render import Handle, Renderer, cell_style
from geomerge.sim.store import CellStateStore

VIEWPORT_MARGIN = 1
DEFAULT_VIEW_RADIUS = 8


@dataclass(frozen=True)
class ViewRegion:
    south_west: LatLng
    north_east: LatLng

    def __post_init__(self) -> None:
        if self.south_west.lat > self.north_east.lat or self.south_west.lng > self.north_east.lng:
            raise ValueError("view region corners must be ordered south-west to north-east")

    @property
    def center(self) -> LatLng:
        return LatLng(
            (self.south_west.lat + self.north_east.lat) / 2.0,
            (self.south_west.lng + self.north_east.lng) / 2.0,
        )

    @property
    def span(self) -> tuple[float, float]:
        return (self.north_east.lat - self.south_west.lat, self.north_east.lng - self.south_west.lng)

    @classmethod
    def centered_on(cls, center: LatLng, lat_span: float, lng_span: float) -> "ViewRegion":
        return cls(
            south_west=LatLng(center.lat - lat_span / 2.0, center.lng - lng_span / 2.0),
            north_east=LatLng(center.lat + lat_span / 2.0, center.lng + lng_span / 2.0),
        )

    @classmethod
    def around_cells(cls, center: LatLng, half_width_cells: float, half_height_cells: float) -> "ViewRegion":
        return cls.centered_on(center, 2.0 * half_height_cells * TILE_DEGREES, 2.0 * half_width_cells * TILE_DEGREES)


def cells_in_region(region: ViewRegion, margin: int = VIEWPORT_MARGIN) -> set[CellCoord]:
    min_cell = latlng_to_cell(region.south_west.lat, region.south_west.lng)
    max_cell = latlng_to_cell(region.north_east.lat, region.north_east.lng)
    return {
        CellCoord(i, j)
        for i in range(min_cell.i - margin, max_cell.i + margin + 1)
        for j in range(min_cell.j - margin, max_cell.j + margin + 1)
    }


def cells_around(center: CellCoord, radius: int = DEFAULT_VIEW_RADIUS) -> set[CellCoord]:
    if radius < 0:
        raise ValueError("view radius must be >= 0")
    return {
        CellCoord(center.i + di, center.j + dj)
        for di in range(-radius, radius + 1)
        for dj in range(-radius, radius + 1)
    }


@dataclass
class RenderedCell:
    coord: CellCoord
    outline: Handle
    token: Handle | None
    has_token: bool
    value: int


@dataclass(frozen=True)
class ViewportDiff:
    created: tuple[CellCoord, ...] = ()
    evicted: tuple[CellCoord, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.created and not self.evicted


@dataclass
class ViewportManager:
    """Keeps the rendered cell set equal to the set the current view needs.

    Only the transient render set is owned here; cell states are read (and
    created on first sight) through the store.
    """

    cells: CellStateStore
    renderer: Renderer
    rendered: dict[CellCoord, RenderedCell] = field(default_factory=dict)

    def is_rendered(self, coord: CellCoord) -> bool:
        return coord in self.rendered

    def rendered_coords(self) -> set[CellCoord]:
        return set(self.rendered)

    def recompute(self, needed: Iterable[CellCoord]) -> ViewportDiff:
        needed_set = set(needed)
        created = sorted(coord for coord in needed_set if coord not in self.rendered)
        evicted = sorted(coord for coord in self.rendered if coord not in needed_set)
        for coord in created:
            self.rendered[coord] = self._draw(coord)
        for coord in evicted:
            self._erase(self.rendered.pop(coord))
        return ViewportDiff(created=tuple(created), evicted=tuple(evicted))

    def refresh(self, coord: CellCoord) -> None:
        rendered = self.rendered.get(coord)
        if rendered is None:
            return
        self._erase(rendered)
        self.rendered[coord] = self._draw(coord)

    def invalidate(self) -> ViewportDiff:
        evicted = sorted(self.rendered)
        for coord in evicted:
            self._erase(self.rendered.pop(coord))
        return ViewportDiff(evicted=tuple(evicted))

    def _draw(self, coord: CellCoord) -> RenderedCell:
        state = self.cells.get_or_create(coord)
        outline = self.renderer.draw_cell_outline(coord, cell_bounds(coord), cell_style(state))
        token = self.renderer.draw_token(coord, state.value) if state.has_token else None
        return RenderedCell(coord=coord, outline=outline, token=token, has_token=state.has_token, value=state.value)

    def _erase(self, rendered: RenderedCell) -> None:
        self.renderer.remove_handle(rendered.outline)
        if rendered.token is not None:
            self.renderer.remove_handle(rendered.token)
