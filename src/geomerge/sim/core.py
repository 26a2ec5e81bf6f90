from __future__ import annotations

from dataclasses import dataclass

from geomerge.content.io import SAVE_KEY, BlobStore, MemoryBlobStore, PersistenceAdapter
from geomerge.sim.diagnostics import report
from geomerge.sim.grid import CellCoord, InvariantError, cell_center
from geomerge.sim.interactions import (
    INTERACTION_RADIUS,
    WIN_VALUE,
    InteractionEngine,
    InteractionResult,
    format_status,
)
from geomerge.sim.movement import (
    BUTTONS_STRATEGY,
    GEOLOCATION_STRATEGY,
    ContinuousPositionStrategy,
    DiscreteStepStrategy,
    ManualPositionSource,
    MovementFacade,
    PositionSource,
)
from geomerge.sim.render import Renderer
from geomerge.sim.state import GameState
from geomerge.sim.viewport import (
    DEFAULT_VIEW_RADIUS,
    VIEWPORT_MARGIN,
    ViewportDiff,
    ViewportManager,
    ViewRegion,
    cells_around,
    cells_in_region,
)

OUTCOME_NOT_RENDERED = "not_rendered"
OUTCOME_REJECTED = "rejected"


@dataclass(frozen=True)
class GameConfig:
    movement: str = BUTTONS_STRATEGY
    reset: bool = False
    interaction_radius: int = INTERACTION_RADIUS
    win_value: int = WIN_VALUE
    view_radius: int = DEFAULT_VIEW_RADIUS
    viewport_margin: int = VIEWPORT_MARGIN
    save_key: str = SAVE_KEY

    def __post_init__(self) -> None:
        if not isinstance(self.movement, str) or not self.movement:
            raise ValueError("movement must be a non-empty string")
        if self.interaction_radius < 0:
            raise ValueError("interaction_radius must be >= 0")
        if self.win_value <= 0:
            raise ValueError("win_value must be > 0")
        if self.view_radius < 0:
            raise ValueError("view_radius must be >= 0")
        if self.viewport_margin < 0:
            raise ValueError("viewport_margin must be >= 0")
        if not isinstance(self.save_key, str) or not self.save_key:
            raise ValueError("save_key must be a non-empty string")


class GameController:
    """Owns the game state and wires movement, viewport, interactions and saves.

    Every handler runs to completion on the caller's thread; front ends feed
    clicks, directional input and view changes in and receive draw calls
    through the renderer.
    """

    def __init__(
        self,
        *,
        renderer: Renderer | None = None,
        blobs: BlobStore | None = None,
        config: GameConfig | None = None,
        position_source: PositionSource | None = None,
    ) -> None:
        self.config = config if config is not None else GameConfig()
        self.renderer = renderer if renderer is not None else Renderer()
        self.state = GameState()
        self.persistence = PersistenceAdapter(blobs if blobs is not None else MemoryBlobStore(), key=self.config.save_key)
        self.viewport = ViewportManager(self.state.cells, self.renderer)
        self.engine = InteractionEngine(self.state, radius=self.config.interaction_radius)
        self.view_region: ViewRegion | None = None

        self.position_source = position_source if position_source is not None else ManualPositionSource(available=False)
        self.movement = MovementFacade(on_move=self.move_player_to, on_status=self.refresh_status)
        self.movement.register(BUTTONS_STRATEGY, DiscreteStepStrategy(self._player_cell))
        self.movement.register(GEOLOCATION_STRATEGY, ContinuousPositionStrategy(self._player_cell, self.position_source))

    def _player_cell(self) -> CellCoord:
        return self.state.player.cell

    def start(self) -> None:
        if self.config.reset:
            self.reset()
        else:
            self.restore()
        self.movement.activate(self.config.movement)

    def shutdown(self) -> None:
        self.movement.deactivate()
        self.save()

    def needed_cells(self) -> set[CellCoord]:
        if self.view_region is not None:
            return cells_in_region(self.view_region, self.config.viewport_margin)
        return cells_around(self.state.player.cell, self.config.view_radius)

    def update_visible_cells(self) -> ViewportDiff:
        return self.viewport.recompute(self.needed_cells())

    def on_view_changed(self, region: ViewRegion) -> ViewportDiff:
        self.view_region = region
        return self.update_visible_cells()

    def refresh_status(self) -> None:
        self.renderer.set_status(format_status(self.state.player.held_token, self.config.win_value))

    def press(self, direction: str) -> None:
        self.movement.handle_direction(direction)

    def move_player_to(self, coord: CellCoord) -> None:
        self.state.player.cell = coord
        self._place_player()
        self.update_visible_cells()
        self.save()

    def click_cell(self, coord: CellCoord) -> str:
        if not self.viewport.is_rendered(coord):
            return OUTCOME_NOT_RENDERED
        try:
            result: InteractionResult = self.engine.click(coord)
        except InvariantError as exc:
            report("interactions", f"rejected interaction at {coord.key()}: {exc}")
            return OUTCOME_REJECTED
        if result.changed:
            self.viewport.refresh(coord)
            self.refresh_status()
            self.save()
        return result.outcome

    def save(self) -> None:
        try:
            self.persistence.save(self.state)
        except OSError as exc:
            report("persistence", f"save failed key={self.persistence.key}: {exc}")

    def restore(self) -> bool:
        loaded = self.persistence.load()
        if loaded is not None:
            self.state.replace_with(loaded)
        self._redraw_all()
        return loaded is not None

    def reset(self) -> None:
        try:
            self.persistence.clear()
        except OSError as exc:
            report("persistence", f"clear failed key={self.persistence.key}: {exc}")
        self.state.reset()
        self._redraw_all()

    def _redraw_all(self) -> None:
        self._place_player()
        self.viewport.invalidate()
        self.update_visible_cells()
        self.refresh_status()

    def _place_player(self) -> None:
        position = cell_center(self.state.player.cell)
        self.renderer.set_player_marker(position)
        self.renderer.set_range_indicator(position, self.config.interaction_radius)
        self.renderer.pan_to(position)
        if self.view_region is not None:
            lat_span, lng_span = self.view_region.span
            self.view_region = ViewRegion.centered_on(position, lat_span, lng_span)
