from __future__ import annotations

import argparse
from typing import Callable, Sequence

from geomerge.content.io import FileBlobStore, MemoryBlobStore
from geomerge.content.tracks import TrackPlayback, load_track_json
from geomerge.sim.core import GameConfig, GameController
from geomerge.sim.grid import CellCoord, LatLng
from geomerge.sim.movement import BUTTONS_STRATEGY, CARDINAL_DIRECTIONS, GEOLOCATION_STRATEGY, ManualPositionSource
from geomerge.sim.render import CellStyle, Handle, Renderer

DIRECTION_ALIASES = {"n": "north", "s": "south", "e": "east", "w": "west"}
ASCII_VIEW_RADIUS = 4


class AsciiRenderer(Renderer):
    """Keeps the drawn scene in dictionaries so it can be printed as text."""

    def __init__(self) -> None:
        super().__init__()
        self.outlines: dict[Handle, tuple[CellCoord, CellStyle]] = {}
        self.tokens: dict[Handle, tuple[CellCoord, int]] = {}
        self.player_position: LatLng | None = None
        self.range_radius: int | None = None
        self.camera: LatLng | None = None
        self.status = ""

    def draw_cell_outline(self, coord: CellCoord, bounds: tuple[LatLng, LatLng], style: CellStyle) -> Handle:
        handle = self.next_handle()
        self.outlines[handle] = (coord, style)
        return handle

    def draw_token(self, coord: CellCoord, value: int) -> Handle:
        handle = self.next_handle()
        self.tokens[handle] = (coord, value)
        return handle

    def remove_handle(self, handle: Handle) -> None:
        self.outlines.pop(handle, None)
        self.tokens.pop(handle, None)

    def set_player_marker(self, position: LatLng) -> None:
        self.player_position = position

    def set_range_indicator(self, position: LatLng, radius_cells: int) -> None:
        self.range_radius = radius_cells

    def pan_to(self, position: LatLng) -> None:
        self.camera = position

    def set_status(self, text: str) -> None:
        self.status = text

    def outlined_cells(self) -> set[CellCoord]:
        return {coord for coord, _ in self.outlines.values()}

    def token_values(self) -> dict[CellCoord, int]:
        return {coord: value for coord, value in self.tokens.values()}


class AsciiViewer:
    """Read-only text projection of the rendered cells around the player."""

    def render(self, controller: GameController, renderer: AsciiRenderer) -> str:
        player = controller.state.player
        lines = [f"cell=({player.cell.i},{player.cell.j}) movement={controller.movement.active_name} {renderer.status}"]

        drawn = renderer.outlined_cells()
        if not drawn:
            return "\n".join(lines + ["<nothing rendered>"])

        tokens = renderer.token_values()
        radius = controller.config.interaction_radius
        for dj in range(ASCII_VIEW_RADIUS, -ASCII_VIEW_RADIUS - 1, -1):
            row: list[str] = []
            for di in range(-ASCII_VIEW_RADIUS, ASCII_VIEW_RADIUS + 1):
                coord = player.cell.offset(di, dj)
                if di == 0 and dj == 0:
                    glyph = "@"
                elif coord not in drawn:
                    glyph = " "
                elif coord in tokens:
                    glyph = str(tokens[coord])
                else:
                    glyph = "." if max(abs(di), abs(dj)) <= radius else ","
                row.append(f"{glyph:>3}")
            lines.append(f"{dj:>3} " + "".join(row))
        return "\n".join(lines)


class GameCommandLoop:
    """Parses one terminal command at a time and forwards it to the controller."""

    def __init__(
        self,
        controller: GameController,
        renderer: AsciiRenderer,
        source: ManualPositionSource,
        *,
        playback: TrackPlayback | None = None,
    ) -> None:
        self.controller = controller
        self.renderer = renderer
        self.source = source
        self.playback = playback
        self.view = AsciiViewer()

    def execute(self, raw: str) -> str | None:
        parts = raw.strip().split()
        if not parts:
            return ""
        command = DIRECTION_ALIASES.get(parts[0], parts[0])

        if command in {"quit", "exit"}:
            return None
        if command == "show":
            return self.view.render(self.controller, self.renderer)
        if command in CARDINAL_DIRECTIONS and len(parts) == 1:
            self.controller.press(command)
            return self.view.render(self.controller, self.renderer)
        if command == "click" and len(parts) == 3:
            try:
                di, dj = int(parts[1]), int(parts[2])
            except ValueError:
                return "usage: click <di> <dj>"
            outcome = self.controller.click_cell(self.controller.state.player.cell.offset(di, dj))
            return f"{outcome}\n{self.view.render(self.controller, self.renderer)}"
        if command == "gps" and len(parts) == 3:
            try:
                lat, lng = float(parts[1]), float(parts[2])
            except ValueError:
                return "usage: gps <lat> <lng>"
            self.source.emit(lat, lng)
            return self.view.render(self.controller, self.renderer)
        if command == "walk" and len(parts) == 1:
            if self.playback is None or self.playback.finished:
                return "no track fixes left"
            self.playback.advance(self.source)
            return self.view.render(self.controller, self.renderer)
        if command == "mode" and len(parts) == 2:
            activated = self.controller.movement.activate(parts[1])
            return f"movement={self.controller.movement.active_name}" + ("" if activated else " (unchanged)")
        if command == "reset" and len(parts) == 1:
            self.controller.reset()
            return self.view.render(self.controller, self.renderer)
        return "unknown command"


def build_terminal_game(
    *,
    config: GameConfig,
    save_dir: str | None = None,
    track_path: str | None = None,
) -> GameCommandLoop:
    renderer = AsciiRenderer()
    playback = TrackPlayback(load_track_json(track_path)) if track_path else None
    source = ManualPositionSource(available=True)
    blobs = FileBlobStore(save_dir) if save_dir else MemoryBlobStore()
    controller = GameController(renderer=renderer, blobs=blobs, config=config, position_source=source)
    controller.start()
    return GameCommandLoop(controller, renderer, source, playback=playback)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m geomerge.cli.viewer", description="Terminal geomerge session.")
    parser.add_argument("--movement", choices=(BUTTONS_STRATEGY, GEOLOCATION_STRATEGY), default=BUTTONS_STRATEGY)
    parser.add_argument("--reset", action="store_true", help="Discard the saved game before starting.")
    parser.add_argument("--save-dir", default=None, help="Directory for the save blob; omit to keep it in memory.")
    parser.add_argument("--track", default=None, help="Recorded GPS track JSON replayed by the 'walk' command.")
    return parser


def run_terminal(
    argv: Sequence[str] | None = None,
    *,
    read_line: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    args = _build_parser().parse_args(argv)
    loop = build_terminal_game(
        config=GameConfig(movement=args.movement, reset=args.reset, view_radius=ASCII_VIEW_RADIUS),
        save_dir=args.save_dir,
        track_path=args.track,
    )

    write("geomerge. Commands: show | n s e w | click <di> <dj> | gps <lat> <lng> | walk | mode <name> | reset | quit")
    write(loop.view.render(loop.controller, loop.renderer))
    try:
        while True:
            try:
                raw = read_line("> ")
            except EOFError:
                break
            output = loop.execute(raw)
            if output is None:
                break
            if output:
                write(output)
    finally:
        loop.controller.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(run_terminal())
