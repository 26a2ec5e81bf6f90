from __future__ import annotations

import argparse
import importlib.metadata
import os
import platform
import sys
from dataclasses import dataclass
from typing import Any

from geomerge.content.io import FileBlobStore
from geomerge.content.tracks import TrackPlayback, load_track_json
from geomerge.sim.core import GameConfig, GameController
from geomerge.sim.grid import ORIGIN, TILE_DEGREES, CellCoord, LatLng, latlng_to_cell
from geomerge.sim.movement import BUTTONS_STRATEGY, GEOLOCATION_STRATEGY, ManualPositionSource
from geomerge.sim.render import CellStyle, Handle, Renderer
from geomerge.sim.viewport import ViewRegion

CELL_PIXELS = 36
WINDOW_SIZE = (1024, 768)
VIEWPORT_MARGIN = 12
HUD_HEIGHT = 84
TRACK_STEP_SECONDS = 1.0
DEFAULT_SAVE_DIR = "saves"

BACKGROUND_COLOR = (17, 18, 25)
STYLE_COLORS: dict[str, tuple[int, int, int]] = {
    "lightgreen": (144, 238, 144),
    "gray": (128, 128, 128),
}
PLAYER_COLOR = (80, 160, 255)
RANGE_COLOR = (60, 90, 200)
TOKEN_TEXT_COLOR = (250, 250, 250)

KEY_DIRECTIONS: dict[str, str] = {
    "K_UP": "north",
    "K_w": "north",
    "K_DOWN": "south",
    "K_s": "south",
    "K_RIGHT": "east",
    "K_d": "east",
    "K_LEFT": "west",
    "K_a": "west",
}

pygame: Any | None = None


@dataclass(frozen=True)
class ScreenBox:
    x: int
    y: int
    width: int
    height: int

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    def contains(self, pixel: tuple[int, int]) -> bool:
        return self.x <= pixel[0] < self.x + self.width and self.y <= pixel[1] < self.y + self.height


def _viewport_box() -> ScreenBox:
    return ScreenBox(
        VIEWPORT_MARGIN,
        HUD_HEIGHT,
        WINDOW_SIZE[0] - VIEWPORT_MARGIN * 2,
        WINDOW_SIZE[1] - HUD_HEIGHT - VIEWPORT_MARGIN,
    )


def _latlng_to_pixel(position: LatLng, camera: LatLng, box: ScreenBox) -> tuple[float, float]:
    center_x, center_y = box.center
    x = center_x + (position.lng - camera.lng) / TILE_DEGREES * CELL_PIXELS
    y = center_y - (position.lat - camera.lat) / TILE_DEGREES * CELL_PIXELS
    return (x, y)


def _pixel_to_latlng(pixel_x: float, pixel_y: float, camera: LatLng, box: ScreenBox) -> LatLng:
    center_x, center_y = box.center
    lng = camera.lng + (pixel_x - center_x) / CELL_PIXELS * TILE_DEGREES
    lat = camera.lat - (pixel_y - center_y) / CELL_PIXELS * TILE_DEGREES
    return LatLng(lat, lng)


def _pixel_to_cell(pixel: tuple[int, int], camera: LatLng, box: ScreenBox) -> CellCoord:
    position = _pixel_to_latlng(pixel[0], pixel[1], camera, box)
    return latlng_to_cell(position.lat, position.lng)


def _view_region_for(camera: LatLng, box: ScreenBox) -> ViewRegion:
    return ViewRegion.around_cells(camera, box.width / 2.0 / CELL_PIXELS, box.height / 2.0 / CELL_PIXELS)


class PygameRenderer(Renderer):
    """Retains the scene drawn by the core and paints it once per frame."""

    def __init__(self) -> None:
        super().__init__()
        self.outlines: dict[Handle, tuple[tuple[LatLng, LatLng], CellStyle]] = {}
        self.tokens: dict[Handle, tuple[CellCoord, int]] = {}
        self.player_position: LatLng | None = None
        self.range_radius = 0
        self.camera = ORIGIN
        self.status = ""

    def draw_cell_outline(self, coord: CellCoord, bounds: tuple[LatLng, LatLng], style: CellStyle) -> Handle:
        handle = self.next_handle()
        self.outlines[handle] = (bounds, style)
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

    def paint(self, screen: Any, box: ScreenBox, marker_font: Any) -> None:
        clip = pygame.Rect(box.x, box.y, box.width, box.height)
        screen.set_clip(clip)
        for (south_west, north_east), style in self.outlines.values():
            left, bottom = _latlng_to_pixel(south_west, self.camera, box)
            right, top = _latlng_to_pixel(north_east, self.camera, box)
            rect = pygame.Rect(round(left), round(top), round(right - left), round(bottom - top))
            color = STYLE_COLORS.get(style.color, (200, 200, 200))
            fill = pygame.Surface(rect.size, pygame.SRCALPHA)
            fill.fill((*color, int(255 * style.fill_opacity)))
            screen.blit(fill, rect.topleft)
            pygame.draw.rect(screen, color, rect, 1)

        for coord, value in self.tokens.values():
            south_west = LatLng(coord.j * TILE_DEGREES, coord.i * TILE_DEGREES)
            x, y = _latlng_to_pixel(south_west, self.camera, box)
            label = marker_font.render(str(value), True, TOKEN_TEXT_COLOR)
            screen.blit(label, label.get_rect(center=(round(x + CELL_PIXELS / 2), round(y - CELL_PIXELS / 2))))

        if self.player_position is not None:
            x, y = _latlng_to_pixel(self.player_position, self.camera, box)
            reach = (self.range_radius + 0.5) * CELL_PIXELS
            pygame.draw.rect(
                screen,
                RANGE_COLOR,
                pygame.Rect(round(x - reach), round(y - reach), round(reach * 2), round(reach * 2)),
                1,
            )
            pygame.draw.circle(screen, PLAYER_COLOR, (round(x), round(y)), CELL_PIXELS // 3)
        screen.set_clip(None)


@dataclass
class ViewerGame:
    controller: GameController
    renderer: PygameRenderer
    source: ManualPositionSource
    playback: TrackPlayback | None


def _build_viewer_game(*, config: GameConfig, save_dir: str, track_path: str | None) -> ViewerGame:
    playback = TrackPlayback(load_track_json(track_path)) if track_path else None
    renderer = PygameRenderer()
    source = ManualPositionSource(available=playback is not None)
    controller = GameController(
        renderer=renderer,
        blobs=FileBlobStore(save_dir),
        config=config,
        position_source=source,
    )
    controller.view_region = _view_region_for(ORIGIN, _viewport_box())
    controller.start()
    return ViewerGame(controller=controller, renderer=renderer, source=source, playback=playback)


def _toggle_movement(controller: GameController) -> None:
    target = GEOLOCATION_STRATEGY if controller.movement.active_name == BUTTONS_STRATEGY else BUTTONS_STRATEGY
    controller.movement.activate(target)


def _draw_hud(screen: Any, game: ViewerGame, font: Any) -> None:
    player = game.controller.state.player
    lines = [
        f"cell=({player.cell.i},{player.cell.j}) | movement={game.controller.movement.active_name} | {game.renderer.status}",
        "Arrows/WASD move | click cell to pick up, merge or drop | F2 movement | F5 save | F10 reset | ESC quit",
    ]
    y = 12
    for line in lines:
        surface = font.render(line, True, (240, 240, 240))
        screen.blit(surface, (12, y))
        y += 26


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="geomerge pygame viewer")
    parser.add_argument(
        "--movement",
        choices=(BUTTONS_STRATEGY, GEOLOCATION_STRATEGY),
        default=BUTTONS_STRATEGY,
        help="Movement strategy active at startup.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Discard the saved game and start from the origin.",
    )
    parser.add_argument(
        "--save-dir",
        default=DEFAULT_SAVE_DIR,
        help="Directory holding the save blob.",
    )
    parser.add_argument(
        "--track",
        help="Recorded GPS track JSON replayed as the geolocation source.",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Force SDL dummy video driver for CI/testing and exit without opening a real window.",
    )
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[geomerge.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[geomerge.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def run_pygame_viewer(
    *,
    movement: str = BUTTONS_STRATEGY,
    reset: bool = False,
    save_dir: str = DEFAULT_SAVE_DIR,
    track_path: str | None = None,
    headless: bool = False,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[geomerge.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()
    pygame_module = _ensure_pygame_imported()

    try:
        pygame_module.init()
    except Exception as exc:
        print(
            "[geomerge.viewer] failed during pygame.init(): "
            f"{exc}. Hint: verify a working SDL video driver (set SDL_VIDEODRIVER=dummy for headless mode).",
            file=sys.stderr,
        )
        return 1

    try:
        game = _build_viewer_game(
            config=GameConfig(movement=movement, reset=reset),
            save_dir=save_dir,
            track_path=track_path,
        )
    except (OSError, ValueError) as exc:
        print(f"[geomerge.viewer] failed to initialize game: {exc}", file=sys.stderr)
        pygame_module.quit()
        return 1

    try:
        pygame_module.display.set_caption("geomerge")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[geomerge.viewer] failed during pygame.display.set_mode(...): "
            f"{exc}. Hint: GUI sessions require a valid display; use --headless or GEOMERGE_HEADLESS=1.",
            file=sys.stderr,
        )
        game.controller.shutdown()
        pygame_module.quit()
        return 1

    print(f"[geomerge.viewer] display initialized: {pygame_module.display.get_driver()}, window size={WINDOW_SIZE}")

    if headless:
        game.controller.shutdown()
        pygame_module.quit()
        return 0

    key_directions = {getattr(pygame_module, name): direction for name, direction in KEY_DIRECTIONS.items()}
    clock = pygame_module.time.Clock()
    font = pygame_module.font.SysFont("consolas", 20)
    marker_font = pygame_module.font.SysFont("consolas", 16)
    box = _viewport_box()
    track_accumulator = 0.0
    running = True

    while running:
        dt = clock.tick(60) / 1000.0

        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key in key_directions:
                game.controller.press(key_directions[event.key])
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F2:
                _toggle_movement(game.controller)
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F5:
                game.controller.save()
                print(f"[geomerge.viewer] saved key={game.controller.persistence.key} dir={save_dir}")
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_F10:
                game.controller.reset()
                print("[geomerge.viewer] reset to origin")
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 1 and box.contains(event.pos):
                game.controller.click_cell(_pixel_to_cell(event.pos, game.renderer.camera, box))

        if game.playback is not None and game.controller.movement.active_name == GEOLOCATION_STRATEGY:
            track_accumulator += dt
            while track_accumulator >= TRACK_STEP_SECONDS and not game.playback.finished:
                game.playback.advance(game.source)
                track_accumulator -= TRACK_STEP_SECONDS

        screen.fill(BACKGROUND_COLOR)
        game.renderer.paint(screen, box, marker_font)
        pygame_module.draw.rect(screen, (64, 68, 84), pygame_module.Rect(box.x, box.y, box.width, box.height), 1)
        _draw_hud(screen, game, font)
        pygame_module.display.flip()

    game.controller.shutdown()
    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    headless = args.headless or _env_flag_enabled("GEOMERGE_HEADLESS")
    raise SystemExit(
        run_pygame_viewer(
            movement=args.movement,
            reset=args.reset,
            save_dir=args.save_dir,
            track_path=args.track,
            headless=headless,
        )
    )


if __name__ == "__main__":
    main()
