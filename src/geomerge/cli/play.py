from __future__ import annotations

import argparse
from typing import Sequence

from geomerge.cli.pygame_viewer import _env_flag_enabled, run_pygame_viewer
from geomerge.cli.viewer import run_terminal
from geomerge.sim.movement import BUTTONS_STRATEGY, GEOLOCATION_STRATEGY

DEFAULT_SAVE_DIR = "saves"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m geomerge.cli.play", description="geomerge launcher.")
    parser.add_argument(
        "--movement",
        choices=(BUTTONS_STRATEGY, GEOLOCATION_STRATEGY),
        default=BUTTONS_STRATEGY,
        help="Movement strategy active at startup.",
    )
    parser.add_argument("--reset", action="store_true", help="Discard the saved game before starting.")
    parser.add_argument("--save-dir", default=DEFAULT_SAVE_DIR, help="Directory holding the save blob.")
    parser.add_argument("--track", default=None, help="Recorded GPS track JSON used as the geolocation source.")
    parser.add_argument("--terminal", action="store_true", help="Play in the terminal instead of a pygame window.")
    parser.add_argument("--headless", action="store_true", help="Run startup path in headless mode.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.terminal:
        terminal_argv = ["--movement", args.movement, "--save-dir", args.save_dir]
        if args.reset:
            terminal_argv.append("--reset")
        if args.track:
            terminal_argv.extend(["--track", args.track])
        return run_terminal(terminal_argv)
    return run_pygame_viewer(
        movement=args.movement,
        reset=args.reset,
        save_dir=args.save_dir,
        track_path=args.track,
        headless=args.headless or _env_flag_enabled("GEOMERGE_HEADLESS"),
    )


if __name__ == "__main__":
    raise SystemExit(main())
