from __future__ import annotations

from typing import Callable, Protocol

from geomerge.sim.diagnostics import report
from geomerge.sim.grid import CellCoord, latlng_to_cell

BUTTONS_STRATEGY = "buttons"
GEOLOCATION_STRATEGY = "geolocation"

CARDINAL_DIRECTIONS: dict[str, tuple[int, int]] = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
}

MoveCallback = Callable[[CellCoord], None]
PositionCallback = Callable[[float, float], None]
Unsubscribe = Callable[[], None]


class MovementSourceUnavailable(RuntimeError):
    """Raised by ``start()`` when the host cannot provide the movement source."""


class PositionSource(Protocol):
    available: bool

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        ...


class ManualPositionSource:
    """In-process position stream; ``emit`` delivers to current subscribers."""

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self._subscribers: dict[int, PositionCallback] = {}
        self._next_token = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: PositionCallback) -> Unsubscribe:
        if not self.available:
            raise MovementSourceUnavailable("position source is not available")
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def emit(self, lat: float, lng: float) -> None:
        for callback in list(self._subscribers.values()):
            callback(lat, lng)


def step_cell(current: CellCoord, direction: str) -> CellCoord:
    if direction not in CARDINAL_DIRECTIONS:
        raise ValueError(f"unknown direction: {direction}")
    di, dj = CARDINAL_DIRECTIONS[direction]
    return current.offset(di, dj)


class MovementStrategy:
    """A source of player movement; only emits between ``start`` and ``stop``."""

    accepts_directions = False

    def __init__(self, current_cell: Callable[[], CellCoord]) -> None:
        self.current_cell = current_cell
        self.on_move: MoveCallback | None = None
        self.live = False

    def is_available(self) -> bool:
        return True

    def start(self) -> None:
        self.live = True

    def stop(self) -> None:
        self.live = False

    def handle_direction(self, direction: str) -> None:
        """Directional input; ignored by strategies without discrete steps."""

    def _emit(self, coord: CellCoord) -> None:
        if self.live and self.on_move is not None:
            self.on_move(coord)


class DiscreteStepStrategy(MovementStrategy):
    accepts_directions = True

    def handle_direction(self, direction: str) -> None:
        if not self.live:
            return
        if direction not in CARDINAL_DIRECTIONS:
            report("movement", f"ignored unknown direction {direction!r}")
            return
        self._emit(step_cell(self.current_cell(), direction))


class ContinuousPositionStrategy(MovementStrategy):
    def __init__(self, current_cell: Callable[[], CellCoord], source: PositionSource) -> None:
        super().__init__(current_cell)
        self.source = source
        self._unsubscribe: Unsubscribe | None = None

    def is_available(self) -> bool:
        return bool(getattr(self.source, "available", False))

    def start(self) -> None:
        if self.live:
            return
        if not self.is_available():
            raise MovementSourceUnavailable("continuous position source is not available on this host")
        self._unsubscribe = self.source.subscribe(self._on_position)
        self.live = True

    def stop(self) -> None:
        self.live = False
        if self._unsubscribe is not None:
            unsubscribe = self._unsubscribe
            self._unsubscribe = None
            unsubscribe()

    def _on_position(self, lat: float, lng: float) -> None:
        if not self.live:
            return
        target = latlng_to_cell(lat, lng)
        if target != self.current_cell():
            self._emit(target)


class MovementFacade:
    """Registry of movement strategies with at most one live at a time."""

    def __init__(self, on_move: MoveCallback, on_status: Callable[[], None] | None = None) -> None:
        self._on_move = on_move
        self._on_status = on_status
        self._strategies: dict[str, MovementStrategy] = {}
        self.active_name: str | None = None

    @property
    def active(self) -> MovementStrategy | None:
        if self.active_name is None:
            return None
        return self._strategies[self.active_name]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._strategies)

    def register(self, name: str, strategy: MovementStrategy) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("strategy name must be a non-empty string")
        if name in self._strategies:
            raise ValueError(f"duplicate movement strategy: {name}")
        self._strategies[name] = strategy

    def activate(self, name: str) -> bool:
        strategy = self._strategies.get(name)
        if strategy is None:
            report("movement", f"unknown movement strategy {name!r}; keeping {self.active_name!r}")
            return False
        if name == self.active_name:
            return True
        if not strategy.is_available():
            report("movement", f"movement strategy {name!r} is unavailable; keeping {self.active_name!r}")
            return False

        previous_name = self.active_name
        self.deactivate()
        if self._start(name):
            return True
        if previous_name is not None:
            self._start(previous_name)
        return False

    def deactivate(self) -> None:
        strategy = self.active
        self.active_name = None
        if strategy is None:
            return
        strategy.stop()
        strategy.on_move = None

    def handle_direction(self, direction: str) -> None:
        strategy = self.active
        if strategy is None or not strategy.accepts_directions:
            return
        strategy.handle_direction(direction)

    def _start(self, name: str) -> bool:
        strategy = self._strategies[name]
        strategy.on_move = self._dispatch_move
        try:
            strategy.start()
        except MovementSourceUnavailable as exc:
            strategy.on_move = None
            report("movement", f"failed to start {name!r}: {exc}")
            return False
        self.active_name = name
        return True

    def _dispatch_move(self, coord: CellCoord) -> None:
        self._on_move(coord)
        if self._on_status is not None:
            self._on_status()
