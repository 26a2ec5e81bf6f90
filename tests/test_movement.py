import pytest

from geomerge.sim.grid import CellCoord, cell_center
from geomerge.sim.movement import (
    ContinuousPositionStrategy,
    DiscreteStepStrategy,
    ManualPositionSource,
    MovementFacade,
    MovementSourceUnavailable,
    MovementStrategy,
    step_cell,
)


class SpyStrategy(MovementStrategy):
    def __init__(self, current_cell) -> None:
        super().__init__(current_cell)
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        super().start()
        self.starts += 1

    def stop(self) -> None:
        super().stop()
        self.stops += 1

    def fire(self, coord: CellCoord) -> None:
        self._emit(coord)


class FlakyStrategy(SpyStrategy):
    def start(self) -> None:
        raise MovementSourceUnavailable("no sensor")


class Player:
    def __init__(self) -> None:
        self.cell = CellCoord(0, 0)
        self.moves: list[CellCoord] = []

    def current(self) -> CellCoord:
        return self.cell

    def move(self, coord: CellCoord) -> None:
        self.cell = coord
        self.moves.append(coord)


@pytest.mark.parametrize(
    ("direction", "expected"),
    [("north", CellCoord(0, 1)), ("south", CellCoord(0, -1)), ("east", CellCoord(1, 0)), ("west", CellCoord(-1, 0))],
)
def test_step_cell_moves_one_unit_on_one_axis(direction: str, expected: CellCoord) -> None:
    assert step_cell(CellCoord(0, 0), direction) == expected


def test_step_cell_rejects_unknown_direction() -> None:
    with pytest.raises(ValueError):
        step_cell(CellCoord(0, 0), "up")


def test_discrete_strategy_steps_player_while_active() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    facade.register("buttons", DiscreteStepStrategy(player.current))
    facade.activate("buttons")

    facade.handle_direction("north")
    facade.handle_direction("north")
    facade.handle_direction("east")

    assert player.moves == [CellCoord(0, 1), CellCoord(0, 2), CellCoord(1, 2)]


def test_discrete_strategy_ignores_input_when_inactive() -> None:
    player = Player()
    strategy = DiscreteStepStrategy(player.current)
    strategy.on_move = player.move

    strategy.handle_direction("north")

    assert player.moves == []


def test_unknown_direction_is_reported(capsys) -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    facade.register("buttons", DiscreteStepStrategy(player.current))
    facade.activate("buttons")

    facade.handle_direction("up")

    assert player.moves == []
    assert "[geomerge.movement]" in capsys.readouterr().err


def test_continuous_strategy_relocates_directly_to_reported_cell() -> None:
    player = Player()
    source = ManualPositionSource()
    facade = MovementFacade(on_move=player.move)
    facade.register("geolocation", ContinuousPositionStrategy(player.current, source))
    facade.activate("geolocation")
    far = cell_center(CellCoord(40, -12))

    source.emit(far.lat, far.lng)
    source.emit(far.lat, far.lng)

    assert player.moves == [CellCoord(40, -12)]


def test_continuous_strategy_stop_unsubscribes_before_returning() -> None:
    player = Player()
    source = ManualPositionSource()
    strategy = ContinuousPositionStrategy(player.current, source)
    facade = MovementFacade(on_move=player.move)
    facade.register("geolocation", strategy)
    facade.activate("geolocation")
    assert source.subscriber_count == 1

    facade.deactivate()
    target = cell_center(CellCoord(3, 3))
    source.emit(target.lat, target.lng)

    assert source.subscriber_count == 0
    assert strategy.live is False
    assert player.moves == []


def test_stale_callback_after_stop_is_ignored() -> None:
    player = Player()
    source = ManualPositionSource()
    strategy = ContinuousPositionStrategy(player.current, source)
    strategy.on_move = player.move
    strategy.start()
    stale_callback = strategy._on_position
    strategy.stop()

    target = cell_center(CellCoord(7, 7))
    stale_callback(target.lat, target.lng)

    assert player.moves == []


def test_activating_second_strategy_stops_first_exactly_once() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    first = SpyStrategy(player.current)
    second = SpyStrategy(player.current)
    facade.register("a", first)
    facade.register("b", second)

    facade.activate("a")
    facade.activate("b")
    first.fire(CellCoord(9, 9))

    assert first.stops == 1
    assert first.live is False
    assert second.live is True
    assert facade.active is second
    assert player.moves == []

    second.fire(CellCoord(1, 1))
    assert player.moves == [CellCoord(1, 1)]


def test_deactivate_leaves_no_live_strategy() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    strategy = SpyStrategy(player.current)
    facade.register("a", strategy)
    facade.activate("a")

    facade.deactivate()

    assert facade.active is None
    assert facade.active_name is None
    assert strategy.stops == 1
    assert strategy.live is False


def test_reactivating_active_strategy_is_a_no_op() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    strategy = SpyStrategy(player.current)
    facade.register("a", strategy)

    facade.activate("a")
    facade.activate("a")

    assert strategy.starts == 1
    assert strategy.stops == 0


def test_unregistered_strategy_keeps_current_one(capsys) -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    strategy = SpyStrategy(player.current)
    facade.register("a", strategy)
    facade.activate("a")

    assert facade.activate("teleport") is False

    assert facade.active_name == "a"
    assert strategy.live is True
    assert strategy.stops == 0
    assert "unknown movement strategy 'teleport'" in capsys.readouterr().err


def test_unavailable_source_keeps_previous_strategy(capsys) -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    buttons = SpyStrategy(player.current)
    source = ManualPositionSource(available=False)
    facade.register("buttons", buttons)
    facade.register("geolocation", ContinuousPositionStrategy(player.current, source))
    facade.activate("buttons")

    assert facade.activate("geolocation") is False

    assert facade.active_name == "buttons"
    assert buttons.live is True
    assert buttons.stops == 0
    assert source.subscriber_count == 0
    assert "unavailable" in capsys.readouterr().err


def test_failed_start_restores_previous_strategy(capsys) -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    first = SpyStrategy(player.current)
    flaky = FlakyStrategy(player.current)
    facade.register("a", first)
    facade.register("flaky", flaky)
    facade.activate("a")

    assert facade.activate("flaky") is False

    assert facade.active_name == "a"
    assert first.live is True
    assert flaky.live is False
    assert "no sensor" in capsys.readouterr().err


def test_status_hook_runs_after_each_move() -> None:
    player = Player()
    calls: list[CellCoord] = []
    facade = MovementFacade(on_move=player.move, on_status=lambda: calls.append(player.cell))
    facade.register("buttons", DiscreteStepStrategy(player.current))
    facade.activate("buttons")

    facade.handle_direction("west")

    assert calls == [CellCoord(-1, 0)]


def test_directional_input_is_ignored_by_continuous_strategy() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    facade.register("geolocation", ContinuousPositionStrategy(player.current, ManualPositionSource()))
    facade.activate("geolocation")

    facade.handle_direction("north")

    assert player.moves == []


def test_duplicate_registration_is_rejected() -> None:
    player = Player()
    facade = MovementFacade(on_move=player.move)
    facade.register("a", SpyStrategy(player.current))

    with pytest.raises(ValueError, match="duplicate"):
        facade.register("a", SpyStrategy(player.current))
