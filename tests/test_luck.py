import pytest

from geomerge.sim.grid import CellCoord, CellState
from geomerge.sim.luck import INITIAL_VALUE_TIERS, initial_token_value, luck, roll_cell_state


def test_luck_is_stable_for_same_seed() -> None:
    assert luck("token-3,4") == luck("token-3,4")


def test_luck_changes_with_seed() -> None:
    assert luck("token-0,0") != luck("value-0,0")


def test_luck_stays_in_unit_interval() -> None:
    for index in range(500):
        value = luck(f"token-{index},{-index}")
        assert 0.0 <= value < 1.0


def test_token_occupancy_is_roughly_even_over_many_cells() -> None:
    coords = [CellCoord(i, j) for i in range(-20, 20) for j in range(-25, 25)]
    occupied = sum(1 for coord in coords if roll_cell_state(coord).has_token)

    assert 0.4 < occupied / len(coords) < 0.6


@pytest.mark.parametrize(
    ("roll", "expected"),
    [(0.0, 8), (0.005, 8), (0.01, 4), (0.03, 4), (0.05, 2), (0.2, 2), (0.25, 1), (0.99, 1)],
)
def test_initial_value_follows_tier_table(monkeypatch, roll: float, expected: int) -> None:
    monkeypatch.setattr("geomerge.sim.luck.luck", lambda seed: roll)

    assert initial_token_value(CellCoord(0, 0)) == expected


def test_tier_table_is_ordered_and_uses_powers_of_two() -> None:
    thresholds = [threshold for threshold, _ in INITIAL_VALUE_TIERS]
    assert thresholds == sorted(thresholds)
    assert all(value & (value - 1) == 0 for _, value in INITIAL_VALUE_TIERS)


def test_roll_uses_token_and_value_seeds(monkeypatch) -> None:
    seen: list[str] = []

    def fake_luck(seed: str) -> float:
        seen.append(seed)
        return 0.3

    monkeypatch.setattr("geomerge.sim.luck.luck", fake_luck)

    assert roll_cell_state(CellCoord(-2, 7)) == CellState(has_token=True, value=1)
    assert sorted(seen) == ["token--2,7", "value--2,7"]
