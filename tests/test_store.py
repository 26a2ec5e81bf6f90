import pytest

from geomerge.sim.grid import CellCoord, CellState, InvariantError
from geomerge.sim.store import CellStateStore


def test_fresh_stores_generate_identical_cells() -> None:
    coords = [CellCoord(i, j) for i in range(-6, 6) for j in range(-6, 6)]
    store_a = CellStateStore()
    store_b = CellStateStore()

    assert [store_a.get_or_create(coord) for coord in coords] == [store_b.get_or_create(coord) for coord in coords]


def test_get_or_create_rolls_once_per_coordinate(monkeypatch) -> None:
    rolls: list[CellCoord] = []

    def fake_roll(coord: CellCoord) -> CellState:
        rolls.append(coord)
        return CellState(has_token=True, value=2)

    monkeypatch.setattr("geomerge.sim.store.roll_cell_state", fake_roll)
    store = CellStateStore()

    first = store.get_or_create(CellCoord(1, 1))
    second = store.get_or_create(CellCoord(1, 1))

    assert first is second
    assert rolls == [CellCoord(1, 1)]


def test_existing_entry_is_returned_unchanged() -> None:
    store = CellStateStore()
    store.get_or_create(CellCoord(0, 0))
    store.set(CellCoord(0, 0), CellState(has_token=False, value=1))

    assert store.get_or_create(CellCoord(0, 0)) == CellState(has_token=False, value=1)


def test_get_does_not_create() -> None:
    store = CellStateStore()

    assert store.get(CellCoord(9, 9)) is None
    assert CellCoord(9, 9) not in store
    assert len(store) == 0


@pytest.mark.parametrize(
    "state",
    [CellState(has_token=True, value=3), CellState(has_token=True, value=0), CellState(has_token=False, value=-4)],
)
def test_set_rejects_invariant_violations_and_keeps_prior_state(state: CellState) -> None:
    store = CellStateStore()
    store.set(CellCoord(0, 0), CellState(has_token=True, value=4))

    with pytest.raises(InvariantError):
        store.set(CellCoord(0, 0), state)

    assert store.get(CellCoord(0, 0)) == CellState(has_token=True, value=4)


def test_items_follow_first_materialization_order() -> None:
    store = CellStateStore()
    order = [CellCoord(3, 3), CellCoord(-1, 0), CellCoord(0, 7)]
    for coord in order:
        store.get_or_create(coord)
    store.set(CellCoord(-1, 0), CellState(has_token=True, value=16))

    assert [coord for coord, _ in store.items()] == order


def test_restore_replaces_contents_verbatim() -> None:
    store = CellStateStore()
    store.get_or_create(CellCoord(5, 5))

    store.restore([(CellCoord(0, 0), CellState(has_token=True, value=8))])

    assert list(store.items()) == [(CellCoord(0, 0), CellState(has_token=True, value=8))]


def test_restore_rejects_duplicates_without_touching_contents() -> None:
    store = CellStateStore()
    store.set(CellCoord(1, 1), CellState(has_token=False, value=1))

    with pytest.raises(ValueError, match="duplicate"):
        store.restore(
            [
                (CellCoord(0, 0), CellState(has_token=True, value=1)),
                (CellCoord(0, 0), CellState(has_token=True, value=2)),
            ]
        )

    assert list(store.items()) == [(CellCoord(1, 1), CellState(has_token=False, value=1))]
