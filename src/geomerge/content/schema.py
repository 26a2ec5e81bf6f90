from __future__ import annotations

from typing import Any

from geomerge.sim.grid import is_power_of_two

SUPPORTED_SCHEMA_VERSIONS = {1}
REQUIRED_SNAPSHOT_FIELDS = {"schema_version", "player", "cells", "snapshot_hash"}
REQUIRED_CELL_STATE_FIELDS = {"hasToken", "value"}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_cell_coord(coord: Any, *, field_name: str) -> None:
    if not isinstance(coord, dict) or not {"i", "j"} <= coord.keys():
        raise ValueError(f"{field_name} must be an object with i and j")
    if not _is_int(coord["i"]) or not _is_int(coord["j"]):
        raise ValueError(f"{field_name}.i and {field_name}.j must be integers")


def _validate_player(player: Any) -> None:
    if not isinstance(player, dict):
        raise ValueError("player must be an object")
    if "cell" not in player or "heldToken" not in player:
        raise ValueError("player missing cell or heldToken")
    _validate_cell_coord(player["cell"], field_name="player.cell")
    held_token = player["heldToken"]
    if held_token is not None and not is_power_of_two(held_token):
        raise ValueError(f"player.heldToken must be null or a power of two, got {held_token!r}")


def _validate_cell_row(row: Any, *, index: int) -> None:
    if not isinstance(row, list) or len(row) != 2:
        raise ValueError(f"cells[{index}] must be a [key, state] pair")
    key, record = row
    if not isinstance(key, str) or key.count(",") != 1:
        raise ValueError(f"cells[{index}] key must be an 'i,j' string")
    for part in key.split(","):
        try:
            int(part)
        except ValueError as exc:
            raise ValueError(f"cells[{index}] key must be an 'i,j' string") from exc
    if not isinstance(record, dict):
        raise ValueError(f"cells[{index}] state must be an object")
    missing = REQUIRED_CELL_STATE_FIELDS - set(record.keys())
    if missing:
        raise ValueError(f"cells[{index}] missing state fields: {sorted(missing)}")
    if not isinstance(record["hasToken"], bool):
        raise ValueError(f"cells[{index}].hasToken must be a boolean")
    if not is_power_of_two(record["value"]):
        raise ValueError(f"cells[{index}].value must be a power of two, got {record['value']!r}")


def validate_snapshot_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ValueError("snapshot payload must be an object")
    missing = REQUIRED_SNAPSHOT_FIELDS - set(payload.keys())
    if missing:
        raise ValueError(f"snapshot missing fields: {sorted(missing)}")

    schema_version = payload["schema_version"]
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported schema_version: {schema_version}")

    _validate_player(payload["player"])

    cells = payload["cells"]
    if not isinstance(cells, list):
        raise ValueError("cells must be a list")
    seen: set[str] = set()
    for index, row in enumerate(cells):
        _validate_cell_row(row, index=index)
        if row[0] in seen:
            raise ValueError(f"cells[{index}] duplicates key {row[0]!r}")
        seen.add(row[0])

    if not isinstance(payload["snapshot_hash"], str):
        raise ValueError("snapshot_hash must be a string")
