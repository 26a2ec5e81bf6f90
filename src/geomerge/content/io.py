from __future__ import annotations

import json
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Protocol

from geomerge.content.schema import validate_snapshot_payload
from geomerge.sim.diagnostics import report
from geomerge.sim.grid import CellCoord, CellState
from geomerge.sim.hash import snapshot_hash
from geomerge.sim.state import GameState, PlayerState
from geomerge.sim.store import CellStateStore

SCHEMA_VERSION = 1
SAVE_KEY = "geomerge/game_state"
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")
BLOB_FILE_SUFFIX = ".json"


class SnapshotError(ValueError):
    """Raised when a persisted snapshot cannot be decoded."""


class BlobStore(Protocol):
    def get(self, key: str) -> bytes | None:
        ...

    def set(self, key: str, data: bytes) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryBlobStore:
    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self.blobs: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> bytes | None:
        return self.blobs.get(key)

    def set(self, key: str, data: bytes) -> None:
        self.blobs[key] = bytes(data)

    def remove(self, key: str) -> None:
        self.blobs.pop(key, None)


class FileBlobStore:
    """One file per key under ``root``; writes replace the file atomically."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        if not isinstance(key, str) or not key:
            raise ValueError("blob key must be a non-empty string")
        return self.root / (re.sub(r"[^A-Za-z0-9_.-]", "_", key) + BLOB_FILE_SUFFIX)

    def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, data: bytes) -> None:
        destination = self.path_for(key)
        destination.parent.mkdir(parents=True, exist_ok=True)

        temp_path: Path | None = None
        try:
            with NamedTemporaryFile(mode="wb", dir=destination.parent, delete=False, suffix=".tmp") as temp_file:
                temp_file.write(data)
                temp_file.flush()
                os.fsync(temp_file.fileno())
                temp_path = Path(temp_file.name)
            os.replace(temp_path, destination)
        except Exception:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)


def build_snapshot_payload(state: GameState) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "player": state.player.to_dict(),
        "cells": state.cells.to_list(),
    }
    payload["snapshot_hash"] = snapshot_hash(payload)
    return payload


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
        ensure_ascii=False,
    )


def encode_snapshot(state: GameState) -> bytes:
    return _canonical_json(build_snapshot_payload(state)).encode("utf-8")


def decode_snapshot(data: bytes) -> GameState:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        raise SnapshotError(f"snapshot is not valid JSON: {exc}") from exc

    try:
        validate_snapshot_payload(payload)
    except ValueError as exc:
        raise SnapshotError(str(exc)) from exc

    expected_hash = payload["snapshot_hash"]
    actual_hash = snapshot_hash(payload)
    if expected_hash != actual_hash:
        raise SnapshotError(f"snapshot_hash mismatch (stored={expected_hash}, recomputed={actual_hash})")

    cells = CellStateStore()
    try:
        cells.restore(
            (CellCoord.from_key(key), CellState.from_dict(record))
            for key, record in payload["cells"]
        )
        player = PlayerState.from_dict(payload["player"])
    except ValueError as exc:
        raise SnapshotError(str(exc)) from exc
    return GameState(player=player, cells=cells)


class PersistenceAdapter:
    """Saves and restores the game state under one key of a blob store."""

    def __init__(self, blobs: BlobStore, *, key: str = SAVE_KEY) -> None:
        self.blobs = blobs
        self.key = key

    def save(self, state: GameState) -> None:
        self.blobs.set(self.key, encode_snapshot(state))

    def load(self) -> GameState | None:
        try:
            data = self.blobs.get(self.key)
        except OSError as exc:
            report("persistence", f"load failed key={self.key}: {exc}")
            return None
        if data is None:
            return None
        try:
            return decode_snapshot(data)
        except SnapshotError as exc:
            report("persistence", f"discarded malformed snapshot key={self.key}: {exc}")
            return None

    def clear(self) -> None:
        self.blobs.remove(self.key)
