from __future__ import annotations

import hashlib
import json
from typing import Any

from geomerge.sim.state import GameState


def _digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def game_state_hash(state: GameState) -> str:
    return _digest(
        {
            "player": state.player.to_dict(),
            "cells": state.cells.to_list(),
        }
    )


def snapshot_hash(payload: dict[str, Any]) -> str:
    hash_payload = {
        "schema_version": payload["schema_version"],
        "player": payload["player"],
        "cells": payload["cells"],
    }
    return _digest(hash_payload)
