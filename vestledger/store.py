"""
JSON persistence for the CLI: the vesting state plus the simulated treasury.

Writes go to a temp file that replaces the real one in a single rename, so a
crash mid-write leaves the previous state file intact.
"""

import json
import logging
import os
from pathlib import Path
from typing import Tuple

from vestledger.adapters.tokens import Treasury
from vestledger.core.exceptions import StoreError, VestingError
from vestledger.state import VestingState

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class StateStore:
    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Tuple[VestingState, Treasury]:
        """Fresh state and empty treasury if the file does not exist yet."""
        if not self.path.exists():
            return VestingState(), Treasury()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreError(f"Failed to load state: {exc}", {"path": str(self.path)}) from exc

        version = data.get("version")
        if version != STORE_VERSION:
            raise StoreError(
                "unsupported state file version",
                {"path": str(self.path), "version": version},
            )
        try:
            state = VestingState.from_dict(data.get("state", {}))
            treasury = Treasury.from_dict(data.get("treasury"))
        except (KeyError, TypeError, ValueError, VestingError) as exc:
            raise StoreError(f"Corrupt state file: {exc}", {"path": str(self.path)}) from exc
        return state, treasury

    def save(self, state: VestingState, treasury: Treasury) -> None:
        payload = {
            "version":  STORE_VERSION,
            "state":    state.to_dict(),
            "treasury": treasury.to_dict(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path.exists():
                temp_path.unlink()
            raise StoreError(f"Failed to write state: {exc}", {"path": str(self.path)}) from exc
        logger.debug("state saved to %s", self.path)
