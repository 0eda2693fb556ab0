from __future__ import annotations
import json
import os
import tempfile
from typing import Protocol

from .ledger import Snapshot
from ..errors import SnapshotStoreError


class SnapshotStore(Protocol):
    def load(self) -> Snapshot | None: ...
    def save(self, snapshot: Snapshot) -> None: ...


class JsonSnapshotStore:
    """Snapshot persisted as a single JSON file (valorData.json)."""

    def __init__(self, path: str):
        self.path = path

    def load(self) -> Snapshot | None:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SnapshotStoreError(f"cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise SnapshotStoreError(f"{self.path} does not hold a JSON object")
        try:
            return Snapshot.from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise SnapshotStoreError(f"malformed snapshot in {self.path}: {e}") from e

    def save(self, snapshot: Snapshot) -> None:
        # Write to a sibling temp file and swap, so a failed write never truncates the old snapshot
        folder = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(folder, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".valor-", suffix=".json", dir=folder)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot.to_dict(), f, indent=2, sort_keys=True)
                    f.write("\n")
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise SnapshotStoreError(f"cannot write {self.path}: {e}") from e
