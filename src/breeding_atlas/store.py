"""Tiered JSON data store.

Reads and writes metadata-enveloped JSON files organised by role:
  - reference/: Lookup tables, loaded once per run (expectation matrix,
    season anchors, location expectation, colonies, code adjustments)
  - raw/: Observation records as submitted
  - derived/: Pipeline outputs, rewritten on every run (adjudicated
    observations, review queue, colony discoveries, faults)

Every file is wrapped as ``{"meta": {...}, "data": ...}`` so a reader can
tell where a table came from and when it was written.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003
from typing import Any


class DataStore:
    """Manages read/write of enveloped JSON data files."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.reference = base_dir / "reference"
        self.raw = base_dir / "raw"
        self.derived = base_dir / "derived"

    def read(self, path: Path) -> Any:
        """Read the data payload from a metadata-enveloped JSON file.

        Returns the ``data`` field (or the whole document if it has no
        envelope), or None if the file doesn't exist.
        """
        envelope = self.read_raw(path)
        if envelope is None:
            return None
        if isinstance(envelope, dict) and "data" in envelope:
            return envelope["data"]
        return envelope

    def read_raw(self, path: Path) -> Any:
        """Read the full envelope (meta + data) from a JSON file."""
        full = self._resolve(path)
        if not full.exists():
            return None
        with full.open() as f:
            return json.load(f)

    def write(self, path: Path, data: Any, source: str, **params: Any) -> Path:
        """Write data wrapped in a metadata envelope.

        Args:
            path: Relative path under base_dir (e.g. ``derived/colonies.json``).
            data: Payload to store under the ``data`` key.
            source: Producer identifier (e.g. ``"breeding-atlas"``).
            **params: Extra metadata fields (run parameters, counts, etc.).

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)

        meta: dict[str, Any] = {
            "source": source,
            "written_at": datetime.now(UTC).isoformat(),
        }
        if params:
            meta.update(params)

        with full.open("w") as f:
            json.dump({"meta": meta, "data": data}, f, indent=2)

        return full

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return full
