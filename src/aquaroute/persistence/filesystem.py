"""File-based persistence for optimized routes."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config import settings
from ..models.domain import OptimizationTelemetry, Route

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class FileStorage:
    """Thin wrapper around the data root for storing JSON outputs."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "routes") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{_UNSAFE_CHARS.sub('_', prefix)}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, ensure_ascii=False, indent=indent)


class FileRouteRepository:
    """Stores each route (and its telemetry, if any) in its own run directory."""

    def __init__(self, storage: FileStorage | None = None) -> None:
        self.storage = storage or FileStorage()

    def save(self, route: Route, telemetry: OptimizationTelemetry | None = None) -> Path:
        run_dir = self.storage.make_run_directory(prefix=f"routes_{route.owner_id}")
        self.storage.write_json(run_dir / "route.json", route.to_dict())
        if telemetry is not None:
            self.storage.write_json(run_dir / "telemetry.json", telemetry.to_dict())
        return run_dir
