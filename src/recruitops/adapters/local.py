"""Local fallback snapshots of the shortlist draft."""

from __future__ import annotations

import json
import re
from pathlib import Path

import structlog

from ..schemas import DraftSnapshot

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]+")


class FileSnapshotStore:
    """One JSON file per session key under ``base_path``."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)
        self._logger = structlog.get_logger(__name__)

    def _path(self, session_key: str) -> Path:
        return self._base_path / f"{_UNSAFE.sub('_', session_key)}.json"

    def read(self, session_key: str) -> DraftSnapshot | None:
        path = self._path(session_key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return DraftSnapshot.model_validate(data)
        except (OSError, ValueError) as exc:
            self._logger.warning("snapshot.unreadable", path=str(path), error=str(exc))
            return None

    def write(self, snapshot: DraftSnapshot) -> None:
        path = self._path(snapshot.session_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(snapshot.model_dump(mode="json"), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    def delete(self, session_key: str) -> None:
        self._path(session_key).unlink(missing_ok=True)


class MemorySnapshotStore:
    """Snapshot store scoped to the current process."""

    def __init__(self) -> None:
        self._snapshots: dict[str, DraftSnapshot] = {}

    def read(self, session_key: str) -> DraftSnapshot | None:
        return self._snapshots.get(session_key)

    def write(self, snapshot: DraftSnapshot) -> None:
        self._snapshots[snapshot.session_key] = snapshot

    def delete(self, session_key: str) -> None:
        self._snapshots.pop(session_key, None)
