"""In-process collaborators used when no remote service is configured."""

from __future__ import annotations

from typing import Sequence

from ..schemas import DraftSnapshot, EnrichmentRow


class InMemoryEnrichmentQueue:
    """Queue table held in a dict keyed on (candidate_id, signal_type)."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], EnrichmentRow] = {}

    async def upsert(self, rows: Sequence[EnrichmentRow]) -> None:
        for row in rows:
            self._rows[row.key] = row

    def rows(self) -> list[EnrichmentRow]:
        return list(self._rows.values())


class InMemoryDraftPersistence:
    """Draft table keyed by session key."""

    def __init__(self) -> None:
        self._drafts: dict[str, DraftSnapshot] = {}
        self.save_count = 0

    async def load(self, session_key: str) -> DraftSnapshot | None:
        snapshot = self._drafts.get(session_key)
        return snapshot.model_copy(deep=True) if snapshot else None

    async def save(self, snapshot: DraftSnapshot) -> None:
        self._drafts[snapshot.session_key] = snapshot.model_copy(deep=True)
        self.save_count += 1
