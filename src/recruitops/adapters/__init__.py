"""Collaborator contracts and their implementations."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from ..schemas import (
    DeepResearchResponse,
    DraftSnapshot,
    EnrichmentRow,
    MatchResponse,
    QuickResearchResponse,
)


@runtime_checkable
class MatcherService(Protocol):
    """Offset-paginated candidate matcher."""

    async def fetch(self, job_id: str, *, limit: int, offset: int) -> MatchResponse:
        """Return one page of matched candidates for ``job_id``."""


@runtime_checkable
class QuickResearchService(Protocol):
    """Identity and score verification in a single grouped round trip."""

    async def research(
        self,
        candidates: Sequence[dict[str, Any]],
        job: dict[str, Any] | None,
        *,
        skip_research: bool,
        force_refresh: bool,
    ) -> QuickResearchResponse:
        """Verify ``candidates`` against ``job``."""


@runtime_checkable
class DeepResearchService(Protocol):
    """Personalization-hook generation."""

    async def research(
        self,
        candidate_ids: Sequence[str],
        job_id: str | None,
        *,
        force_refresh: bool,
        batch_size: int,
    ) -> DeepResearchResponse:
        """Generate hooks for one batch of candidates."""


@runtime_checkable
class EnrichmentQueue(Protocol):
    """External queue of enrichment requests."""

    async def upsert(self, rows: Sequence[EnrichmentRow]) -> None:
        """Insert rows, merging on (candidate_id, signal_type)."""


@runtime_checkable
class DraftPersistence(Protocol):
    """Remote store of resumable shortlist drafts."""

    async def load(self, session_key: str) -> DraftSnapshot | None:
        """Return the stored draft for ``session_key`` if one exists."""

    async def save(self, snapshot: DraftSnapshot) -> None:
        """Persist ``snapshot`` under its session key."""


@runtime_checkable
class SnapshotStore(Protocol):
    """Local fallback copy of the last draft."""

    def read(self, session_key: str) -> DraftSnapshot | None:
        """Return the local snapshot, if any."""

    def write(self, snapshot: DraftSnapshot) -> None:
        """Store ``snapshot`` locally."""

    def delete(self, session_key: str) -> None:
        """Drop the local snapshot."""


from .http import (  # noqa: E402
    HTTPDeepResearchService,
    HTTPDraftPersistence,
    HTTPEnrichmentQueue,
    HTTPMatcherService,
    HTTPQuickResearchService,
)
from .local import FileSnapshotStore, MemorySnapshotStore  # noqa: E402
from .memory import InMemoryDraftPersistence, InMemoryEnrichmentQueue  # noqa: E402

__all__ = [
    "MatcherService",
    "QuickResearchService",
    "DeepResearchService",
    "EnrichmentQueue",
    "DraftPersistence",
    "SnapshotStore",
    "HTTPMatcherService",
    "HTTPQuickResearchService",
    "HTTPDeepResearchService",
    "HTTPEnrichmentQueue",
    "HTTPDraftPersistence",
    "FileSnapshotStore",
    "MemorySnapshotStore",
    "InMemoryEnrichmentQueue",
    "InMemoryDraftPersistence",
]
