"""Pool loading, auto-research and shortlist hand-off for one job."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

import structlog
from pydantic import ValidationError

from .adapters import MatcherService
from .core import (
    LOWEST_TIER,
    TOP_TIER,
    CandidatePool,
    PoolStats,
    QuickFilter,
    ShortlistStats,
    SortKey,
    classify_tier,
    needs_enrichment,
    pool_stats,
    priority_for_tier,
    render_pool,
    shortlist_stats,
    split_local,
)
from .drafts import ShortlistDraftStore
from .enrichment import EnrichmentQueueSubmitter, SubmissionOutcome
from .errors import NetworkFailure, Notice, Notifier, PoolLoadError
from .research import QuickResearchSummary, ResearchOrchestrator
from .schemas import Candidate, JobSummary, MatchSummary, ShortlistEntry


@dataclass
class PipelineConfig:
    """Paging and auto-research limits."""

    page_size: int = 50
    max_pages: int = 20
    auto_research_max: int = 10


def _as_failure(exc: NetworkFailure | ValidationError) -> NetworkFailure:
    if isinstance(exc, NetworkFailure):
        return exc
    return NetworkFailure(f"Malformed payload: {exc.error_count()} error(s)")


class PoolViewState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class CandidatePipeline:
    """Candidate pool for one job, from matcher fetch to finalized shortlist."""

    def __init__(
        self,
        *,
        matcher: MatcherService,
        orchestrator: ResearchOrchestrator,
        submitter: EnrichmentQueueSubmitter,
        pool: CandidatePool,
        config: PipelineConfig | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._matcher = matcher
        self._config = config or PipelineConfig()
        self._notifier = notifier
        self._logger = structlog.get_logger(__name__)
        self.orchestrator = orchestrator
        self.submitter = submitter
        self.pool = pool
        self.view_state = PoolViewState.IDLE
        self.error: PoolLoadError | None = None
        self.job_id: str | None = None
        self.job: JobSummary | None = None
        self.summary = MatchSummary()
        self._offset = 0
        self._auto_research_fired = False

    @property
    def target_state(self) -> str:
        return self.job.state if self.job else ""

    @property
    def has_more(self) -> bool:
        return self._offset < self.summary.total_matched

    # loading

    async def load_pool(self, job_id: str, *, auto_research: bool = True) -> list[Candidate]:
        """Fetch the first page for ``job_id`` and replace the pool.

        A failure here is fatal to the view: state becomes ``ERROR`` and
        :class:`PoolLoadError` is raised; :meth:`retry` reloads.
        """
        self.job_id = job_id
        self.view_state = PoolViewState.LOADING
        self.error = None
        try:
            response = await self._matcher.fetch(job_id, limit=self._config.page_size, offset=0)
        except (NetworkFailure, ValidationError) as exc:
            self.view_state = PoolViewState.ERROR
            self.error = PoolLoadError(f"Failed to load candidates for job {job_id}: {exc}")
            self._logger.error("pool.load_failed", job_id=job_id, error=str(exc))
            raise self.error from exc

        self.pool.replace(response.candidates)
        self.job = response.job or self.job
        self.summary = response.summary
        self._offset = len(response.candidates)
        self._auto_research_fired = False
        self.view_state = PoolViewState.READY
        self._logger.info(
            "pool.loaded",
            job_id=job_id,
            candidates=len(self.pool),
            total_matched=self.summary.total_matched,
            generation=self.pool.generation,
        )
        if auto_research:
            await self.maybe_auto_research()
        return list(self.pool)

    async def load_more(self) -> int:
        """Append the next matcher page; failures are reported, not raised."""
        if self.job_id is None or not self.has_more:
            return 0
        token = self.pool.token
        try:
            response = await self._matcher.fetch(
                self.job_id, limit=self._config.page_size, offset=self._offset
            )
        except (NetworkFailure, ValidationError) as exc:
            self._logger.warning("pool.load_more_failed", job_id=self.job_id, offset=self._offset, error=str(exc))
            self._notify(Notice(level="error", message="Could not load more candidates", error=_as_failure(exc)))
            return 0
        if token.cancelled:
            return 0
        self._offset += len(response.candidates)
        if not response.candidates:
            self._offset = self.summary.total_matched
        return self.pool.extend(response.candidates)

    async def load_all(self, job_id: str, *, auto_research: bool = True) -> list[Candidate]:
        await self.load_pool(job_id, auto_research=False)
        pages = 1
        while self.has_more and pages < self._config.max_pages:
            if not await self.load_more():
                break
            pages += 1
        if auto_research:
            await self.maybe_auto_research()
        return list(self.pool)

    async def retry(self) -> list[Candidate]:
        if self.job_id is None:
            raise PoolLoadError("No job to reload")
        return await self.load_pool(self.job_id)

    # research

    def unresearched_top_tier(self) -> list[str]:
        return [
            candidate.id
            for candidate in self.pool
            if classify_tier(candidate.unified_score) == TOP_TIER and not candidate.researched
        ]

    async def maybe_auto_research(self) -> QuickResearchSummary | None:
        """Quick-research top-tier candidates once per pool load when few are unresearched."""
        if self._auto_research_fired:
            return None
        self._auto_research_fired = True

        ids = self.unresearched_top_tier()
        if not 0 < len(ids) <= self._config.auto_research_max:
            self._logger.info("research.auto_skipped", unresearched_top_tier=len(ids))
            return None

        self._logger.info("research.auto_triggered", count=len(ids))
        try:
            return await self.orchestrator.quick_research(ids, job=self.job, token=self.pool.token)
        except (NetworkFailure, ValidationError) as exc:
            self._logger.warning("research.auto_failed", error=str(exc))
            self._notify(Notice(level="warning", message="Automatic research failed", error=_as_failure(exc)))
            return None

    # presentation

    def view(
        self,
        *,
        quick_filter: QuickFilter | str = QuickFilter.ALL,
        query: str | None = None,
        sort_key: SortKey | str = SortKey.BEST_MATCH,
    ) -> list[Candidate]:
        return render_pool(
            self.pool,
            quick_filter=quick_filter,
            query=query,
            sort_key=sort_key,
            target_state=self.target_state,
        )

    def sections(
        self,
        *,
        quick_filter: QuickFilter | str = QuickFilter.ALL,
        query: str | None = None,
        sort_key: SortKey | str = SortKey.BEST_MATCH,
    ) -> tuple[list[Candidate], list[Candidate]]:
        """The rendered view split into local and other candidates."""
        return split_local(
            self.view(quick_filter=quick_filter, query=query, sort_key=sort_key), self.target_state
        )

    def stats(self) -> PoolStats:
        return pool_stats(self.pool, self.target_state)

    # shortlist

    def shortlist_stats(self, store: ShortlistDraftStore) -> ShortlistStats:
        return shortlist_stats(store.entries, self.target_state)

    def add_top_tier(self, store: ShortlistDraftStore) -> int:
        top = [c for c in self.pool if classify_tier(c.unified_score) == TOP_TIER]
        return store.add_many(top)

    async def request_contact_info(
        self, ids: Iterable[str] | None = None, *, priority: int | None = None
    ) -> SubmissionOutcome:
        """Queue contact-info enrichment; defaults to every candidate that needs it."""
        if ids is None:
            ids = [c.id for c in self.pool if needs_enrichment(c)]
        ids = list(ids)
        if priority is None:
            tiers = [
                classify_tier(candidate.unified_score)
                for candidate in (self.pool.get(candidate_id) for candidate_id in ids)
                if candidate is not None
            ]
            priority = priority_for_tier(min(tiers, default=LOWEST_TIER))
        return await self.submitter.submit(ids, priority=priority)

    async def finalize(self, store: ShortlistDraftStore) -> list[ShortlistEntry]:
        """Flush the draft and hand the shortlist to the next stage.

        Local state stays authoritative when the flush fails; the entries are
        returned either way.
        """
        if not await store.flush():
            self._logger.warning("pipeline.finalize_unsynced", entries=len(store))
        return store.entries

    def _notify(self, notice: Notice) -> None:
        if self._notifier is not None:
            self._notifier(notice)
