"""Quick and deep research orchestration against the research providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Iterable, Literal

import structlog

from .adapters import DeepResearchService, QuickResearchService
from .core import CancellationToken, CandidatePool, pending
from .errors import PartialBatchFailure
from .schemas import (
    Candidate,
    DeepResearchResponse,
    DeepResearchResult,
    JobSummary,
    QuickResearchResponse,
    QuickResearchResult,
)

ResearchDepth = Literal["quick", "deep"]
ProgressPhase = Literal["dispatch", "merged"]

_QUICK_PAYLOAD_FIELDS = {
    "id",
    "first_name",
    "last_name",
    "specialty",
    "state",
    "city",
    "licenses",
    "npi",
    "unified_score",
    "match_strength",
}
_RESEARCH_TEXT_FIELDS = ("credentials_summary", "verified_specialty")
_RESEARCH_LIST_FIELDS = ("professional_highlights", "verified_licenses")


@dataclass
class OrchestratorConfig:
    """Tuning for research orchestration."""

    batch_size: int = 5
    min_hook_length: int = 60


@dataclass(slots=True)
class ResearchProgress:
    """Progress of one deep-research run, reported per batch."""

    current: int
    total: int
    current_name: str | None = None
    batch: int = 0
    batches: int = 0
    phase: ProgressPhase = "dispatch"


@dataclass(slots=True)
class ResearchJob:
    """Batches and progress for the duration of one orchestration call."""

    depth: ResearchDepth
    batches: list[list[str]]
    progress: ResearchProgress


@dataclass(slots=True)
class QuickResearchSummary:
    requested: int = 0
    processed: int = 0
    skipped: int = 0
    rejected: int = 0
    unknown: int = 0
    merged: list[str] = field(default_factory=list)
    discarded: int = 0


@dataclass(slots=True)
class DeepResearchSummary:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    rejected: int = 0
    unknown: int = 0
    completed: list[str] = field(default_factory=list)
    failures: list[PartialBatchFailure] = field(default_factory=list)
    discarded: int = 0


def chunk(ids: list[str], size: int) -> list[list[str]]:
    return [ids[start : start + size] for start in range(0, len(ids), size)]


class ResearchOrchestrator:
    """Drives quick and deep research and merges results into the pool by id."""

    def __init__(
        self,
        *,
        pool: CandidatePool,
        quick_service: QuickResearchService,
        deep_service: DeepResearchService,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self._pool = pool
        self._quick = quick_service
        self._deep = deep_service
        self._config = config or OrchestratorConfig()
        self._in_flight: dict[ResearchDepth, set[str]] = {"quick": set(), "deep": set()}
        self._logger = structlog.get_logger(__name__)
        self.progress: ResearchProgress | None = None

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def in_flight(self, depth: ResearchDepth) -> frozenset[str]:
        return frozenset(self._in_flight[depth])

    def is_researching(self, candidate_id: str, depth: ResearchDepth = "deep") -> bool:
        return candidate_id in self._in_flight[depth]

    def _claim(self, ids: Iterable[str], depth: ResearchDepth) -> tuple[list[str], list[str]]:
        active = self._in_flight[depth]
        accepted: list[str] = []
        rejected: list[str] = []
        for candidate_id in ids:
            if candidate_id in active:
                rejected.append(candidate_id)
            else:
                active.add(candidate_id)
                accepted.append(candidate_id)
        if rejected:
            self._logger.info("research.rejected_in_flight", depth=depth, candidate_ids=rejected)
        return accepted, rejected

    def _release(self, ids: Iterable[str], depth: ResearchDepth) -> None:
        self._in_flight[depth].difference_update(ids)

    def _known(self, ids: Iterable[str]) -> tuple[list[str], int]:
        requested = list(dict.fromkeys(ids))
        known = [candidate_id for candidate_id in requested if candidate_id in self._pool]
        return known, len(requested) - len(known)

    def _name(self, candidate_id: str) -> str | None:
        candidate = self._pool.get(candidate_id)
        return candidate.full_name or candidate_id if candidate else candidate_id

    # quick research

    async def quick_research(
        self,
        ids: Iterable[str],
        *,
        job: JobSummary | None = None,
        skip_research: bool = False,
        force_refresh: bool = False,
        token: CancellationToken | None = None,
    ) -> QuickResearchSummary:
        """Verify identity and refresh scores for ``ids`` in one grouped call.

        Candidates already researched are skipped unless ``force_refresh`` is
        set; a score refresh (``skip_research``) always re-sends them. A
        top-level failure propagates as :class:`NetworkFailure`.
        """
        token = token or self._pool.token
        known, unknown = self._known(ids)
        summary = QuickResearchSummary(requested=len(known) + unknown, unknown=unknown)
        accepted, rejected = self._claim(known, "quick")
        summary.rejected = len(rejected)

        try:
            split = pending(
                accepted,
                lambda candidate_id: self._pool.get(candidate_id).researched,
                force=force_refresh or skip_research,
            )
            summary.skipped = len(split.skipped)
            if not split.pending:
                return summary

            payload = [
                self._pool.get(candidate_id).model_dump(mode="json", include=_QUICK_PAYLOAD_FIELDS)
                for candidate_id in split.pending
            ]
            self._logger.info(
                "research.quick_started",
                count=len(payload),
                skip_research=skip_research,
                force_refresh=force_refresh,
            )
            response = await self._quick.research(
                payload,
                job.model_dump(mode="json") if job else None,
                skip_research=skip_research,
                force_refresh=force_refresh,
            )
            summary.processed = len(split.pending)
        finally:
            self._release(accepted, "quick")

        self._merge_quick(response, token, summary, skip_research=skip_research)
        self._logger.info(
            "research.quick_finished",
            processed=summary.processed,
            merged=len(summary.merged),
            skipped=summary.skipped,
            discarded=summary.discarded,
        )
        return summary

    def _merge_quick(
        self,
        response: QuickResearchResponse,
        token: CancellationToken,
        summary: QuickResearchSummary,
        *,
        skip_research: bool,
    ) -> None:
        if token.cancelled:
            summary.discarded = len(response.results)
            self._logger.info("research.quick_discarded", token=token.label, count=summary.discarded)
            return
        for result in response.results:
            current = self._pool.get(result.id)
            if current is None:
                continue
            merged = self._pool.upsert(result.id, self._quick_updates(current, result, skip_research))
            if merged is not None:
                summary.merged.append(result.id)

    @staticmethod
    def _quick_updates(
        current: Candidate, result: QuickResearchResult, skip_research: bool
    ) -> dict[str, Any]:
        updates: dict[str, Any] = {
            "verified_npi": result.verified_npi,
            "from_cache": result.from_cache,
        }
        npi = result.npi_data.get("npi") or result.npi_data.get("number")
        if npi:
            updates["npi"] = str(npi)

        analysis = result.match_analysis
        if analysis.grade:
            updates["unified_score"] = analysis.grade
        if analysis.score is not None:
            updates["match_strength"] = float(analysis.score)
        if analysis.reasons:
            updates["match_reasons"] = list(analysis.reasons)
        if analysis.concerns:
            updates["match_concerns"] = list(analysis.concerns)
        if analysis.icebreaker:
            updates["icebreaker"] = analysis.icebreaker
        if analysis.talking_points:
            updates["talking_points"] = list(analysis.talking_points)

        for key in _RESEARCH_TEXT_FIELDS:
            value = result.research.get(key)
            if isinstance(value, str) and value:
                updates[key] = value
        for key in _RESEARCH_LIST_FIELDS:
            value = result.research.get(key)
            if isinstance(value, list) and value:
                updates[key] = [str(item) for item in value]

        if not skip_research:
            updates["researched"] = True
            if current.research_depth != "deep":
                updates["research_depth"] = "quick"
        return updates

    # deep research

    def _work_done(self, result: DeepResearchResult) -> bool:
        if result.deep_research_done is not None:
            return result.deep_research_done
        if not result.from_cache:
            return True
        text = result.personalization_hook or result.icebreaker or ""
        return len(text.strip()) > self._config.min_hook_length

    async def iter_deep_research(
        self,
        ids: Iterable[str],
        *,
        job_id: str | None = None,
        force_refresh: bool = False,
        token: CancellationToken | None = None,
        summary: DeepResearchSummary | None = None,
    ) -> AsyncIterator[ResearchProgress]:
        """Run deep research batch by batch, yielding progress around each call.

        A batch is dispatched only after the previous one resolved and merged.
        Progress is yielded before each call (naming the upcoming candidate)
        and after its merge. Pass ``summary`` to collect the counts.
        """
        token = token or self._pool.token
        summary = summary if summary is not None else DeepResearchSummary()
        known, summary.unknown = self._known(ids)
        accepted, rejected = self._claim(known, "deep")
        summary.rejected = len(rejected)

        try:
            split = pending(
                accepted,
                lambda candidate_id: self._pool.get(candidate_id).deep_researched,
                force=force_refresh,
            )
            self._release(split.skipped, "deep")
            summary.skipped = len(split.skipped)
            summary.total = len(split.pending)

            job = ResearchJob(
                depth="deep",
                batches=chunk(split.pending, self._config.batch_size),
                progress=ResearchProgress(current=0, total=summary.total, batches=0),
            )
            job.progress.batches = len(job.batches)
            self._logger.info(
                "research.deep_started",
                total=summary.total,
                skipped=summary.skipped,
                rejected=summary.rejected,
                batches=len(job.batches),
                force_refresh=force_refresh,
            )

            for index, batch in enumerate(job.batches, start=1):
                job.progress = ResearchProgress(
                    current=summary.processed,
                    total=summary.total,
                    current_name=self._name(batch[0]),
                    batch=index,
                    batches=len(job.batches),
                    phase="dispatch",
                )
                self.progress = job.progress
                yield job.progress

                try:
                    response = await self._deep.research(
                        batch,
                        job_id,
                        force_refresh=force_refresh,
                        batch_size=self._config.batch_size,
                    )
                except Exception as exc:  # noqa: BLE001
                    failure = PartialBatchFailure(index, list(batch), exc)
                    summary.failures.append(failure)
                    self._logger.warning(
                        "research.batch_failed",
                        batch=index,
                        candidate_ids=batch,
                        error=str(exc),
                    )
                else:
                    self._merge_deep(response, token, summary)

                summary.processed += len(batch)
                self._release(batch, "deep")
                job.progress = ResearchProgress(
                    current=summary.processed,
                    total=summary.total,
                    current_name=self._name(batch[-1]),
                    batch=index,
                    batches=len(job.batches),
                    phase="merged",
                )
                self.progress = job.progress
                yield job.progress
        finally:
            self._release(accepted, "deep")

        self._logger.info(
            "research.deep_finished",
            processed=summary.processed,
            completed=len(summary.completed),
            skipped=summary.skipped,
            failed_batches=len(summary.failures),
            discarded=summary.discarded,
        )

    async def deep_research(
        self,
        ids: Iterable[str],
        *,
        job_id: str | None = None,
        force_refresh: bool = False,
        token: CancellationToken | None = None,
        on_progress: Callable[[ResearchProgress], None] | None = None,
    ) -> DeepResearchSummary:
        summary = DeepResearchSummary()
        async for progress in self.iter_deep_research(
            ids, job_id=job_id, force_refresh=force_refresh, token=token, summary=summary
        ):
            if on_progress:
                on_progress(progress)
        self.progress = None
        return summary

    def _merge_deep(
        self,
        response: DeepResearchResponse,
        token: CancellationToken,
        summary: DeepResearchSummary,
    ) -> None:
        if token.cancelled:
            summary.discarded += len(response.results)
            self._logger.info("research.deep_discarded", token=token.label, count=len(response.results))
            return
        for result in response.results:
            current = self._pool.get(result.candidate_id)
            if current is None:
                continue
            hooks = {
                key: value
                for key, value in result.model_dump(
                    include={
                        "icebreaker",
                        "talking_points",
                        "personalization_hook",
                        "hook_type",
                        "research_summary",
                        "connection",
                        "sms_hook",
                    }
                ).items()
                if value not in (None, "", [])
            }
            updates: dict[str, Any] = {
                "personalization": current.personalization.model_copy(update=hooks),
                "from_cache": result.from_cache,
            }
            if result.confidence:
                updates["confidence"] = result.confidence
            if self._work_done(result):
                updates["deep_researched"] = True
                updates["research_depth"] = "deep"
                summary.completed.append(result.candidate_id)
            self._pool.upsert(result.candidate_id, updates)
