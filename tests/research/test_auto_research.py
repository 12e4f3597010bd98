from __future__ import annotations

import pytest

from recruitops.adapters import InMemoryEnrichmentQueue
from recruitops.core import CandidatePool
from recruitops.enrichment import EnrichmentQueueSubmitter
from recruitops.errors import NetworkFailure, Notice
from recruitops.pipeline import CandidatePipeline, PipelineConfig
from recruitops.research import ResearchOrchestrator
from recruitops.schemas import DeepResearchResponse, MatchResponse, QuickResearchResponse


class FakeMatcher:
    def __init__(self, candidates: list[dict]):
        self._candidates = candidates

    async def fetch(self, job_id, *, limit, offset):
        page = self._candidates[offset : offset + limit]
        return MatchResponse.model_validate(
            {
                "job": {"id": job_id, "state": "TX"},
                "summary": {"total_matched": len(self._candidates)},
                "candidates": page,
            }
        )


class CountingQuickService:
    def __init__(self, *, fail: bool = False):
        self.calls: list[list[str]] = []
        self._fail = fail

    async def research(self, candidates, job, *, skip_research, force_refresh):
        self.calls.append([candidate["id"] for candidate in candidates])
        if self._fail:
            raise NetworkFailure("quick research unavailable")
        return QuickResearchResponse.model_validate(
            {"results": [{"id": candidate["id"]} for candidate in candidates]}
        )


class UnusedDeepService:
    async def research(self, candidate_ids, job_id, *, force_refresh, batch_size):
        return DeepResearchResponse()


def top_tier(count: int, *, offset: int = 0) -> list[dict]:
    return [{"id": f"t{i}", "unified_score": "A"} for i in range(offset, offset + count)]


def build_pipeline(candidates: list[dict], quick: CountingQuickService, notices: list[Notice] | None = None):
    pool = CandidatePool()
    orchestrator = ResearchOrchestrator(pool=pool, quick_service=quick, deep_service=UnusedDeepService())
    return CandidatePipeline(
        matcher=FakeMatcher(candidates),
        orchestrator=orchestrator,
        submitter=EnrichmentQueueSubmitter(queue=InMemoryEnrichmentQueue(), pool=pool),
        pool=pool,
        config=PipelineConfig(page_size=50, auto_research_max=10),
        notifier=notices.append if notices is not None else None,
    )


@pytest.mark.asyncio
async def test_no_auto_research_without_unresearched_top_tier():
    quick = CountingQuickService()
    pipeline = build_pipeline([{"id": "b1", "unified_score": "B"}], quick)

    await pipeline.load_pool("J-1")

    assert quick.calls == []


@pytest.mark.asyncio
async def test_auto_research_fires_for_ten_top_tier():
    quick = CountingQuickService()
    pipeline = build_pipeline(top_tier(10) + [{"id": "b1", "unified_score": "B"}], quick)

    await pipeline.load_pool("J-1")

    assert len(quick.calls) == 1
    assert sorted(quick.calls[0]) == sorted(f"t{i}" for i in range(10))
    assert all(pipeline.pool.get(f"t{i}").researched for i in range(10))


@pytest.mark.asyncio
async def test_auto_research_does_not_fire_for_eleven_top_tier():
    quick = CountingQuickService()
    pipeline = build_pipeline(top_tier(11), quick)

    await pipeline.load_pool("J-1")

    assert quick.calls == []


@pytest.mark.asyncio
async def test_auto_research_fires_at_most_once_per_load():
    quick = CountingQuickService()
    pipeline = build_pipeline(top_tier(3) + [{"id": "late", "unified_score": "A+", "researched": False}], quick)
    await pipeline.load_pool("J-1")
    assert len(quick.calls) == 1

    pipeline.pool.upsert("t0", {"researched": False})
    assert await pipeline.maybe_auto_research() is None
    assert len(quick.calls) == 1

    await pipeline.load_pool("J-1")
    assert len(quick.calls) == 2


@pytest.mark.asyncio
async def test_auto_research_failure_becomes_a_notice():
    notices: list[Notice] = []
    quick = CountingQuickService(fail=True)
    pipeline = build_pipeline(top_tier(2), quick, notices)

    await pipeline.load_pool("J-1")

    assert len(quick.calls) == 1
    assert [notice.level for notice in notices] == ["warning"]
    assert isinstance(notices[0].error, NetworkFailure)
