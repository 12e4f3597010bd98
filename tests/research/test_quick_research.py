from __future__ import annotations

import asyncio
from typing import Any

import pytest

from recruitops.core import CandidatePool
from recruitops.errors import NetworkFailure
from recruitops.research import ResearchOrchestrator
from recruitops.schemas import Candidate, DeepResearchResponse, JobSummary, QuickResearchResponse


class FakeQuickService:
    def __init__(self, *, fail: bool = False, gate: asyncio.Event | None = None, grades: dict[str, str] | None = None):
        self.calls: list[dict[str, Any]] = []
        self._fail = fail
        self._gate = gate
        self._grades = grades or {}

    async def research(self, candidates, job, *, skip_research, force_refresh):
        self.calls.append(
            {
                "ids": [candidate["id"] for candidate in candidates],
                "job": job,
                "skip_research": skip_research,
                "force_refresh": force_refresh,
            }
        )
        if self._gate is not None:
            await self._gate.wait()
        if self._fail:
            raise NetworkFailure("quick research returned HTTP 502", status_code=502)
        return QuickResearchResponse.model_validate(
            {
                "results": [
                    {
                        "id": candidate["id"],
                        "verified_npi": True,
                        "npi_data": {"npi": 1234567890},
                        "match_analysis": {
                            "grade": self._grades.get(candidate["id"], "A"),
                            "score": 88,
                            "reasons": ["ICU experience"],
                        },
                        "research": {"credentials_summary": "Board certified"},
                    }
                    for candidate in candidates
                ]
            }
        )


class UnusedDeepService:
    async def research(self, candidate_ids, job_id, *, force_refresh, batch_size):
        return DeepResearchResponse()


def build_orchestrator(pool: CandidatePool, quick: FakeQuickService) -> ResearchOrchestrator:
    return ResearchOrchestrator(pool=pool, quick_service=quick, deep_service=UnusedDeepService())


def build_pool(*candidates: Candidate) -> CandidatePool:
    return CandidatePool(candidates)


@pytest.mark.asyncio
async def test_quick_research_sends_one_grouped_call_and_merges_by_id():
    pool = build_pool(
        Candidate(id="a", first_name="Ana", unified_score="B"),
        Candidate(id="b", first_name="Ben", unified_score="C"),
        Candidate(id="c", first_name="Cy", unified_score="B"),
    )
    quick = FakeQuickService(grades={"a": "A+", "b": "B+"})
    orchestrator = build_orchestrator(pool, quick)

    summary = await orchestrator.quick_research(["b", "a"], job=JobSummary(id="J-1", state="TX"))

    assert len(quick.calls) == 1
    assert quick.calls[0]["ids"] == ["b", "a"]
    assert quick.calls[0]["job"]["id"] == "J-1"
    assert sorted(summary.merged) == ["a", "b"]
    assert pool.get("a").unified_score == "A+"
    assert pool.get("a").researched is True
    assert pool.get("a").research_depth == "quick"
    assert pool.get("a").npi == "1234567890"
    assert pool.get("a").credentials_summary == "Board certified"
    assert pool.get("b").match_strength == 88.0
    assert pool.get("c").researched is False


@pytest.mark.asyncio
async def test_quick_research_skips_researched_unless_forced():
    pool = build_pool(Candidate(id="a", researched=True), Candidate(id="b"))
    quick = FakeQuickService()
    orchestrator = build_orchestrator(pool, quick)

    summary = await orchestrator.quick_research(["a", "b"])
    assert quick.calls[0]["ids"] == ["b"]
    assert summary.skipped == 1

    forced = await orchestrator.quick_research(["a", "b"], force_refresh=True)
    assert quick.calls[1]["ids"] == ["a", "b"]
    assert quick.calls[1]["force_refresh"] is True
    assert forced.skipped == 0


@pytest.mark.asyncio
async def test_score_refresh_resends_without_marking_researched():
    pool = build_pool(Candidate(id="a", researched=True, unified_score="B"), Candidate(id="b", unified_score="C"))
    quick = FakeQuickService(grades={"a": "A", "b": "A-"})
    orchestrator = build_orchestrator(pool, quick)

    await orchestrator.quick_research(["a", "b"], skip_research=True)

    assert quick.calls[0]["ids"] == ["a", "b"]
    assert quick.calls[0]["skip_research"] is True
    assert pool.get("b").unified_score == "A-"
    assert pool.get("b").researched is False


@pytest.mark.asyncio
async def test_quick_research_counts_unknown_ids_and_sends_nothing_for_empty():
    pool = build_pool(Candidate(id="a", researched=True))
    quick = FakeQuickService()
    orchestrator = build_orchestrator(pool, quick)

    summary = await orchestrator.quick_research(["a", "ghost"])

    assert quick.calls == []
    assert summary.unknown == 1
    assert summary.skipped == 1
    assert summary.processed == 0


@pytest.mark.asyncio
async def test_quick_research_failure_propagates_and_releases_claims():
    pool = build_pool(Candidate(id="a"))
    orchestrator = build_orchestrator(pool, FakeQuickService(fail=True))

    with pytest.raises(NetworkFailure):
        await orchestrator.quick_research(["a"])

    assert orchestrator.in_flight("quick") == frozenset()
    assert pool.get("a").researched is False


@pytest.mark.asyncio
async def test_concurrent_request_for_in_flight_candidate_is_rejected():
    pool = build_pool(Candidate(id="a"), Candidate(id="b"))
    gate = asyncio.Event()
    quick = FakeQuickService(gate=gate)
    orchestrator = build_orchestrator(pool, quick)

    first = asyncio.create_task(orchestrator.quick_research(["a"]))
    await asyncio.sleep(0)
    assert orchestrator.is_researching("a", "quick")

    second_task = asyncio.create_task(orchestrator.quick_research(["a", "b"]))
    await asyncio.sleep(0)
    gate.set()
    _, second = await asyncio.gather(first, second_task)

    assert second.rejected == 1
    assert [call["ids"] for call in quick.calls] == [["a"], ["b"]]
    assert orchestrator.in_flight("quick") == frozenset()


@pytest.mark.asyncio
async def test_results_for_a_replaced_pool_are_discarded():
    pool = build_pool(Candidate(id="a", unified_score="C"))
    gate = asyncio.Event()
    orchestrator = build_orchestrator(pool, FakeQuickService(gate=gate))

    task = asyncio.create_task(orchestrator.quick_research(["a"]))
    await asyncio.sleep(0)
    pool.replace([Candidate(id="a", unified_score="C")])
    gate.set()
    summary = await task

    assert summary.discarded == 1
    assert summary.merged == []
    assert pool.get("a").unified_score == "C"
    assert pool.get("a").researched is False
