"""Wire shapes exchanged with the research providers."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .base import WireModel


class MatchAnalysis(WireModel):
    grade: str | None = None
    score: float | None = None
    reasons: list[str] = Field(default_factory=list)
    icebreaker: str | None = None
    talking_points: list[str] = Field(default_factory=list)
    concerns: list[str] = Field(default_factory=list)


class QuickResearchResult(WireModel):
    """Identity and score verification for a single candidate."""

    id: str
    verified_npi: bool = False
    npi_data: dict[str, Any] = Field(default_factory=dict)
    match_analysis: MatchAnalysis = Field(default_factory=MatchAnalysis)
    research: dict[str, Any] = Field(default_factory=dict)
    from_cache: bool = False


class QuickResearchResponse(WireModel):
    results: list[QuickResearchResult] = Field(default_factory=list)


class DeepResearchResult(WireModel):
    """Personalization hooks for a single candidate."""

    candidate_id: str
    icebreaker: str | None = None
    talking_points: list[str] = Field(default_factory=list)
    personalization_hook: str | None = None
    hook_type: str | None = None
    research_summary: str | None = None
    confidence: str | None = None
    from_cache: bool = False
    deep_research_done: bool | None = None
    connection: str | None = None
    sms_hook: str | None = None


class DeepResearchResponse(WireModel):
    results: list[DeepResearchResult] = Field(default_factory=list)
