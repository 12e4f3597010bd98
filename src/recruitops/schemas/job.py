from __future__ import annotations

from typing import Any

from pydantic import Field

from .base import WireModel
from .candidate import Candidate


class JobSummary(WireModel):
    """Job the pool was matched against."""

    id: str
    name: str | None = None
    facility: str | None = None
    specialty: str | None = None
    location: str | None = None
    state: str = ""
    pay_rate: float | None = None
    bill_rate: float | None = None


class TierBreakdown(WireModel):
    a_tier: int = 0
    b_tier: int = 0
    c_tier: int = 0


class MatchSummary(WireModel):
    """Matcher-side summary of the full match set."""

    total_matched: int = 0
    returned: int = 0
    tier_breakdown: TierBreakdown = Field(default_factory=TierBreakdown)
    priority_breakdown: dict[str, Any] = Field(default_factory=dict)
    ready_to_contact: int = 0
    needs_enrichment: int = 0


class MatchResponse(WireModel):
    """One page of matcher output."""

    job: JobSummary | None = None
    summary: MatchSummary = Field(default_factory=MatchSummary)
    candidates: list[Candidate] = Field(default_factory=list)
