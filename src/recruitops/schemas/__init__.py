"""Pydantic schema definitions for pool, research and draft payloads."""

from __future__ import annotations

from .candidate import Candidate, Personalization
from .enrichment import CONTACT_INFO, EnrichmentRow
from .job import JobSummary, MatchResponse, MatchSummary, TierBreakdown
from .research import (
    DeepResearchResponse,
    DeepResearchResult,
    MatchAnalysis,
    QuickResearchResponse,
    QuickResearchResult,
)
from .shortlist import DraftSnapshot, DraftState, DraftStatus, ShortlistEntry

__all__ = [
    "Candidate",
    "Personalization",
    "CONTACT_INFO",
    "EnrichmentRow",
    "JobSummary",
    "MatchResponse",
    "MatchSummary",
    "TierBreakdown",
    "MatchAnalysis",
    "QuickResearchResult",
    "QuickResearchResponse",
    "DeepResearchResult",
    "DeepResearchResponse",
    "DraftSnapshot",
    "DraftState",
    "DraftStatus",
    "ShortlistEntry",
]
