"""Pure pool logic: tiers, contact readiness, filtering and the candidate set."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .pending import PendingSplit, pending
from .pool import (
    PoolStats,
    QuickFilter,
    ShortlistStats,
    SortKey,
    matches_query,
    pool_stats,
    render_pool,
    shortlist_stats,
    split_local,
)
from .readiness import is_contact_ready, is_enriched_personal, is_local, needs_enrichment
from .state import CancellationToken, CandidatePool
from .tiers import LOWEST_TIER, TOP_TIER, classify_tier, priority_for_tier, score_rank

__all__ = [
    "PendingSplit",
    "pending",
    "PoolStats",
    "QuickFilter",
    "ShortlistStats",
    "SortKey",
    "matches_query",
    "pool_stats",
    "render_pool",
    "shortlist_stats",
    "split_local",
    "is_contact_ready",
    "is_enriched_personal",
    "is_local",
    "needs_enrichment",
    "CancellationToken",
    "CandidatePool",
    "LOWEST_TIER",
    "TOP_TIER",
    "classify_tier",
    "priority_for_tier",
    "score_rank",
]
