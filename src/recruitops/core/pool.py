"""Quick-filter, search and sort composition over the candidate pool."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Sequence

from ..schemas import Candidate, ShortlistEntry
from .readiness import is_contact_ready, is_enriched_personal, is_local, needs_enrichment
from .tiers import classify_tier, score_rank


class QuickFilter(str, Enum):
    ALL = "all"
    CONTACT_READY = "contact_ready"
    ENRICHED = "enriched"
    LOCAL = "local"
    LICENSES_10 = "licenses_10"
    LICENSES_5 = "licenses_5"
    NEEDS_ENRICHMENT = "needs_enrichment"


class SortKey(str, Enum):
    ENRICHED_FIRST = "enriched_first"
    CONTACT_FIRST = "contact_first"
    BEST_MATCH = "best_match"
    MOST_LICENSES = "most_licenses"
    LOCAL_FIRST = "local_first"
    SCORE = "score"


def _filter_predicate(quick_filter: QuickFilter, target_state: str | None) -> Callable[[Candidate], bool]:
    if quick_filter is QuickFilter.CONTACT_READY:
        return is_contact_ready
    if quick_filter is QuickFilter.ENRICHED:
        return is_enriched_personal
    if quick_filter is QuickFilter.LOCAL:
        return lambda candidate: is_local(candidate, target_state)
    if quick_filter is QuickFilter.LICENSES_10:
        return lambda candidate: candidate.license_total >= 10
    if quick_filter is QuickFilter.LICENSES_5:
        return lambda candidate: candidate.license_total >= 5
    if quick_filter is QuickFilter.NEEDS_ENRICHMENT:
        return needs_enrichment
    return lambda candidate: True


def matches_query(candidate: Candidate, query: str | None) -> bool:
    """Case-insensitive substring match across name, specialty, state and city."""
    needle = (query or "").strip().lower()
    if not needle:
        return True
    haystacks = (
        candidate.full_name,
        candidate.specialty,
        candidate.state,
        candidate.city or "",
    )
    return any(needle in value.lower() for value in haystacks)


def _contact_rank(candidate: Candidate) -> int:
    if is_enriched_personal(candidate):
        return 2
    if is_contact_ready(candidate):
        return 1
    return 0


def _sort_key(sort_key: SortKey, target_state: str | None) -> Callable[[Candidate], tuple]:
    if sort_key is SortKey.ENRICHED_FIRST:
        return lambda c: (-_contact_rank(c), -c.match_strength)
    if sort_key is SortKey.CONTACT_FIRST:
        return lambda c: (-int(is_contact_ready(c)), -c.match_strength)
    if sort_key is SortKey.MOST_LICENSES:
        return lambda c: (-c.license_total,)
    if sort_key is SortKey.LOCAL_FIRST:
        return lambda c: (-int(is_local(c, target_state)), -c.match_strength)
    if sort_key is SortKey.SCORE:
        return lambda c: (score_rank(c.unified_score),)
    return lambda c: (-c.match_strength,)


def render_pool(
    candidates: Iterable[Candidate],
    *,
    quick_filter: QuickFilter | str = QuickFilter.ALL,
    query: str | None = None,
    sort_key: SortKey | str = SortKey.BEST_MATCH,
    target_state: str | None = None,
) -> list[Candidate]:
    """Return the filtered, searched and stably sorted view of the pool."""
    quick_filter = QuickFilter(quick_filter)
    sort_key = SortKey(sort_key)
    keep = _filter_predicate(quick_filter, target_state)
    visible = [c for c in candidates if keep(c) and matches_query(c, query)]
    return sorted(visible, key=_sort_key(sort_key, target_state))


def split_local(
    candidates: Sequence[Candidate], target_state: str | None
) -> tuple[list[Candidate], list[Candidate]]:
    """Partition a rendered view into local and other sections, keeping order."""
    local = [c for c in candidates if is_local(c, target_state)]
    other = [c for c in candidates if not is_local(c, target_state)]
    return local, other


@dataclass(slots=True)
class PoolStats:
    total: int = 0
    tiers: dict[int, int] = field(default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0})
    contact_ready: int = 0
    enriched: int = 0
    needs_enrichment: int = 0
    local: int = 0
    researched: int = 0
    deep_researched: int = 0


def pool_stats(candidates: Iterable[Candidate], target_state: str | None = None) -> PoolStats:
    stats = PoolStats()
    for candidate in candidates:
        stats.total += 1
        stats.tiers[classify_tier(candidate.unified_score)] += 1
        stats.contact_ready += is_contact_ready(candidate)
        stats.enriched += is_enriched_personal(candidate)
        stats.needs_enrichment += needs_enrichment(candidate)
        stats.local += is_local(candidate, target_state)
        stats.researched += candidate.researched
        stats.deep_researched += candidate.deep_researched
    return stats


@dataclass(slots=True)
class ShortlistStats:
    total: int = 0
    contact_ready: int = 0
    local: int = 0
    average_match: int = 0
    in_state_licensed: int = 0


def shortlist_stats(entries: Sequence[ShortlistEntry], target_state: str | None = None) -> ShortlistStats:
    target = (target_state or "").strip().upper()
    stats = ShortlistStats(total=len(entries))
    if not entries:
        return stats
    stats.contact_ready = sum(1 for entry in entries if entry.contact_ready)
    if target:
        stats.local = sum(1 for entry in entries if entry.state.strip().upper() == target)
        stats.in_state_licensed = sum(
            1 for entry in entries if any(lic.strip().upper() == target for lic in entry.licenses)
        )
    stats.average_match = round(sum(entry.match_strength for entry in entries) / len(entries))
    return stats
