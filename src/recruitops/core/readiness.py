"""Contact-readiness predicates shared by filters, sorts, stats and badges."""

from __future__ import annotations

from ..schemas import Candidate

ENRICHED_SOURCES = frozenset(
    source.lower() for source in ("Whitepages", "PDL", "Apollo", "Hunter", "Clearbit", "ZoomInfo")
)
READY_ENRICHMENT_TIERS = frozenset({"platinum", "gold"})


def _filled(value: str | None) -> bool:
    return bool(value and value.strip())


def is_enriched_personal(candidate: Candidate) -> bool:
    if candidate.is_enriched:
        return True
    source = (candidate.enrichment_source or "").strip().lower()
    return source in ENRICHED_SOURCES


def is_contact_ready(candidate: Candidate) -> bool:
    if _filled(candidate.personal_mobile) or _filled(candidate.personal_email):
        return True
    if candidate.has_personal_contact:
        return True
    if (candidate.enrichment_tier or "").strip().lower() in READY_ENRICHMENT_TIERS:
        return True
    return is_enriched_personal(candidate)


def needs_enrichment(candidate: Candidate) -> bool:
    return candidate.needs_enrichment and not is_enriched_personal(candidate)


def is_local(candidate: Candidate, target_state: str | None) -> bool:
    target = (target_state or "").strip().upper()
    if not target:
        return False
    return (candidate.state or "").strip().upper() == target
