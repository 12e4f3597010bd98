"""Score label to tier bucket mapping."""

from __future__ import annotations

TOP_TIER = 1
LOWEST_TIER = 4

_TIER_BY_LABEL: dict[str, int] = {
    "A+": 1,
    "A": 1,
    "A-": 2,
    "B+": 2,
    "B": 3,
    "B-": 3,
}

# Presentation order for the score sort; unknown labels rank after all of these.
SCORE_RANK: dict[str, int] = {
    label: rank
    for rank, label in enumerate(["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D"])
}


def normalize_label(label: str | None) -> str:
    if not label:
        return ""
    return str(label).strip().upper()


def classify_tier(label: str | None) -> int:
    """Return the tier (1 = best) for a score label; anything unrecognized is tier 4."""
    return _TIER_BY_LABEL.get(normalize_label(label), LOWEST_TIER)


def score_rank(label: str | None) -> int:
    return SCORE_RANK.get(normalize_label(label), len(SCORE_RANK))


def priority_for_tier(tier: int) -> int:
    """Enrichment queue priority for a tier; lower values are served first."""
    return min(max(tier, 1), 3)
