"""Skip-if-already-done selection shared by research and enrichment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable


@dataclass(slots=True)
class PendingSplit:
    """Ids left to process and ids skipped because their work is already done."""

    pending: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def pending(
    ids: Iterable[str],
    is_done: Callable[[str], bool],
    force: bool = False,
) -> PendingSplit:
    """Split ``ids`` into work still to do and work already done.

    Duplicate ids are collapsed, first occurrence wins. With ``force`` every id
    is pending regardless of ``is_done``.
    """
    split = PendingSplit()
    seen: set[str] = set()
    for candidate_id in ids:
        if candidate_id in seen:
            continue
        seen.add(candidate_id)
        if not force and is_done(candidate_id):
            split.skipped.append(candidate_id)
        else:
            split.pending.append(candidate_id)
    return split
