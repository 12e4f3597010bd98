"""Id-keyed candidate set with explicit cancellation across pool loads."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

import structlog

from ..schemas import Candidate


class CancellationToken:
    """Checked before merging async results into state that may have moved on."""

    __slots__ = ("_cancelled", "label")

    def __init__(self, label: str = "") -> None:
        self._cancelled = False
        self.label = label

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class CandidatePool:
    """Insertion-ordered candidate set keyed by id.

    Async completions merge through :meth:`upsert`, never by position, so
    results for unrelated ids cannot clobber each other. :meth:`replace` starts
    a new pool load and cancels the previous load's token.
    """

    def __init__(self, candidates: Iterable[Candidate] = ()) -> None:
        self._items: dict[str, Candidate] = {}
        self._generation = 0
        self._token = CancellationToken(label="pool-0")
        self._logger = structlog.get_logger(__name__)
        self.extend(candidates)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(list(self._items.values()))

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._items

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def token(self) -> CancellationToken:
        return self._token

    def get(self, candidate_id: str) -> Candidate | None:
        return self._items.get(candidate_id)

    def ids(self) -> list[str]:
        return list(self._items)

    def extend(self, candidates: Iterable[Candidate]) -> int:
        added = 0
        for candidate in candidates:
            if candidate.id not in self._items:
                added += 1
            self._items[candidate.id] = candidate
        return added

    def replace(self, candidates: Iterable[Candidate]) -> CancellationToken:
        """Swap in a freshly loaded pool; in-flight work for the old one is cancelled."""
        self._token.cancel()
        self._generation += 1
        self._token = CancellationToken(label=f"pool-{self._generation}")
        self._items = {}
        self.extend(candidates)
        return self._token

    def upsert(self, candidate_id: str, updates: dict[str, Any]) -> Candidate | None:
        """Merge ``updates`` into the candidate with ``candidate_id``.

        Ids that are no longer in the pool are ignored and ``None`` is returned.
        """
        current = self._items.get(candidate_id)
        if current is None:
            self._logger.debug("pool.upsert_unknown_id", candidate_id=candidate_id)
            return None
        merged = current.model_copy(update=updates)
        self._items[candidate_id] = merged
        return merged
