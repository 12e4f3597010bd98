"""Deduplicating submission of contact-info requests to the enrichment queue."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import structlog

from .adapters import EnrichmentQueue
from .core import CandidatePool, is_contact_ready, pending
from .errors import Notice, Notifier, QueueSubmitFailure
from .schemas import CONTACT_INFO, EnrichmentRow


@dataclass(slots=True)
class SubmissionOutcome:
    """Aggregate result of one submission; never reported per item."""

    ok: bool
    submitted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: QueueSubmitFailure | None = None

    @property
    def message(self) -> str:
        if not self.ok:
            return f"Failed to queue enrichment: {self.error}"
        if not self.submitted:
            return "Nothing to queue for enrichment"
        return f"Queued {len(self.submitted)} candidate(s) for enrichment"


class EnrichmentQueueSubmitter:
    """Submit one queue row per candidate lacking contact info."""

    def __init__(
        self,
        *,
        queue: EnrichmentQueue,
        pool: CandidatePool | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._queue = queue
        self._pool = pool
        self._notifier = notifier
        self._submitted: set[tuple[str, str]] = set()
        self._logger = structlog.get_logger(__name__)

    def _is_done(self, candidate_id: str, signal_type: str) -> bool:
        if (candidate_id, signal_type) in self._submitted:
            return True
        if self._pool is None or signal_type != CONTACT_INFO:
            return False
        candidate = self._pool.get(candidate_id)
        return candidate is not None and is_contact_ready(candidate)

    async def submit(
        self,
        ids: Iterable[str],
        *,
        priority: int,
        signal_type: str = CONTACT_INFO,
        force: bool = False,
    ) -> SubmissionOutcome:
        """Upsert one pending row per id keyed on (candidate_id, signal_type).

        Failures are reported through the returned outcome and the notifier,
        never raised.
        """
        split = pending(ids, lambda candidate_id: self._is_done(candidate_id, signal_type), force)
        outcome = SubmissionOutcome(ok=True, skipped=split.skipped)
        if not split.pending:
            self._notify(outcome)
            return outcome

        rows = [
            EnrichmentRow(candidate_id=candidate_id, signal_type=signal_type, priority=priority)
            for candidate_id in split.pending
        ]
        try:
            await self._queue.upsert(rows)
        except Exception as exc:  # noqa: BLE001
            outcome.ok = False
            outcome.error = QueueSubmitFailure(str(exc))
            self._logger.warning(
                "enrichment.submit_failed",
                count=len(rows),
                signal_type=signal_type,
                error=str(exc),
            )
            self._notify(outcome)
            return outcome

        outcome.submitted = list(split.pending)
        self._submitted.update((candidate_id, signal_type) for candidate_id in split.pending)
        self._logger.info(
            "enrichment.submitted",
            count=len(rows),
            skipped=len(split.skipped),
            signal_type=signal_type,
            priority=priority,
        )
        self._notify(outcome)
        return outcome

    def _notify(self, outcome: SubmissionOutcome) -> None:
        if self._notifier is None:
            return
        if outcome.ok:
            level = "success" if outcome.submitted else "info"
            self._notifier(Notice(level=level, message=outcome.message))
        else:
            self._notifier(Notice(level="error", message=outcome.message, error=outcome.error))
