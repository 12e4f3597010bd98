"""Error taxonomy and non-blocking notices."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal


class PipelineError(Exception):
    """Base class for orchestration failures."""


class NetworkFailure(PipelineError):
    """Raised when a collaborator call is rejected or returns a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None, service: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.service = service


class PoolLoadError(PipelineError):
    """Raised when the initial candidate fetch fails; blocks the pool view."""


class PartialBatchFailure(PipelineError):
    """One deep-research batch failed; the remaining batches still run."""

    def __init__(self, batch_index: int, candidate_ids: list[str], cause: BaseException):
        super().__init__(f"Deep research batch {batch_index} failed: {cause}")
        self.batch_index = batch_index
        self.candidate_ids = candidate_ids
        self.cause = cause


class DraftSyncFailure(PipelineError):
    """Remote draft write failed; local state stays authoritative and dirty."""


class QueueSubmitFailure(PipelineError):
    """Enrichment queue insert failed."""


NoticeLevel = Literal["info", "success", "warning", "error"]


@dataclass(slots=True)
class Notice:
    """Non-blocking notification surfaced to the owning view."""

    level: NoticeLevel
    message: str
    error: PipelineError | None = None


Notifier = Callable[[Notice], None]


__all__ = [
    "PipelineError",
    "NetworkFailure",
    "PoolLoadError",
    "PartialBatchFailure",
    "DraftSyncFailure",
    "QueueSubmitFailure",
    "Notice",
    "NoticeLevel",
    "Notifier",
]
