"""Shortlist and draft state schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import pendulum
from pendulum.parsing.exceptions import ParserError
from pydantic import Field

from .base import WireModel
from .job import JobSummary

EntrySource = Literal["manual", "bulk"]


class DraftStatus(str, Enum):
    EMPTY = "empty"
    LOADED = "loaded"
    DIRTY = "dirty"
    SAVING = "saving"
    SAVED = "saved"


class ShortlistEntry(WireModel):
    """Candidate-id-keyed subset of a candidate plus selection metadata."""

    id: str
    name: str = ""
    specialty: str = ""
    state: str = ""
    city: str | None = None
    unified_score: str | None = None
    tier: int = 4
    match_strength: float = 0.0
    licenses: list[str] = Field(default_factory=list)
    licenses_count: int = 0
    enrichment_tier: str | None = None
    personal_email: str | None = None
    personal_mobile: str | None = None
    contact_ready: bool = False
    added_at: str = Field(default_factory=lambda: pendulum.now("UTC").to_iso8601_string())
    source: EntrySource = "manual"


class DraftSnapshot(WireModel):
    """Persisted, resumable shortlist snapshot."""

    session_key: str
    job_id: str | None = None
    job: JobSummary | None = None
    campaign_name: str = ""
    candidates: list[ShortlistEntry] = Field(default_factory=list)
    saved_at: str | None = None

    def saved_at_datetime(self) -> pendulum.DateTime | None:
        if not self.saved_at:
            return None
        try:
            parsed = pendulum.parse(self.saved_at)
        except ParserError:
            return None
        return parsed if isinstance(parsed, pendulum.DateTime) else None


@dataclass(slots=True)
class DraftState:
    """In-memory draft: job reference, shortlist and sync bookkeeping."""

    session_key: str
    job: JobSummary | None = None
    entries: dict[str, ShortlistEntry] = field(default_factory=dict)
    campaign_name: str = ""
    status: DraftStatus = DraftStatus.EMPTY
    is_dirty: bool = False
    last_saved: pendulum.DateTime | None = None
    last_error: str | None = None

    @property
    def job_id(self) -> str | None:
        return self.job.id if self.job else None

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(
            session_key=self.session_key,
            job_id=self.job_id,
            job=self.job,
            campaign_name=self.campaign_name,
            candidates=list(self.entries.values()),
            saved_at=pendulum.now("UTC").to_iso8601_string(),
        )
