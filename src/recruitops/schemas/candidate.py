from __future__ import annotations

from pydantic import Field

from .base import WireModel


class Personalization(WireModel):
    """Outreach hooks produced by deep research."""

    icebreaker: str | None = None
    talking_points: list[str] = Field(default_factory=list)
    personalization_hook: str | None = None
    hook_type: str | None = None
    research_summary: str | None = None
    connection: str | None = None
    sms_hook: str | None = None


class Candidate(WireModel):
    """Matched candidate as rendered in the pool."""

    id: str
    first_name: str = ""
    last_name: str = ""
    specialty: str = ""
    state: str = ""
    city: str | None = None
    licenses: list[str] = Field(default_factory=list)
    licenses_count: int | None = None
    unified_score: str | None = None
    match_strength: float = 0.0
    source: str | None = None

    enrichment_tier: str | None = None
    enrichment_source: str | None = None
    is_enriched: bool = False
    has_personal_contact: bool = False
    needs_enrichment: bool = False
    personal_mobile: str | None = None
    personal_email: str | None = None
    work_email: str | None = None
    work_phone: str | None = None

    researched: bool = False
    deep_researched: bool = False
    research_depth: str | None = None
    confidence: str | None = None
    from_cache: bool = False

    verified_npi: bool = False
    npi: str | None = None
    verified_specialty: str | None = None
    verified_licenses: list[str] = Field(default_factory=list)
    credentials_summary: str | None = None
    professional_highlights: list[str] = Field(default_factory=list)
    match_reasons: list[str] = Field(default_factory=list)
    match_concerns: list[str] = Field(default_factory=list)
    icebreaker: str | None = None
    talking_points: list[str] = Field(default_factory=list)

    personalization: Personalization = Field(default_factory=Personalization)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def license_total(self) -> int:
        if self.licenses_count is not None:
            return self.licenses_count
        return len(self.licenses)
