from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

CONTACT_INFO = "contact_info"


class EnrichmentRow(BaseModel):
    """Queue row requesting enrichment; unique on (candidate_id, signal_type)."""

    candidate_id: str
    signal_type: str = CONTACT_INFO
    status: Literal["pending"] = "pending"
    priority: int = 3

    model_config = ConfigDict(extra="forbid")

    @property
    def key(self) -> tuple[str, str]:
        return self.candidate_id, self.signal_type
