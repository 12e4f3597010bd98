"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class ServicesConfig(BaseModel):
    matcher_url: str | None = None
    quick_research_url: str | None = None
    deep_research_url: str | None = None
    enrichment_queue_url: str | None = None
    drafts_url: str | None = None
    api_key: str | None = None
    timeout: float | None = None


class ResearchConfig(BaseModel):
    batch_size: int = Field(default=5, ge=1)
    min_hook_length: int = Field(default=60, ge=0)
    auto_research_max: int = Field(default=10, ge=0)


class DraftsConfig(BaseModel):
    debounce_seconds: float = Field(default=2.0, ge=0)
    snapshot_dir: str | None = None
    max_age_hours: float = Field(default=24, gt=0)


class PoolConfig(BaseModel):
    page_size: int = Field(default=50, ge=1)
    max_pages: int = Field(default=20, ge=1)


class AppConfig(BaseModel):
    services: ServicesConfig = Field(default_factory=ServicesConfig)
    research: ResearchConfig = Field(default_factory=ResearchConfig)
    drafts: DraftsConfig = Field(default_factory=DraftsConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
