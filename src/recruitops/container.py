"""Dependency injection container for the pipeline engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .adapters import (
    FileSnapshotStore,
    HTTPDeepResearchService,
    HTTPDraftPersistence,
    HTTPEnrichmentQueue,
    HTTPMatcherService,
    HTTPQuickResearchService,
    InMemoryDraftPersistence,
    InMemoryEnrichmentQueue,
    MemorySnapshotStore,
)
from .core import CandidatePool
from .drafts import DraftStoreConfig, ShortlistDraftStore
from .enrichment import EnrichmentQueueSubmitter
from .pipeline import CandidatePipeline, PipelineConfig
from .research import OrchestratorConfig, ResearchOrchestrator
from .schemas.config import load_config


class PipelineContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    notifier = providers.Object(None)

    matcher = providers.Dependency()
    quick_research = providers.Dependency()
    deep_research = providers.Dependency()
    enrichment_queue = providers.Singleton(InMemoryEnrichmentQueue)
    draft_persistence = providers.Singleton(InMemoryDraftPersistence)
    snapshot_store = providers.Singleton(MemorySnapshotStore)

    pool = providers.Singleton(CandidatePool)

    orchestrator_config = providers.Factory(
        OrchestratorConfig,
        batch_size=config.research.batch_size,
        min_hook_length=config.research.min_hook_length,
    )
    draft_config = providers.Factory(
        DraftStoreConfig,
        debounce_seconds=config.drafts.debounce_seconds,
        max_age_hours=config.drafts.max_age_hours,
    )
    pipeline_config = providers.Factory(
        PipelineConfig,
        page_size=config.pool.page_size,
        max_pages=config.pool.max_pages,
        auto_research_max=config.research.auto_research_max,
    )

    research_orchestrator = providers.Singleton(
        ResearchOrchestrator,
        pool=pool,
        quick_service=quick_research,
        deep_service=deep_research,
        config=orchestrator_config,
    )

    enrichment_submitter = providers.Singleton(
        EnrichmentQueueSubmitter,
        queue=enrichment_queue,
        pool=pool,
        notifier=notifier,
    )

    draft_store = providers.Factory(
        ShortlistDraftStore,
        persistence=draft_persistence,
        snapshots=snapshot_store,
        config=draft_config,
        notifier=notifier,
    )

    pipeline = providers.Factory(
        CandidatePipeline,
        matcher=matcher,
        orchestrator=research_orchestrator,
        submitter=enrichment_submitter,
        pool=pool,
        config=pipeline_config,
        notifier=notifier,
    )


def create_container(*, settings: dict | None = None) -> PipelineContainer:
    """Instantiate container; configured service URLs replace the in-memory defaults."""

    container = PipelineContainer()
    app_config = load_config(settings or {})
    container.config.from_dict(app_config.model_dump())

    services = app_config.services
    client_options = {"api_key": services.api_key, "timeout": services.timeout}

    if services.matcher_url:
        container.matcher.override(
            providers.Singleton(HTTPMatcherService, services.matcher_url, **client_options)
        )
    if services.quick_research_url:
        container.quick_research.override(
            providers.Singleton(HTTPQuickResearchService, services.quick_research_url, **client_options)
        )
    if services.deep_research_url:
        container.deep_research.override(
            providers.Singleton(HTTPDeepResearchService, services.deep_research_url, **client_options)
        )
    if services.enrichment_queue_url:
        container.enrichment_queue.override(
            providers.Singleton(HTTPEnrichmentQueue, services.enrichment_queue_url, **client_options)
        )
    if services.drafts_url:
        container.draft_persistence.override(
            providers.Singleton(HTTPDraftPersistence, services.drafts_url, **client_options)
        )
    if app_config.drafts.snapshot_dir:
        container.snapshot_store.override(
            providers.Singleton(FileSnapshotStore, app_config.drafts.snapshot_dir)
        )

    return container
