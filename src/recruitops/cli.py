"""Typer CLI for operating the candidate pipeline against live services."""

from __future__ import annotations

import asyncio
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from dependency_injector import errors as di_errors
from dependency_injector import providers

from .container import create_container
from .core import TOP_TIER, QuickFilter, SortKey, classify_tier, is_contact_ready, is_local
from .errors import Notice, PoolLoadError
from .logging import configure_logging
from .pipeline import CandidatePipeline
from .research import ResearchProgress

app = typer.Typer(help="Candidate pipeline operator CLI.")

ConfigOption = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path.")
LogLevelOption = typer.Option("INFO", help="Log level for structured logging.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    with config.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Config file must be a YAML object", param_name="config")
    return loaded


def _echo_notice(notice: Notice) -> None:
    typer.echo(f"[{notice.level}] {notice.message}", err=True)


def _build_pipeline(config: Optional[Path], log_level: str) -> CandidatePipeline:
    settings = _load_settings(config)
    configure_logging(log_level)
    container = create_container(settings=settings)
    container.notifier.override(providers.Object(_echo_notice))
    try:
        return container.pipeline()
    except di_errors.Error as exc:
        raise typer.BadParameter(
            f"Matcher and research service URLs must be configured: {exc}", param_name="config"
        ) from exc


async def _load(pipeline: CandidatePipeline, job_id: str, *, load_all: bool, auto_research: bool) -> None:
    try:
        if load_all:
            await pipeline.load_all(job_id, auto_research=auto_research)
        else:
            await pipeline.load_pool(job_id, auto_research=auto_research)
    except PoolLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def pool(
    job_id: str = typer.Option(..., help="Job to match candidates against."),
    quick_filter: QuickFilter = typer.Option(QuickFilter.ALL, "--filter", help="Quick filter."),
    sort: SortKey = typer.Option(SortKey.BEST_MATCH, help="Sort order."),
    query: Optional[str] = typer.Option(None, help="Free-text search."),
    load_all: bool = typer.Option(False, "--all", help="Follow matcher pagination."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Print the rendered candidate pool as JSON lines followed by stats."""
    pipeline = _build_pipeline(config, log_level)

    async def _run() -> None:
        await _load(pipeline, job_id, load_all=load_all, auto_research=False)
        for candidate in pipeline.view(quick_filter=quick_filter, query=query, sort_key=sort):
            row = {
                "id": candidate.id,
                "name": candidate.full_name,
                "score": candidate.unified_score,
                "tier": classify_tier(candidate.unified_score),
                "match_strength": candidate.match_strength,
                "contact_ready": is_contact_ready(candidate),
                "local": is_local(candidate, pipeline.target_state),
            }
            typer.echo(json.dumps(row, ensure_ascii=False))
        typer.echo(json.dumps({"stats": asdict(pipeline.stats())}, ensure_ascii=False))

    asyncio.run(_run())


@app.command()
def research(
    job_id: str = typer.Option(..., help="Job the pool belongs to."),
    candidate: Optional[List[str]] = typer.Option(None, help="Candidate id; repeatable. Defaults to top tier."),
    deep: bool = typer.Option(False, help="Run deep personalization research."),
    force: bool = typer.Option(False, help="Bypass caches and redo finished candidates."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Run quick or deep research for pool candidates."""
    pipeline = _build_pipeline(config, log_level)

    def _progress(progress: ResearchProgress) -> None:
        if progress.phase == "dispatch":
            typer.echo(f"[{progress.current}/{progress.total}] researching {progress.current_name}")

    async def _run() -> None:
        await _load(pipeline, job_id, load_all=False, auto_research=False)
        ids = candidate or [c.id for c in pipeline.pool if classify_tier(c.unified_score) == TOP_TIER]
        if deep:
            summary = await pipeline.orchestrator.deep_research(
                ids, job_id=job_id, force_refresh=force, on_progress=_progress
            )
            typer.echo(
                f"Deep research: {summary.processed} processed, {len(summary.completed)} completed, "
                f"{summary.skipped} skipped, {len(summary.failures)} failed batch(es)."
            )
        else:
            quick = await pipeline.orchestrator.quick_research(ids, job=pipeline.job, force_refresh=force)
            typer.echo(
                f"Quick research: {quick.processed} processed, {len(quick.merged)} merged, "
                f"{quick.skipped} skipped."
            )

    asyncio.run(_run())


@app.command()
def enrich(
    job_id: str = typer.Option(..., help="Job the pool belongs to."),
    priority: Optional[int] = typer.Option(None, help="Queue priority; derived from tier when omitted."),
    config: Optional[Path] = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Queue contact-info enrichment for every candidate that needs it."""
    pipeline = _build_pipeline(config, log_level)

    async def _run() -> bool:
        await _load(pipeline, job_id, load_all=True, auto_research=False)
        outcome = await pipeline.request_contact_info(priority=priority)
        typer.echo(outcome.message)
        return outcome.ok

    if not asyncio.run(_run()):
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
