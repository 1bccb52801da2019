"""Command-line interface for the Sentiment Refresh service."""

import asyncio
import logging
import uuid
from typing import List, Optional

import typer
import uvicorn
from typing_extensions import Annotated

from sentiment_refresh.config.settings import settings
from sentiment_refresh.core.errors import ConfigError
from sentiment_refresh.core.job_lifecycle import FAILED, JobLifecycle
from sentiment_refresh.core.pipeline import RefreshPipeline
from sentiment_refresh.monitoring.metrics import PrometheusExporter
from sentiment_refresh.storage.repository import RefreshRepository
from sentiment_refresh.utils.db_session import get_async_engine
from sentiment_refresh.utils.logging_utils import setup_logging

app = typer.Typer(help="Sentiment Refresh - score recent subreddit activity and rebuild daily aggregates")

logger = logging.getLogger(__name__)


def build_repository() -> RefreshRepository:
    return RefreshRepository()


def build_pipeline() -> RefreshPipeline:
    exporter = None
    if settings.PROMETHEUS_ENABLED:
        exporter = PrometheusExporter(port=settings.PROMETHEUS_PORT)
        exporter.start_server()
    return RefreshPipeline(repository=build_repository(), prometheus_exporter=exporter)


async def _dispose_engine() -> None:
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()


@app.command()
def run(
    timeframe: Annotated[Optional[str], typer.Option("--timeframe", "-t", help="Timeframe: 24h, 7d or 30d")] = None,
    keyword: Annotated[Optional[str], typer.Option("--keyword", "-k", help="Only keep items containing this keyword")] = None,
) -> None:
    """Run one refresh synchronously and print its outcome as JSON."""
    setup_logging()

    async def _run():
        try:
            return await build_pipeline().run(timeframe=timeframe, keyword=keyword, trigger_source="cli")
        finally:
            await _dispose_engine()

    try:
        outcome = asyncio.run(_run())
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)

    typer.echo(outcome.model_dump_json(indent=2))
    if outcome.status == FAILED:
        raise typer.Exit(code=1)


@app.command()
def status(
    run_id: Annotated[str, typer.Argument(help="Refresh run id")],
) -> None:
    """Print the stored record of a refresh run."""
    setup_logging()
    try:
        parsed_id = uuid.UUID(run_id)
    except ValueError:
        typer.echo(f"Error: '{run_id}' is not a valid run id", err=True)
        raise typer.Exit(code=2)

    async def _status():
        try:
            return await JobLifecycle(build_repository()).get(parsed_id)
        finally:
            await _dispose_engine()

    record = asyncio.run(_status())
    if record is None:
        typer.echo(f"Refresh run {run_id} not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(record.model_dump_json(indent=2))


@app.command()
def seed(
    subreddit: Annotated[
        Optional[List[str]],
        typer.Option("--subreddit", "-s", help="Subreddit to add (repeatable); defaults to SUBREDDITS"),
    ] = None,
) -> None:
    """Insert the configured subreddits that are not in the store yet."""
    setup_logging()
    names = subreddit or list(settings.SUBREDDITS)

    async def _seed():
        try:
            return await build_repository().seed_communities(names)
        finally:
            await _dispose_engine()

    inserted = asyncio.run(_seed())
    typer.echo(f"Seeded {inserted} new subreddit(s) out of {len(names)} requested")


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
) -> None:
    """Serve the refresh trigger and status API."""
    uvicorn.run(
        "sentiment_refresh.api.main:app",
        host=host or settings.API_HOST,
        port=port or settings.API_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    app()
