"""
Command-line interface for embodied-sync.

Provides commands to initialize the database, seed sources, run syncs
and health checks, and serve the admin API.

Usage:
    embodied-sync init-db          # Create all tables
    embodied-sync seed-sources     # Insert the default data sources
    embodied-sync serve            # Run the admin API
    embodied-sync sync-source arxiv --query "humanoid robot"
    embodied-sync sync-keywords --source arxiv --scope paper
    embodied-sync health-check     # Probe every enabled source
    embodied-sync list-sources     # Show sources with health and last sync
"""

import asyncio
import sys
from pathlib import Path

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics
from src.storage.database import Database
from src.sync.errors import SyncError

_STATUS_COLORS = {
    "success": "green",
    "healthy": "green",
    "warning": "yellow",
    "unknown": "yellow",
    "running": "cyan",
    "error": "red",
    "unhealthy": "red",
}


def _styled(status: str) -> str:
    return click.style(status, fg=_STATUS_COLORS.get(status))


def _build_engine(db: Database):
    """Wire registry, credential pool and fetch client for a CLI run."""
    from src.credentials.pool import CredentialPool
    from src.credentials.repository import CredentialRepository
    from src.ingestion.fetch_client import FetchClient
    from src.ingestion.registry import build_registry
    from src.sync.config import SyncConfig

    config = SyncConfig()
    pool = CredentialPool(CredentialRepository(db))
    fetch_client = FetchClient(credential_pool=pool, config=config)
    return build_registry(get_settings(), config), fetch_client, config, pool


async def _resolve_source(db: Database, name_or_id: str):
    from src.sources.repository import DataSourceRepository

    repo = DataSourceRepository(db)
    source = await repo.get_by_name(name_or_id) or await repo.get(name_or_id)
    if source is None:
        raise click.ClickException(f"Unknown data source: {name_or_id}")
    return source


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Embodied Sync - multi-source content sync and health monitoring."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from src.credentials.repository import CredentialRepository
    from src.keywords.repository import KeywordRepository
    from src.sources.repository import DataSourceRepository
    from src.storage.repository import ContentRepository
    from src.sync_log.repository import SyncLogRepository

    async def run():
        async with Database() as db:
            for repo_cls in (
                DataSourceRepository,
                SyncLogRepository,
                KeywordRepository,
                CredentialRepository,
                ContentRepository,
            ):
                await repo_cls(db).create_table()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command("seed-sources")
@click.option(
    "--file",
    "seed_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON seed file (defaults to the bundled sources)",
)
def seed_sources(seed_file: Path | None) -> None:
    """Insert default data sources that do not exist yet."""
    from src.sources.service import DataSourceService

    async def run():
        async with Database() as db:
            created = await DataSourceService(db).seed_from_json(seed_file)
        click.echo(f"Seeded {created} new data source(s)")

    asyncio.run(run())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the admin API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("sync-source")
@click.argument("source")
@click.option("--query", default=None, help="Override the configured query")
@click.option("--max-results", default=None, type=int, help="Override maxResults")
@click.option("--force", is_flag=True, help="Sync even if the source is disabled")
def sync_source(source: str, query: str | None, max_results: int | None, force: bool) -> None:
    """Run a plain sync for SOURCE (name or id).

    Example:
        embodied-sync sync-source github --query "robot learning" --max-results 30
    """
    from src.sync.orchestrator import SyncOrchestrator

    overrides = {}
    if query:
        overrides["query"] = query
    if max_results:
        overrides["maxResults"] = max_results

    async def run() -> int:
        async with Database() as db:
            target = await _resolve_source(db, source)
            registry, fetch_client, config, _ = _build_engine(db)
            orchestrator = SyncOrchestrator(db, registry, fetch_client, config)
            try:
                result = await orchestrator.sync_source(
                    target.id, override_config=overrides or None, force=force
                )
            except SyncError as e:
                click.echo(click.style(f"Sync of {target.name} failed: {e}", fg="red"))
                return 1

        click.echo(
            f"{result.source_name}: {_styled(result.status)} "
            f"synced={result.synced} errors={result.errors} ({result.duration_ms}ms)"
        )
        if result.error_message:
            click.echo(f"  {result.error_message}")
        return 0 if result.status != "error" else 1

    sys.exit(asyncio.run(run()))


@main.command("sync-keywords")
@click.option("--source", "source_name", default="arxiv", help="Data source name")
@click.option(
    "--scope",
    default="paper",
    type=click.Choice(["paper", "video", "news"]),
    help="Keyword table to read",
)
@click.option(
    "--source-type",
    default="all",
    type=click.Choice(["all", "admin", "user"]),
    help="Keyword origin filter",
)
@click.option("--days", default=None, type=int, help="Look-back window in days")
@click.option("--max-per-keyword", default=None, type=int, help="Results per keyword")
def sync_keywords(
    source_name: str,
    scope: str,
    source_type: str,
    days: int | None,
    max_per_keyword: int | None,
) -> None:
    """Search SOURCE once per active keyword and store the merged results.

    Example:
        embodied-sync sync-keywords --source bilibili --scope video --days 3
    """
    from src.keywords.schemas import KeywordScope
    from src.sync.orchestrator import SyncOrchestrator

    async def run() -> int:
        async with Database() as db:
            registry, fetch_client, config, _ = _build_engine(db)
            orchestrator = SyncOrchestrator(db, registry, fetch_client, config)
            try:
                result = await orchestrator.sync_by_keywords(
                    source_name,
                    KeywordScope(scope),
                    source_type=source_type,
                    days=days,
                    max_results_per_keyword=max_per_keyword,
                )
            except SyncError as e:
                click.echo(click.style(f"Keyword sync on {source_name} failed: {e}", fg="red"))
                return 1

        click.echo(
            f"{source_name}: {_styled(result.status)} synced={result.synced} "
            f"keywords={result.keywords} errors={result.errors}"
        )
        if result.error_message:
            click.echo(f"  {result.error_message}")
        return 0 if result.status != "error" else 1

    sys.exit(asyncio.run(run()))


@main.command("health-check")
@click.option("--source", default=None, help="Probe only this source (name or id)")
def health_check(source: str | None) -> None:
    """Probe data sources and record their health."""
    from src.sources.schemas import HealthStatus
    from src.sync.health import HealthChecker

    async def run() -> int:
        async with Database() as db:
            click.echo("\nDatabase: " + _styled("healthy" if await db.health_check() else "unhealthy"))

            registry, fetch_client, _, _ = _build_engine(db)
            checker = HealthChecker(db, registry, fetch_client)
            if source:
                target = await _resolve_source(db, source)
                results = [await checker.check_health(target.id)]
            else:
                results = (await checker.check_all_health()).results

        click.echo("\nSource Health:")
        click.echo("-" * 60)
        for r in results:
            line = f"  {r.source_name:<18} {_styled(r.status.value):<20} {r.latency_ms:>6}ms"
            click.echo(line)
            if r.error:
                click.echo(f"      {r.error}")
        click.echo("-" * 60)

        unhealthy = sum(1 for r in results if r.status == HealthStatus.UNHEALTHY)
        if unhealthy:
            click.echo(click.style(f"{unhealthy} source(s) unhealthy", fg="red"))
            return 1
        click.echo(click.style("No unhealthy sources", fg="green"))
        return 0

    sys.exit(asyncio.run(run()))


@main.command("list-sources")
@click.option("--enabled-only", is_flag=True, help="Hide disabled sources")
def list_sources(enabled_only: bool) -> None:
    """Show data sources with health and last sync summary."""
    from src.credentials.pool import CredentialPool
    from src.credentials.repository import CredentialRepository
    from src.sources.repository import DataSourceRepository

    async def run():
        async with Database() as db:
            sources = await DataSourceRepository(db).list_sources(enabled_only=enabled_only)
            pools = await CredentialPool(CredentialRepository(db)).status()

        if not sources:
            click.echo("No data sources. Run `embodied-sync seed-sources` first.")
            return

        click.echo(f"\n{'NAME':<18} {'ENABLED':<8} {'HEALTH':<10} {'LAST SYNC':<10} RESULT")
        click.echo("-" * 70)
        for s in sources:
            result = s.last_sync_result
            click.echo(
                f"{s.name:<18} {('yes' if s.enabled else 'no'):<8} "
                f"{_styled(s.health_status.value):<19} {_styled(s.last_sync_status.value):<19} "
                f"synced={result.get('synced', 0)} errors={result.get('errors', 0)}"
            )

        if pools:
            click.echo("\nCredential pools:")
            for p in pools:
                click.echo(f"  {p.provider:<16} {p.health.label} ({p.usable}/{p.total} usable)")

    asyncio.run(run())


if __name__ == "__main__":
    main()
