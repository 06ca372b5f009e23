"""
Command-line interface for sintillio.

Provides commands to run the API, initialize the database, and run the
maintenance jobs that otherwise happen through the API.

Usage:
    sintillio serve            # Run the API server
    sintillio init-db          # Create tables and indexes
    sintillio health           # Check service health
    sintillio embed QUERY_ID   # Embed and publish a query's results
    sintillio reconcile        # Fail stale processing ledger rows
    sintillio verify-admins    # Verify/repair admin markers
"""

import asyncio
import sys

import click

from sintillio.config.settings import get_settings
from sintillio.observability.logging import setup_logging
from sintillio.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Sintillio - content acquisition and publication pipeline."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()

    settings = get_settings()
    if settings.tracing_enabled:
        from sintillio.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def serve(host: str | None, port: int | None, reload: bool, metrics: bool) -> None:
    """Start the pipeline API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics:
        get_metrics().start_server()
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "sintillio.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from sintillio.storage.database import Database
    from sintillio.storage.schema import create_schema

    async def run():
        db = Database()
        await db.connect()
        try:
            await create_schema(db)
        finally:
            await db.close()

        click.echo("Database initialized successfully")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check Postgres, Redis and provider credentials.

    Exits 1 only when Postgres is unreachable; the rest is informational.
    """
    import redis.asyncio as redis
    import structlog

    from sintillio.storage.database import Database

    logger = structlog.get_logger()
    settings = get_settings()

    async def postgres_ok() -> bool:
        try:
            async with Database() as db:
                return await db.health_check()
        except Exception as e:
            logger.error("postgres_unreachable", error=str(e))
            return False

    async def redis_ok() -> bool:
        client = redis.from_url(str(settings.redis_url))
        try:
            return bool(await client.ping())
        except Exception as e:
            logger.error("redis_unreachable", error=str(e))
            return False
        finally:
            await client.aclose()

    async def check() -> dict[str, bool]:
        return {
            "postgres": await postgres_ok(),
            "redis": await redis_ok(),
            "identity provider": settings.identity_configured,
            "FIRECRAWL_API_KEY": settings.firecrawl_configured,
            "CRYPTOPANIC_API_KEY": settings.cryptopanic_configured,
            "RAPIDAPI_KEY": settings.rapidapi_configured,
        }

    results = asyncio.run(check())
    for name, ok in results.items():
        mark = "✓" if ok else "✗"
        click.echo(click.style(f"  {mark} {name}", fg="green" if ok else "red"))

    if not results["postgres"]:
        click.echo(click.style("Database unavailable", fg="red"))
        sys.exit(1)
    click.echo(click.style("Core services healthy", fg="green"))


@main.command()
@click.argument("query_id")
def embed(query_id: str) -> None:
    """Embed and publish the unembedded results of QUERY_ID."""
    from sintillio.embedding.generator import EmbeddingGenerator
    from sintillio.embedding.service import get_embedding_service
    from sintillio.ledger.repository import LedgerRepository
    from sintillio.results.repository import ResultRepository
    from sintillio.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        service = get_embedding_service()
        try:
            generator = EmbeddingGenerator(ResultRepository(db), LedgerRepository(db), service)
            outcome = await generator.embed(query_id)
        finally:
            await service.close()
            await db.close()

        click.echo(f"Processed {outcome.processed} of {outcome.total} results")

    asyncio.run(run())


@main.command()
@click.option(
    "--older-than-minutes",
    default=None,
    type=int,
    help="Staleness threshold (default from LEDGER_STALE_AFTER_MINUTES)",
)
def reconcile(older_than_minutes: int | None) -> None:
    """Mark stale processing ledger entries failed."""
    from datetime import timedelta

    from sintillio.ledger.reconciler import LedgerReconciler
    from sintillio.ledger.repository import LedgerRepository
    from sintillio.storage.database import Database

    async def run():
        db = Database()
        await db.connect()
        try:
            reconciler = LedgerReconciler(
                LedgerRepository(db),
                stale_after=timedelta(minutes=older_than_minutes) if older_than_minutes else None,
            )
            ids = await reconciler.sweep()
        finally:
            await db.close()

        click.echo(f"Reconciled {len(ids)} stale ledger entries")
        for query_id in ids:
            click.echo(f"  {query_id}")

    asyncio.run(run())


@main.command("verify-admins")
@click.option("--repair/--dry-run", default=True, help="Restore missing markers or only report")
def verify_admins(repair: bool) -> None:
    """Verify admin markers of trusted-domain users."""
    from sintillio.auth.repair import AdminRepairService
    from sintillio.auth.repository import PrivilegeRepository
    from sintillio.storage.database import Database

    async def run():
        settings = get_settings()
        db = Database()
        await db.connect()
        try:
            service = AdminRepairService(
                PrivilegeRepository(db, users_table=settings.identity_users_table)
            )
            report = await service.verify(repair=repair)
        finally:
            await db.close()

        for user in report.users:
            role = "✓" if user.has_admin_role else "✗"
            flag = "✓" if user.is_admin_flag else "✗"
            suffix = " (repaired)" if user.repaired else ""
            click.echo(f"  {user.email}: role {role} flag {flag}{suffix}")
        click.echo(report.message)
        if report.failed:
            sys.exit(1)

    asyncio.run(run())


if __name__ == "__main__":
    main()
