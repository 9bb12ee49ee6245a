"""CLI entry point: issuescout.

Subcommands:
    issuescout init-db                    # Create tables
    issuescout languages add Go Rust      # Track languages
    issuescout languages list             # Tracked languages with repo counts
    issuescout run-phase ingest           # Run one phase once, print its report
    issuescout crawl                      # Run the phase scheduler until interrupted
    issuescout serve                      # Start the REST API (and its scheduler)
"""

from __future__ import annotations

import asyncio
import sys

import click
from dotenv import load_dotenv

from issuescout.core.database import create_engine, create_session_factory, init_db
from issuescout.core.logging import setup_logging
from issuescout.engines.crawler.models import PhaseReport
from issuescout.services import ServiceError

_PHASES = ("ingest", "refresh", "prune")


def _build_engine(client):
    from issuescout.api.deps import build_crawl_engine

    return build_crawl_engine(client)


@click.group()
@click.option("--database-url", envvar="ISSUESCOUT_DATABASE_URL", default=None, help="Database URL")
@click.option("--log-level", default=None, help="Log level for issuescout loggers (default: ISSUESCOUT_LOG_LEVEL or INFO)")
@click.option("--log-format", type=click.Choice(["console", "json"]), default=None, help="Log renderer")
@click.pass_context
def main(ctx: click.Context, database_url: str | None, log_level: str | None, log_format: str | None) -> None:
    """IssueScout: crawl GitHub for open issues in repositories of tracked languages."""
    load_dotenv()
    setup_logging(log_level, log_format)
    ctx.obj = {"database_url": database_url}


@main.command("init-db")
@click.pass_obj
def init_db_cmd(obj: dict) -> None:
    """Create all tables that do not exist yet."""

    async def _run() -> None:
        engine = create_engine(obj["database_url"])
        try:
            await init_db(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    click.echo("Tables created.")


@main.group("languages")
def languages() -> None:
    """Manage tracked languages."""


@languages.command("add")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def languages_add(obj: dict, names: tuple[str, ...]) -> None:
    """Start tracking one or more languages."""
    from issuescout.api.deps import get_language_service

    svc = get_language_service()

    async def _run() -> list[str]:
        engine = create_engine(obj["database_url"])
        factory = create_session_factory(engine)
        messages = []
        try:
            for name in names:
                try:
                    async with factory() as session:
                        async with session.begin():
                            language = await svc.add(session, name)
                    messages.append(f"  + {language.name} (id={language.id})")
                except ServiceError as exc:
                    messages.append(f"  ! {exc}")
        finally:
            await engine.dispose()
        return messages

    for line in asyncio.run(_run()):
        click.echo(line)


@languages.command("list")
@click.pass_obj
def languages_list(obj: dict) -> None:
    """List tracked languages in crawl order."""
    from issuescout.api.deps import get_language_service

    svc = get_language_service()

    async def _run() -> list[dict]:
        engine = create_engine(obj["database_url"])
        try:
            async with create_session_factory(engine)() as session:
                return await svc.list_with_counts(session)
        finally:
            await engine.dispose()

    rows = asyncio.run(_run())
    if not rows:
        click.echo("No languages tracked. Add some with: issuescout languages add <name>")
        return
    for row in rows:
        click.echo(f"  {row['id']:>4}  {row['name']:<20} {row['repo_count']} repos")


def format_report(report: PhaseReport) -> list[str]:
    lines = [
        f"Phase {report.phase}:",
        f"  Languages: {report.languages_seen} seen, {report.languages_skipped} skipped, "
        f"{report.languages_completed} completed",
        f"  Repos: {report.repos_saved} saved, {report.repos_deleted} deleted",
    ]
    if report.rate_limited:
        lines.append("  Stopped early: rate limited (will resume on next run)")
    if report.cycle_reset:
        lines.append("  Cycle complete: checkpoints reset")
    for err in report.errors:
        lines.append(f"  [!] {err}")
    return lines


@main.command("run-phase")
@click.argument("phase", type=click.Choice(_PHASES))
@click.option("--token", envvar="GITHUB_TOKEN", default=None, help="GitHub token")
@click.pass_obj
def run_phase(obj: dict, phase: str, token: str | None) -> None:
    """Run a single phase once and print its report."""
    from issuescout.engines.github.client import GitHubClient

    async def _run() -> PhaseReport:
        engine = create_engine(obj["database_url"])
        factory = create_session_factory(engine)
        try:
            async with GitHubClient(token) as client:
                crawl = _build_engine(client)
                return await getattr(crawl, phase)(factory)
        finally:
            await engine.dispose()

    report = asyncio.run(_run())
    for line in format_report(report):
        click.echo(line)
    if report.errors:
        sys.exit(1)


@main.command("crawl")
@click.option("--token", envvar="GITHUB_TOKEN", default=None, help="GitHub token")
@click.pass_obj
def crawl(obj: dict, token: str | None) -> None:
    """Run the ingest/refresh/prune loops until interrupted."""
    from issuescout.engines.github.client import GitHubClient
    from issuescout.scheduler import create_scheduler

    async def _run() -> None:
        engine = create_engine(obj["database_url"])
        factory = create_session_factory(engine)
        async with GitHubClient(token) as client:
            scheduler = create_scheduler(factory, _build_engine(client))
            await scheduler.start()
            try:
                await asyncio.Event().wait()
            finally:
                await scheduler.stop()
                await engine.dispose()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        click.echo("Stopped.")


@main.command("serve")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
def serve(host: str, port: int) -> None:
    """Start the REST API; its lifespan runs the phase scheduler."""
    import uvicorn

    uvicorn.run("issuescout.api:create_app", factory=True, host=host, port=port)


if __name__ == "__main__":
    main()
