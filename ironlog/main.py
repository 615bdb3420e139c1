"""
Command-line entry point for IronLog
"""

import asyncio
from collections.abc import Coroutine
from datetime import date, datetime
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ironlog import __version__
from ironlog.config import ConfigurationError, Settings, get_settings
from ironlog.intervals import (
    AuthFailureReason,
    ConnectionDiagnosis,
    IntervalsAuthError,
    IntervalsClient,
    IntervalsRequestError,
)
from ironlog.security import AdminAuthError, SimpleAdminAuth
from ironlog.store import JsonDocumentStore, StoreError
from ironlog.sync import (
    JsonFileMapCache,
    RouteBatchResult,
    SyncEngine,
    SyncInProgressError,
    SyncReport,
)
from ironlog.utils import get_logger, setup_logging

T = TypeVar("T")

console = Console()
logger = get_logger(__name__)

app = typer.Typer(
    name="ironlog",
    help="IronLog - Intervals.icu sync for the Ironman training log",
    add_completion=False,
)

# Failure stage shown to the user, by exception type. Order matters:
# subclasses before their bases.
_STAGES: tuple[tuple[type[Exception], str], ...] = (
    (ConfigurationError, "Configuration"),
    (IntervalsAuthError, "Intervals.icu authentication"),
    (IntervalsRequestError, "Intervals.icu request"),
    (StoreError, "Store"),
    (AdminAuthError, "Admin check"),
    (SyncInProgressError, "Sync"),
)


def _stage_of(exc: Exception) -> str | None:
    for exc_type, stage in _STAGES:
        if isinstance(exc, exc_type):
            return stage
    return None


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro``; known failures print one message and exit with status 1."""
    try:
        return asyncio.run(coro)
    except tuple(exc_type for exc_type, _ in _STAGES) as exc:
        stage = _stage_of(exc)
        console.print(f"[bold red]✗ {stage} failed:[/bold red] {escape(str(exc))}")
        if isinstance(exc, ConfigurationError):
            console.print(f"[yellow]Set {exc.setting} in the environment or .env[/]")
        elif (
            isinstance(exc, IntervalsAuthError)
            and exc.reason is AuthFailureReason.ORIGIN_NOT_ALLOWED
        ):
            console.print(
                "[yellow]Allow this machine's network in the Intervals.icu "
                "account settings, or run the sync from an allowed host.[/]"
            )
        logger.error("Command failed", stage=stage, error=str(exc))
        raise typer.Exit(1) from exc


def _engine(client: IntervalsClient, settings: Settings) -> SyncEngine:
    return SyncEngine(
        client,
        JsonDocumentStore(settings.store_path),
        JsonFileMapCache(settings.map_cache_path),
        settings,
    )


def _print_report(report: SyncReport) -> None:
    table = Table(title="Sync results", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Added", str(report.added))
    table.add_row("Updated", str(report.updated))
    table.add_row("Skipped", str(report.skipped))
    table.add_row("Wellness days", str(report.wellness))
    if report.routes is not None:
        _add_route_rows(table, report.routes)
    console.print(table)


def _add_route_rows(table: Table, routes: RouteBatchResult) -> None:
    table.add_row("Routes fetched", str(routes.fetched))
    table.add_row("Routes without GPS", str(routes.no_data))
    table.add_row("Route failures", str(routes.failed))
    table.add_row("Map published", "yes" if routes.published else "no")


@app.callback()
def _startup() -> None:
    setup_logging()


@app.command()
def sync(
    oldest: datetime | None = typer.Option(
        None,
        "--oldest",
        formats=["%Y-%m-%d"],
        help="Fetch activities from this date (default: ACTIVITIES_OLDEST)",
    ),
    routes: bool = typer.Option(
        True, "--routes/--no-routes", help="Fetch missing GPS routes afterwards"
    ),
) -> None:
    """Pull activities and wellness from Intervals.icu into the training log."""
    settings = get_settings()
    since = oldest.date() if oldest else None

    async def _sync() -> SyncReport:
        async with IntervalsClient.from_settings(settings) as client:
            return await _engine(client, settings).run(
                activities_oldest=since, fetch_routes=routes
            )

    console.print("[bold cyan]Syncing with Intervals.icu...[/bold cyan]")
    report = _run(_sync())
    _print_report(report)
    if report.routes is not None and report.routes.failed:
        console.print(
            f"[yellow]⚠️  {report.routes.failed} route(s) failed, "
            "they will be retried on the next sync[/yellow]"
        )
    console.print("[bold green]✓ Sync complete[/bold green]")


@app.command("map-sync")
def map_sync(
    force: bool = typer.Option(
        True,
        "--force/--only-new",
        help="Republish the map even when no new route was fetched",
    ),
) -> None:
    """Fetch routes for every stored GPS activity and publish the map."""
    settings = get_settings()

    async def _map_sync() -> RouteBatchResult:
        async with IntervalsClient.from_settings(settings) as client:
            return await _engine(client, settings).sync_routes(force_publish=force)

    result = _run(_map_sync())
    table = Table(title="Map sync", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Already cached", str(result.cached))
    _add_route_rows(table, result)
    console.print(table)


@app.command("check-connection")
def check_connection(
    activity_id: str | None = typer.Argument(
        None, help="Also check this activity's GPS stream"
    ),
) -> None:
    """Verify the API key, optionally checking one activity's GPS stream."""
    settings = get_settings()
    console.print(f"Athlete ID: {settings.intervals_athlete_id or 'MISSING'}")
    console.print(f"API key:    {settings.masked_api_key() or 'MISSING'}")

    async def _check() -> ConnectionDiagnosis | None:
        async with IntervalsClient.from_settings(settings) as client:
            await client.verify_access()
            if activity_id is None:
                return None
            return await client.diagnose_activity(activity_id)

    diagnosis = _run(_check())
    console.print("[green]✓ Credentials accepted[/green]")
    if diagnosis is None:
        return

    status = diagnosis.status.value.replace("_", " ").upper()
    colour = "green" if diagnosis.ok else "red"
    console.print(f"[{colour}]Activity {diagnosis.activity_id}: {status}[/{colour}]")
    if diagnosis.http_status is not None:
        console.print(f"  HTTP status: {diagnosis.http_status}")
    if diagnosis.gps_points:
        console.print(f"  GPS points: {diagnosis.gps_points}")
    for hint in diagnosis.hints:
        console.print(f"  {escape(hint)}")
    if not diagnosis.ok:
        raise typer.Exit(1)


@app.command("wipe-wellness")
def wipe_wellness(
    admin_secret: str = typer.Option(
        ..., "--admin-secret", prompt=True, hide_input=True, help="ADMIN_SECRET value"
    ),
) -> None:
    """Delete every stored wellness day (admin only)."""
    settings = get_settings()

    async def _wipe() -> int:
        SimpleAdminAuth(settings).require_admin(admin_secret, "wipe-wellness")
        return await JsonDocumentStore(settings.store_path).delete_wellness()

    deleted = _run(_wipe())
    console.print(f"[green]✓ Deleted {deleted} wellness document(s)[/green]")


@app.command()
def config() -> None:
    """Show the effective configuration with secrets masked."""
    settings = get_settings()
    table = Table(title=f"IronLog {__version__}", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    rows: list[tuple[str, Any]] = [
        ("Environment", settings.environment),
        ("Athlete ID", settings.intervals_athlete_id or "MISSING"),
        ("API key", settings.masked_api_key() or "MISSING"),
        ("API base URL", settings.intervals_base_url),
        ("Activities since", settings.activities_oldest),
        ("Activities limit", settings.activities_limit),
        ("Wellness lookback (days)", settings.wellness_lookback_days),
        ("Route fetch delay (s)", settings.route_fetch_delay),
        ("Store", settings.store_path),
        ("Map cache", settings.map_cache_path),
        ("Admin secret", "set" if settings.admin_secret else "not set"),
    ]
    for name, value in rows:
        text = value.isoformat() if isinstance(value, date) else str(value)
        table.add_row(name, text)
    console.print(table)


def main() -> None:
    """Console script entry point"""
    app()


if __name__ == "__main__":
    main()
