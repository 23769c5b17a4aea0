"""
Command line entry point.

Commands:
- health: print the health report, exit 0 only when healthy
- cache-flush: clear cached responses for one endpoint or all of them

Both commands read the shared store, so use VERTEIL_STORE=disk to inspect
a client running in another process.
"""

import asyncio
from typing import Annotated, Any

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from verteil.services.client import VerteilClient
from verteil.services.errors import VerteilApiError
from verteil.services.monitor import HealthReport
from verteil.settings import load_settings
from verteil.utils import setup_logging

app = typer.Typer(help="Verteil NDC API maintenance commands.", no_args_is_help=True)
console = Console()

STATUS_STYLES = {
    "healthy": "green",
    "good": "green",
    "optimal": "green",
    "active": "green",
    "acceptable": "yellow",
    "warning": "yellow",
    "degraded": "yellow",
    "slow": "yellow",
    "suboptimal": "yellow",
    "critical": "red",
    "missing": "red",
}


def _build_client() -> VerteilClient:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    return VerteilClient(settings)


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def _table(title: str, columns: list[str], rows: list[list[Any]]) -> Table:
    table = Table(title=title, title_justify="left")
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(str(cell) if cell is not None else "-" for cell in row))
    return table


def _render_report(report: HealthReport) -> None:
    console.print(f"Overall status: {_styled(report.status)}")

    metrics = report.metrics
    console.print(
        _table(
            "API Metrics",
            ["Metric", "Value"],
            [
                ["Total requests", metrics["total_requests"]],
                ["Requests/min", metrics["requests_per_minute"]],
                ["Avg response time", f"{metrics['average_response_time']}ms"],
                ["Error rate", f"{metrics['error_rate']}%"],
            ],
        )
    )

    if report.endpoints:
        console.print(
            _table(
                "Endpoints",
                ["Endpoint", "Success rate", "Avg response", "Req/min", "Status"],
                [
                    [
                        e["endpoint"],
                        f"{e['success_rate']}%",
                        f"{e['avg_response_time']}ms",
                        e["requests_per_minute"],
                        _styled(e["status"]),
                    ]
                    for e in report.endpoints
                ],
            )
        )

    console.print(
        _table(
            "Rate Limits",
            ["Endpoint", "Remaining", "Limit", "Resets at", "Status"],
            [
                [r["endpoint"], r["remaining"], r["limit"], r["resets_at"], _styled(r["status"])]
                for r in report.rate_limits
            ],
        )
    )

    cache = report.cache
    console.print(
        _table(
            "Cache",
            ["Hit rate", "Hits", "Misses", "Items", "Status"],
            [[f"{cache['hit_rate']}%", cache["hits"], cache["misses"], cache["items_count"], _styled(cache["status"])]],
        )
    )

    token = report.token
    expires = f"{token['expires_in']} min" if token["expires_in"] is not None else None
    console.print(f"Token: {_styled(token['status'])} (expires in {expires or '-'})")

    if report.recent_errors:
        console.print(
            _table(
                "Recent Errors",
                ["Time", "Endpoint", "Type", "Code", "Message"],
                [
                    [e["timestamp"], e["endpoint"], e["type"], e["code"], e["message"]]
                    for e in report.recent_errors
                ],
            )
        )


async def _health() -> HealthReport:
    async with _build_client() as client:
        return await client.health()


async def _flush(endpoint: str | None) -> int:
    async with _build_client() as client:
        return await client.flush_cache(endpoint)


@app.command()
def health() -> None:
    """Check the health of the Verteil API integration."""
    try:
        report = asyncio.run(_health())
    except VerteilApiError as e:
        console.print(f"[red]Health check failed: {e.message}[/red]")
        raise typer.Exit(code=1) from e

    _render_report(report)
    raise typer.Exit(code=0 if report.is_healthy else 1)


@app.command("cache-flush")
def cache_flush(
    endpoint: Annotated[
        str | None, typer.Argument(help="Endpoint to flush (e.g. airShopping); all when omitted")
    ] = None,
) -> None:
    """Flush cached Verteil API responses."""
    try:
        removed = asyncio.run(_flush(endpoint))
    except VerteilApiError as e:
        logger.error(f"Cache flush failed: {e.message}")
        console.print(f"[red]Error flushing cache: {e.message}[/red]")
        raise typer.Exit(code=1) from e

    target = f"endpoint: {endpoint}" if endpoint else "all endpoints"
    console.print(f"[green]Cache cleared for {target} ({removed} entries)[/green]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
