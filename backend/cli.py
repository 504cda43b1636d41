"""
Table Share CLI.

Command-line interface for database setup and for inspecting a table's
bill from the terminal.
"""

import sys

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="tableshare",
    help="Table Share billing engine CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create all tables."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    console.print(f"[blue]Creating tables on: {engine.url.render_as_string(hide_password=True)}[/blue]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created[/green]")


@app.command()
def db_seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed the demo menu."""
    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context
    from rest_api.seed import seed

    if settings.is_production and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        added = seed(db)

    if added:
        console.print(f"[green]✓ Added {added} menu items[/green]")
    else:
        console.print("[yellow]Menu already seeded[/yellow]")


# =============================================================================
# Menu and Bill Commands
# =============================================================================

@app.command()
def menu():
    """List the menu items available to order."""
    from shared.infrastructure.db import get_db_context
    from shared.utils.money import round_money
    from rest_api.services.domain import MenuService

    with get_db_context() as db:
        items = MenuService(db).list_available()

    table = Table(title="Menu")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Item")
    table.add_column("Price", style="green", justify="right")
    for item in items:
        table.add_row(str(item.id), item.name, str(round_money(item.price)))
    console.print(table)


@app.command()
def bill(
    session_id: int = typer.Argument(..., help="Table session id"),
):
    """Show the per-diner bill of a table session."""
    from fastapi import HTTPException

    from shared.infrastructure.db import get_db_context
    from shared.utils.money import round_money
    from rest_api.services.domain import BillService

    try:
        with get_db_context() as db:
            bills, table_totals = BillService(db).per_diner(session_id)
    except HTTPException as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Session {session_id}")
    table.add_column("Diner", style="cyan")
    table.add_column("Personal", justify="right")
    table.add_column("Shared", justify="right")
    table.add_column("VAT", justify="right")
    table.add_column("Total", style="green", justify="right")

    for diner_bill in bills:
        totals = diner_bill.totals
        table.add_row(
            diner_bill.diner_name or "(unassigned)",
            str(round_money(diner_bill.personal_subtotal)),
            str(round_money(diner_bill.shared_subtotal)),
            str(round_money(totals.vat)),
            str(round_money(totals.total)),
        )
    table.add_section()
    table.add_row(
        "Table",
        "",
        str(round_money(table_totals.subtotal)),
        str(round_money(table_totals.vat)),
        str(round_money(table_totals.total)),
        style="bold",
    )
    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health():
    """Check database and Redis connectivity."""
    import asyncio

    from rest_api.routers.public.health import check_database_health
    from shared.infrastructure.events import check_redis_health, close_redis_pool
    from shared.utils.health import HealthStatus, overall_status

    async def _health():
        try:
            return await asyncio.gather(check_database_health(), check_redis_health())
        finally:
            await close_redis_pool()

    results = asyncio.run(_health())

    table = Table(title="Dependency Health")
    table.add_column("Component", style="cyan")
    table.add_column("Role")
    table.add_column("Status")
    table.add_column("Latency", style="yellow", justify="right")

    for result in results:
        status = "[green]✓ healthy[/green]" if result.ok else f"[red]✗ {result.error}[/red]"
        table.add_row(
            result.component,
            "critical" if result.critical else "optional",
            status,
            f"{result.latency_ms:.0f}ms",
        )

    console.print(table)
    if overall_status(results) == HealthStatus.UNHEALTHY:
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(None, help="Port (defaults to REST_API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the REST API with uvicorn."""
    import uvicorn

    from shared.config.settings import settings

    uvicorn.run("rest_api.main:app", host=host, port=port or settings.rest_api_port, reload=reload)


@app.command()
def version():
    """Show version information."""
    from importlib.metadata import PackageNotFoundError, version as package_version

    try:
        installed = package_version("tableshare")
    except PackageNotFoundError:
        installed = "source checkout"

    table = Table(title="Table Share Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("tableshare", installed)
    table.add_row("Python", sys.version.split()[0])
    console.print(table)


if __name__ == "__main__":
    app()
