"""CLI commands for the clinic ledger."""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from clinic_ledger.config import get_settings
from clinic_ledger.core.errors import LedgerError

app = typer.Typer(
    name="clinic-ledger",
    help="Session ledger and patient debt tracking",
    add_completion=False,
)
console = Console()


def get_factory():
    """Get the session factory for the configured database."""
    from clinic_ledger.core.database import get_session_factory

    return get_session_factory()


def _run(coro):
    try:
        return asyncio.run(coro)
    except LedgerError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


@app.command()
def init_db():
    """Create the database tables."""
    from clinic_ledger.core.database import init_db as _init_db

    _run(_init_db())
    console.print(f"[green]Database ready: {get_settings().database_url}[/green]")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting clinic ledger API server on {host}:{port}")
    uvicorn.run(
        "clinic_ledger.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def pending_debts(
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List patients with an open, non-archived debt."""
    from clinic_ledger.ledger.debts import list_pending_debts

    summaries = _run(list_pending_debts(get_factory()))

    if output_json:
        console.print(json.dumps([s.model_dump(mode="json") for s in summaries], indent=2))
        return

    if not summaries:
        console.print("[green]No pending debts[/green]")
        return

    table = Table(title="Pending Debts")
    table.add_column("Patient")
    table.add_column("Name")
    table.add_column("Balance", justify="right")
    table.add_column("Opened")
    table.add_column("Days", justify="right")
    table.add_column("Contact")
    for s in summaries:
        table.add_row(
            str(s.patient_id),
            s.full_name,
            f"{s.current_balance:.2f}",
            s.debt_opened_at.isoformat() if s.debt_opened_at else "-",
            str(s.days_overdue),
            s.contact_status,
        )
    console.print(table)


@app.command()
def archive(patient_id: int = typer.Argument(..., help="Patient id")):
    """Archive a patient's debt (hide it from the pending report)."""
    from clinic_ledger.ledger.debts import archive_debt

    _run(archive_debt(get_factory(), patient_id))
    console.print(f"Debt archived for patient {patient_id}")


@app.command()
def unarchive(patient_id: int = typer.Argument(..., help="Patient id")):
    """Restore a patient's debt to the pending report."""
    from clinic_ledger.ledger.debts import unarchive_debt

    _run(unarchive_debt(get_factory(), patient_id))
    console.print(f"Debt unarchived for patient {patient_id}")


@app.command()
def repair_debts():
    """Backfill missing debt open dates for patients with a positive balance."""
    from clinic_ledger.ledger.debts import repair_debt_opened_dates

    fixed = _run(repair_debt_opened_dates(get_factory()))
    console.print(f"[green]Debt repair completed: {fixed} patient(s) fixed[/green]")


@app.command()
def version():
    """Show version information."""
    from clinic_ledger import __version__

    console.print(f"clinic-ledger v{__version__}")
