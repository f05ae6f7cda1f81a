"""Command-line interface for the waitlist backend."""

from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from waitlist.logging_config import configure_logging, get_logger
from waitlist.referral.leaderboard import LeaderboardQuery, LeaderboardWindow, leaderboard_service
from waitlist.storage.db import db

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="waitlist",
    help="Devnet waitlist - signups, referrals and leaderboard",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database() -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("db-health")
def db_health() -> None:
    """Check database connectivity."""
    try:
        info = db.describe()
    except SQLAlchemyError as e:
        console.print(f"[bold red]✗[/bold red] Database unreachable: {e}")
        raise typer.Exit(1)

    console.print("[bold green]✓[/bold green] DB OK")
    console.print(f"[bold]Now:[/bold] {info['now']}")
    console.print(f"[bold]Backend:[/bold] {info['backend']}")
    console.print(f"[bold]Database:[/bold] {info['database'] or 'N/A'}")
    console.print(f"[bold]User:[/bold] {info['user'] or 'N/A'}")


@app.command("leaderboard")
def show_leaderboard(
    window: Annotated[LeaderboardWindow, typer.Option("--window", "-w", help="week, month or all")] = LeaderboardWindow.WEEK,
    limit: Annotated[int, typer.Option("--limit", "-l", help="Number of rows (1-100)")] = 20,
) -> None:
    """Show the referral leaderboard."""
    rows = leaderboard_service.rank(LeaderboardQuery(window=window, limit=limit))

    if not rows:
        console.print("[yellow]No referrers yet[/yellow]")
        return

    table = Table(title=f"Leaderboard ({window.value})")
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Code", style="green")
    table.add_column("Name")
    table.add_column("Signups", justify="right")
    table.add_column("Verified", justify="right")
    table.add_column("Points", justify="right", style="bold")

    for row in rows:
        table.add_row(
            str(row.rank),
            row.referral_code,
            row.name,
            str(row.signups),
            str(row.verified),
            str(row.points),
        )

    console.print(table)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the HTTP API."""
    logger.info("server_starting", host=host, port=port)
    uvicorn.run("waitlist.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
