"""
datasync run - Run the task scheduler, or backfill a date range.

Without dates, arms every task's cron trigger and runs in the foreground until
interrupted (SIGINT/SIGTERM). With --start-date and --end-date, synchronizes
each task's <root>/<YYYY-MM-DD> directories once, in date order, and exits.
"""

import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from datasync.cli.common import CONFIG_OPTION, LOG_FILE_OPTION, LOG_LEVEL_OPTION, load_or_exit
from datasync.exceptions import InvalidDateError
from datasync.service.scheduler import TaskScheduler
from datasync.sync.backfill import BackfillResult, run_backfill, summarize
from datasync.utils.logging import get_logger

logger = get_logger("datasync.cli.run")
console = Console()

app = typer.Typer(name="run", help="Run the scheduler, or backfill a date range", invoke_without_command=True)


@app.callback()
def run(
    ctx: typer.Context,
    config_path: Path = CONFIG_OPTION,
    start_date: str | None = typer.Option(
        None, "--start-date", "--startDate", help="Backfill: first date to sync (YYYY-MM-DD)"
    ),
    end_date: str | None = typer.Option(None, "--end-date", "--endDate", help="Backfill: last date to sync (YYYY-MM-DD)"),
    log_level: str | None = LOG_LEVEL_OPTION,
    log_file: Path | None = LOG_FILE_OPTION,
) -> None:
    """
    Run the scheduler in the foreground, or backfill a date range.
    """
    if ctx.invoked_subcommand is not None:
        return
    if (start_date is None) != (end_date is None):
        raise typer.BadParameter("--start-date and --end-date must be given together")

    config = load_or_exit(config_path, log_level, log_file)
    if not config.tasks:
        typer.echo("No tasks configured", err=True)
        raise typer.Exit(1)

    if start_date is not None and end_date is not None:
        try:
            results = run_backfill(config.tasks, start_date, end_date)
        except InvalidDateError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(2) from e
        _print_backfill(results)
        if any(not r.ok for r in results):
            raise typer.Exit(1)
        return

    scheduler = TaskScheduler(config.tasks)
    signal.signal(signal.SIGTERM, lambda signum, frame: scheduler.stop())
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, waiting for active runs to finish")
    finally:
        scheduler.stop(wait=True)


def _print_backfill(results: list[BackfillResult]) -> None:
    if not results:
        console.print("[dim]Nothing to backfill[/dim]")
        return
    table = Table(title="Backfill", show_header=True)
    table.add_column("Task", style="cyan")
    table.add_column("Date")
    table.add_column("Transferred", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Status")
    for r in results:
        if r.report is not None:
            table.add_row(
                r.task,
                r.date,
                str(r.report.transferred),
                str(r.report.skipped),
                str(r.report.errors),
                "[green]ok[/green]",
            )
        else:
            table.add_row(r.task, r.date, "-", "-", "-", f"[red]{escape(r.error or '')}[/red]")
    totals = summarize(results)
    table.add_section()
    table.add_row("[bold]Total[/bold]", "", str(totals.transferred), str(totals.skipped), str(totals.errors), "")
    console.print(table)
