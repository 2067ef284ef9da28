"""
datasync once - Synchronize tasks once, in the foreground, and exit.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from datasync.cli.common import CONFIG_OPTION, LOG_FILE_OPTION, LOG_LEVEL_OPTION, load_or_exit
from datasync.exceptions import ConfigurationError
from datasync.service.scheduler import TaskScheduler

console = Console()

app = typer.Typer(name="once", help="Run each task's synchronization once and exit", invoke_without_command=True)


@app.callback()
def once(
    ctx: typer.Context,
    config_path: Path = CONFIG_OPTION,
    task_names: list[str] | None = typer.Option(None, "--task", "-t", help="Task to run (repeatable; default: all)"),
    log_level: str | None = LOG_LEVEL_OPTION,
    log_file: Path | None = LOG_FILE_OPTION,
) -> None:
    """
    Run the selected tasks one after another, ignoring their cron schedules.
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_or_exit(config_path, log_level, log_file)
    scheduler = TaskScheduler(config.tasks)
    names = list(task_names) if task_names else config.task_names

    table = Table(title="Sync", show_header=True)
    table.add_column("Task", style="cyan")
    table.add_column("Direction")
    table.add_column("Transferred", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Status")

    failed = False
    for name in names:
        try:
            report = scheduler.run_now(name)
        except ConfigurationError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e
        direction = config.task(name).direction.value
        if report is None:
            failed = True
            error = scheduler.status_of(name)["last_error"] or "failed"
            table.add_row(name, direction, "-", "-", "-", f"[red]{escape(error)}[/red]")
        else:
            status = "[green]ok[/green]" if not report.errors else "[yellow]partial[/yellow]"
            table.add_row(
                name, direction, str(report.transferred), str(report.skipped), str(report.errors), status
            )

    console.print(table)
    if failed:
        raise typer.Exit(1)
