"""
datasync tasks - Show configured tasks and their next fire times.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from datasync.cli.common import CONFIG_OPTION, load_or_exit
from datasync.service.scheduler import TaskScheduler

console = Console()

app = typer.Typer(name="tasks", help="List configured tasks", invoke_without_command=True)


@app.callback()
def tasks(
    ctx: typer.Context,
    config_path: Path = CONFIG_OPTION,
) -> None:
    """
    List tasks with endpoint, roots, schedule and next fire time.

    Credentials are never printed.
    """
    if ctx.invoked_subcommand is not None:
        return

    config = load_or_exit(config_path)
    if not config.tasks:
        console.print("[yellow]No tasks configured[/yellow]")
        return

    scheduler = TaskScheduler(config.tasks)
    next_fire = {row["task"]: row["next_fire_at"] for row in scheduler.status()}

    table = Table(title=f"Tasks ({config.path})", show_header=True)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Direction", no_wrap=True)
    table.add_column("Endpoint")
    table.add_column("Remote")
    table.add_column("Local")
    table.add_column("Cron")
    table.add_column("Next fire", style="dim")
    for task in config.tasks:
        table.add_row(
            task.name,
            task.direction.value,
            task.endpoint,
            task.remote_root,
            task.local_root,
            task.cron,
            next_fire.get(task.name) or "-",
        )
    console.print(table)
