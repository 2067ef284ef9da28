"""
Main CLI entry point.
"""

import typer

from datasync import __version__
from datasync.cli import once, run, tasks


def version_callback(value: bool):
    """Callback to display version and exit."""
    if value:
        typer.echo(f"datasync version {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="datasync",
    help="datasync - cron-scheduled SFTP directory synchronization",
    add_completion=True,
)

# Register subcommands
app.add_typer(run.app, name="run")
app.add_typer(once.app, name="once")
app.add_typer(tasks.app, name="tasks")


@app.callback(invoke_without_command=True)
def entrypoint(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        help="Show version and exit.",
    ),
):
    """
    datasync - cron-scheduled SFTP directory synchronization.

    Run 'datasync <command> --help' for help on a specific command.
    """
    if ctx.invoked_subcommand is None:
        if not version:
            typer.echo(ctx.get_help())
            raise typer.Exit()


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
