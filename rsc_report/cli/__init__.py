"""CLI entry point for rsc-report.

The top-level ``app`` Typer instance is assembled here from the command
modules.
"""

import typer
from rich.console import Console

from rsc_report import __version__
from rsc_report.cli.config_cmd import config_app
from rsc_report.cli.list_cmd import list_app
from rsc_report.cli.mutate_cmd import sla_app, snapshot
from rsc_report.cli.run import run_command

_console = Console()

app = typer.Typer(
    name="rsc-report",
    help="Rubrik Security Cloud reporting and operations toolkit",
    add_completion=False,
    no_args_is_help=True,
)

app.command("run", help="Generate reports from recipes.")(run_command)
app.command("snapshot", help="Take an on-demand snapshot.")(snapshot)
app.add_typer(list_app, name="list", help="List resources (recipes).")
app.add_typer(sla_app, name="sla", help="Pause or resume SLA domains.")
app.add_typer(config_app, name="config", help="Manage configuration.")


def _version_callback(value: bool) -> None:
    if value:
        _console.print(f"rsc-report {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Rubrik Security Cloud reporting and operations toolkit."""


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
