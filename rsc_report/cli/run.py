"""The 'run' command: generate reports."""

import logging
from pathlib import Path
from typing import Union

import typer
from rich.table import Table
from sqlalchemy.exc import ArgumentError

from rsc_report.cli.common import (
    attach_file_logging,
    connect_session,
    console,
    redact_token,
    resolve_app_config,
    setup_logging,
)
from rsc_report.errors import RSCReportError
from rsc_report.logging_utils import generate_run_id
from rsc_report.notify import SMTPEmailSender
from rsc_report.recipe_loader import RecipeLoader
from rsc_report.report_engine import ReportEngine
from rsc_report.time_window import resolve_time_window

_WINDOW = "Time window"
_OUTPUT = "Output"
_CONNECTION = "Connection"


def run_command(
    recipe: Union[list[str], None] = typer.Argument(
        None, help="Recipe name(s) to run. Runs every recipe when omitted."
    ),
    days: Union[int, None] = typer.Option(
        None, "--days", "-d", min=1, help="Capture the last N days.", rich_help_panel=_WINDOW
    ),
    hours: Union[int, None] = typer.Option(
        None, "--hours", min=1, help="Capture the last N hours.", rich_help_panel=_WINDOW
    ),
    minutes: Union[int, None] = typer.Option(
        None, "--minutes", min=1, help="Capture the last N minutes.", rich_help_panel=_WINDOW
    ),
    from_date: Union[str, None] = typer.Option(
        None, "--from", help="Window start (ISO-8601, UTC).", rich_help_panel=_WINDOW
    ),
    to_date: Union[str, None] = typer.Option(
        None, "--to", help="Window end (ISO-8601, UTC). Defaults to now.", rich_help_panel=_WINDOW
    ),
    output: Union[Path, None] = typer.Option(
        None, "--output", "-o", help="Output directory", rich_help_panel=_OUTPUT
    ),
    formats: Union[list[str], None] = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format (csv, html, xlsx). Repeatable. Defaults to the recipe's formats.",
        rich_help_panel=_OUTPUT,
    ),
    recipes: Union[Path, None] = typer.Option(
        None,
        "--recipes",
        "-r",
        help="Path to an extra recipes directory",
        dir_okay=True,
        file_okay=False,
        rich_help_panel=_OUTPUT,
    ),
    no_bundled_recipes: bool = typer.Option(
        False, "--no-bundled-recipes", help="Disable bundled recipes.", rich_help_panel=_OUTPUT
    ),
    template: Union[Path, None] = typer.Option(
        None, "--template", help="Custom Jinja2 HTML template", exists=True, dir_okay=False, rich_help_panel=_OUTPUT
    ),
    email: bool = typer.Option(
        False, "--email", help="Email each report using the SMTP settings.", rich_help_panel=_OUTPUT
    ),
    sql_url: Union[str, None] = typer.Option(
        None, "--sql-url", help="SQLAlchemy database URL to write records to.", rich_help_panel=_OUTPUT
    ),
    sql_table: Union[str, None] = typer.Option(
        None, "--sql-table", help="Target table (defaults to the recipe name).", rich_help_panel=_OUTPUT
    ),
    url: Union[str, None] = typer.Option(
        None, "--url", help="RSC instance URL", rich_help_panel=_CONNECTION
    ),
    service_account_file: Union[Path, None] = typer.Option(
        None, "--service-account", help="Service account JSON file", rich_help_panel=_CONNECTION
    ),
    config_path: Union[Path, None] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./.rsc-report.yaml or ~/.rsc-report/config.yaml)"
    ),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show fetch progress bars."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Generate reports from recipes."""
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    config = resolve_app_config(config_path, url, service_account_file, output, recipes)
    loader = RecipeLoader(config.recipes_dir, use_bundled=not no_bundled_recipes)
    available = loader.load_recipes()
    if recipe:
        wanted = {r.lower() for r in recipe}
        selected = [r for r in available if r.name.lower() in wanted]
        missing = wanted - {r.name.lower() for r in selected}
        if missing:
            console.print(f"[red]Recipe(s) not found: {', '.join(sorted(missing))}[/red]")
            console.print(f"Available recipes: {', '.join(r.name for r in available)}")
            raise typer.Exit(1)
    else:
        selected = available
    if not selected:
        console.print("[yellow]No recipes to run[/yellow]")
        raise typer.Exit(1)

    try:
        window = resolve_time_window(days, hours, minutes, from_date, to_date)
    except ValueError as e:
        console.print(f"[red]Invalid time window: {e}[/red]")
        raise typer.Exit(2) from e

    email_sender = None
    if email:
        try:
            email_sender = SMTPEmailSender(config.email)
        except RSCReportError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(2) from e

    session = connect_session(config)
    run_id = generate_run_id()
    file_handler = attach_file_logging(
        run_id, [session.access_token, config.rsc.client_secret, config.email.password]
    )

    logger.info("Configuration:")
    logger.info(f"  Instance: {session.instance}")
    logger.info(f"  Token: {redact_token(session.access_token)}")
    logger.info(f"  Output directory: {config.output_dir}")
    logger.info(f"  Time window: {window.describe()}")
    logger.info(f"  Run ID: {run_id}")

    failed = False
    results = []
    try:
        with ReportEngine(
            session,
            config.output_dir,
            email_sender=email_sender,
            sql_engine=sql_url,
            template_path=template,
            progress=progress,
            verbose=verbose,
            page_size=config.rsc.page_size,
        ) as engine:
            for r in selected:
                table_name = (sql_table or r.name.replace(" ", "_")) if sql_url else None
                try:
                    results.append(
                        engine.run_recipe(r, window, formats=formats, email=email, sql_table=table_name)
                    )
                except (RSCReportError, ArgumentError, OSError) as e:
                    logger.error(f"Report '{r.name}' failed: {e}")
                    failed = True
    finally:
        logging.getLogger().removeHandler(file_handler)
        file_handler.close()

    table = Table(title="Reports")
    table.add_column("Report", style="cyan")
    table.add_column("Records", justify="right")
    table.add_column("Complete")
    table.add_column("Files", style="dim")
    for result in results:
        files = ", ".join(str(p) for p in result.report.files.values()) if result.report else ""
        table.add_row(
            result.recipe.name,
            str(len(result.records)),
            "[green]yes[/green]" if result.complete else f"[red]no[/red] ({result.error})",
            files,
        )
        failed = failed or not result.complete
    console.print(table)

    if failed:
        raise typer.Exit(1)
