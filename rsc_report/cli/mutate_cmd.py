"""State-changing commands: on-demand snapshots and SLA pause/resume."""

import json
from pathlib import Path
from typing import Any, Union

import typer
from rich.table import Table

from rsc_report.cli.common import connect_session, console, resolve_app_config, setup_logging
from rsc_report.errors import PreconditionError, RSCReportError
from rsc_report.models import MutationResult, RequestStatus
from rsc_report.mutations import (
    MutationExecutor,
    SnapshotObjectType,
    pause_sla,
    resume_sla,
    take_on_demand_snapshot,
)
from rsc_report.pagination import fetch_all_nodes
from rsc_report.recipe_loader import RecipeLoader
from rsc_report.session import RSCSession

sla_app = typer.Typer(
    name="sla",
    help="Pause or resume SLA domains.",
    add_completion=False,
)

_URL_OPTION = typer.Option(None, "--url", help="RSC instance URL")
_SERVICE_ACCOUNT_OPTION = typer.Option(None, "--service-account", help="Service account JSON file")
_CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Config file")
_CHECK_OPTION = typer.Option(
    True, "--check/--no-check", help="Verify the SLA domain ID exists before submitting."
)
_JSON_OPTION = typer.Option(False, "--json", help="Output the result as JSON.")
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")


def _known_sla_domains(session: RSCSession) -> list[dict[str, Any]]:
    """Fetch the SLA domain reference collection used for precondition checks."""
    descriptor = RecipeLoader().get_recipe("SLA Domains").query
    with session.client() as client:
        return fetch_all_nodes(client, descriptor, raise_on_error=True)


def _print_result(result: MutationResult, output_json: bool) -> None:
    record = result.as_record()
    if output_json:
        console.print_json(json.dumps(record, default=str))
    else:
        table = Table(title=result.operation, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in record.items():
            table.add_row(key, "" if value is None else str(value))
        console.print(table)
    if result.outcome == RequestStatus.FAILED:
        raise typer.Exit(1)


def _submit(session: RSCSession, action: Any, check: bool, output_json: bool, **kwargs: Any) -> None:
    try:
        known_slas = _known_sla_domains(session) if check else None
        with session.client() as client:
            result = action(MutationExecutor(client), known_slas=known_slas, **kwargs)
    except PreconditionError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2) from e
    except RSCReportError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e
    _print_result(result, output_json)


def snapshot(
    object_type: SnapshotObjectType = typer.Argument(..., help="Type of the object to snapshot"),
    object_id: str = typer.Argument(..., help="RSC object ID"),
    sla_id: str = typer.Option(..., "--sla", help="SLA domain ID used for retention"),
    check: bool = _CHECK_OPTION,
    url: Union[str, None] = _URL_OPTION,
    service_account_file: Union[Path, None] = _SERVICE_ACCOUNT_OPTION,
    config_path: Union[Path, None] = _CONFIG_OPTION,
    output_json: bool = _JSON_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Take an on-demand snapshot of one object."""
    setup_logging(verbose)
    session = connect_session(resolve_app_config(config_path, url, service_account_file))
    _submit(
        session,
        take_on_demand_snapshot,
        check,
        output_json,
        object_type=object_type,
        object_id=object_id,
        sla_id=sla_id,
    )


@sla_app.command()
def pause(
    sla_id: str = typer.Argument(..., help="SLA domain ID"),
    cluster: list[str] = typer.Option(..., "--cluster", help="Cluster UUID. Repeatable."),
    check: bool = _CHECK_OPTION,
    url: Union[str, None] = _URL_OPTION,
    service_account_file: Union[Path, None] = _SERVICE_ACCOUNT_OPTION,
    config_path: Union[Path, None] = _CONFIG_OPTION,
    output_json: bool = _JSON_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Pause an SLA domain on the given clusters."""
    setup_logging(verbose)
    session = connect_session(resolve_app_config(config_path, url, service_account_file))
    _submit(session, pause_sla, check, output_json, sla_id=sla_id, cluster_ids=cluster)


@sla_app.command()
def resume(
    sla_id: str = typer.Argument(..., help="SLA domain ID"),
    cluster: list[str] = typer.Option(..., "--cluster", help="Cluster UUID. Repeatable."),
    check: bool = _CHECK_OPTION,
    url: Union[str, None] = _URL_OPTION,
    service_account_file: Union[Path, None] = _SERVICE_ACCOUNT_OPTION,
    config_path: Union[Path, None] = _CONFIG_OPTION,
    output_json: bool = _JSON_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Resume a paused SLA domain on the given clusters."""
    setup_logging(verbose)
    session = connect_session(resolve_app_config(config_path, url, service_account_file))
    _submit(session, resume_sla, check, output_json, sla_id=sla_id, cluster_ids=cluster)
