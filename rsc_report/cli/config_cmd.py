"""The 'config' command group: init, show."""

import os
from pathlib import Path

import typer
import yaml
from rich.table import Table

from rsc_report.cli.common import console, find_config_file, load_config_file, redact_token

config_app = typer.Typer(
    name="config",
    help="Manage rsc-report configuration.",
    add_completion=False,
)

_SECRET_KEYS = {"client_secret", "access_token"}

_SHOWN_KEYS = [
    ("url", "RSC_URL"),
    ("service_account_file", "RSC_SERVICE_ACCOUNT_FILE"),
    ("client_id", "RSC_CLIENT_ID"),
    ("client_secret", "RSC_CLIENT_SECRET"),
    ("access_token", "RSC_ACCESS_TOKEN"),
    ("timeout", "RSC_TIMEOUT"),
    ("page_size", "RSC_PAGE_SIZE"),
    ("verify_ssl", "RSC_VERIFY_SSL"),
    ("output_dir", "RSC_OUTPUT_DIR"),
    ("recipes_dir", "RSC_RECIPES_DIR"),
]


@config_app.command()
def init(
    path: Path = typer.Option(
        Path.home() / ".rsc-report" / "config.yaml", "--path", help="Where to write the config file"
    ),
) -> None:
    """Interactively create a config file."""
    if path.exists():
        overwrite = typer.confirm(f"Config file already exists at {path}. Overwrite?", default=False)
        if not overwrite:
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit(0)

    console.print("[bold cyan]rsc-report configuration[/bold cyan]\n")
    service_account_file = typer.prompt("Service account JSON file (leave empty to use a URL)", default="")
    url = "" if service_account_file else typer.prompt("RSC URL (e.g., acme.my.rubrik.com)", default="")
    output_dir = typer.prompt("Default output directory", default="./output")

    config_data: dict[str, object] = {"output_dir": output_dir}
    if service_account_file:
        config_data["service_account_file"] = service_account_file
    if url:
        config_data["url"] = url

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)

    console.print(f"\n[green]Config written to {path}[/green]")
    console.print("[dim]Set RSC_CLIENT_SECRET or RSC_ACCESS_TOKEN in your environment; secrets are not stored.[/dim]")


@config_app.command()
def show() -> None:
    """Show the resolved configuration (config file + env vars)."""
    config_path = find_config_file()
    cfg = load_config_file()

    if config_path:
        console.print(f"[cyan]Config file: {config_path}[/cyan]")
    else:
        console.print("[yellow]No config file found.[/yellow]")

    table = Table(title="Resolved Configuration")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key, env_var in _SHOWN_KEYS:
        env_val = os.getenv(env_var)
        if env_val is not None:
            value, source = env_val, "env var"
        elif cfg.get(key) is not None and key not in _SECRET_KEYS:
            value, source = str(cfg[key]), "config file"
        else:
            table.add_row(key, "(not set)", "-")
            continue
        if key in _SECRET_KEYS:
            value = redact_token(value)
        table.add_row(key, value, source)

    email_cfg = cfg.get("email") or {}
    for key in ("server", "port", "sender", "recipients", "use_tls"):
        env_val = os.getenv(f"RSC_SMTP_{key.upper()}")
        if env_val is not None:
            table.add_row(f"email.{key}", env_val, "env var")
        elif email_cfg.get(key) is not None:
            table.add_row(f"email.{key}", str(email_cfg[key]), "config file")

    console.print(table)
