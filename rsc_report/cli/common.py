"""Shared CLI helpers: logging, config file loading, session setup."""

import logging
import os
from pathlib import Path
from typing import Any, Union

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler

from rsc_report.config import AppConfig, EmailSettings, RSCSettings
from rsc_report.errors import SessionError
from rsc_report.logging_utils import create_file_handler
from rsc_report.session import RSCSession

console = Console()

# Config file search order: CWD first, then ~/.rsc-report/
_CONFIG_FILENAMES = [".rsc-report.yaml", ".rsc-report.yml"]
_GLOBAL_CONFIG_DIR = Path.home() / ".rsc-report"
_GLOBAL_CONFIG_FILENAMES = ["config.yaml", "config.yml"]

# (settings field, env var, config file key); tokens are never read from the config file
_RSC_KEYS = [
    ("url", "RSC_URL", "url"),
    ("service_account_file", "RSC_SERVICE_ACCOUNT_FILE", "service_account_file"),
    ("client_id", "RSC_CLIENT_ID", "client_id"),
    ("client_secret", "RSC_CLIENT_SECRET", "client_secret"),
    ("access_token", "RSC_ACCESS_TOKEN", None),
    ("timeout", "RSC_TIMEOUT", "timeout"),
    ("page_size", "RSC_PAGE_SIZE", "page_size"),
    ("verify_ssl", "RSC_VERIFY_SSL", "verify_ssl"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging with RichHandler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def attach_file_logging(run_id: str, secrets: list[str | None]) -> logging.Handler:
    """Mirror all log output to the per-run log file."""
    handler = create_file_handler(run_id, secrets)
    root = logging.getLogger()
    root.addHandler(handler)
    return handler


def redact_token(token: str) -> str:
    """Redact token for display (shows first 4 and last 4 chars)."""
    if len(token) <= 8:
        return "*" * len(token)
    return token[:4] + "*" * (len(token) - 8) + token[-4:]


# ── Config file loading ─────────────────────────────────────────────


def find_config_file() -> Path | None:
    """Locate the config file: CWD first, then ~/.rsc-report/."""
    cwd = Path.cwd()
    for name in _CONFIG_FILENAMES:
        candidate = cwd / name
        if candidate.is_file():
            return candidate

    for name in _GLOBAL_CONFIG_FILENAMES:
        candidate = _GLOBAL_CONFIG_DIR / name
        if candidate.is_file():
            return candidate

    return None


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load the config file as a dict; empty when there is none."""
    path = path or find_config_file()
    if path is None:
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[yellow]Ignoring unreadable config file {path}: {e}[/yellow]")
        return {}
    return data if isinstance(data, dict) else {}


def merge_config(
    cli_value: Any,
    env_var: str | None = None,
    config_key: str | None = None,
    default: Any = None,
    config_data: dict[str, Any] | None = None,
) -> Any:
    """Resolve a single config value: CLI flag > env var > config file > default."""
    if cli_value is not None:
        return cli_value
    if env_var:
        env_val = os.getenv(env_var)
        if env_val is not None:
            return env_val
    if config_key and config_data:
        cfg_val = config_data.get(config_key)
        if cfg_val is not None:
            return cfg_val
    return default


def resolve_app_config(
    config_path: Union[Path, None] = None,
    url: Union[str, None] = None,
    service_account_file: Union[Path, None] = None,
    output_dir: Union[Path, None] = None,
    recipes_dir: Union[Path, None] = None,
) -> AppConfig:
    """Build the effective configuration from flags, env vars and the config file."""
    cfg = load_config_file(config_path)
    cli_values = {"url": url, "service_account_file": service_account_file}

    rsc_values = {}
    for field, env_var, key in _RSC_KEYS:
        value = merge_config(cli_values.get(field), env_var, key, None, cfg)
        if value is not None:
            rsc_values[field] = value

    email_cfg = cfg.get("email") or {}
    email_values = {
        k: v for k, v in email_cfg.items() if os.getenv(f"RSC_SMTP_{k.upper()}") is None
    }

    return AppConfig(
        rsc=RSCSettings(**rsc_values),
        email=EmailSettings(**email_values),
        output_dir=Path(merge_config(output_dir, "RSC_OUTPUT_DIR", "output_dir", "./output", cfg)),
        recipes_dir=merge_config(recipes_dir, "RSC_RECIPES_DIR", "recipes_dir", None, cfg),
    )


def connect_session(config: AppConfig) -> RSCSession:
    """Connect to RSC or exit with status 2 when credentials are missing or rejected."""
    try:
        return RSCSession.connect(config.rsc)
    except SessionError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(2) from e
