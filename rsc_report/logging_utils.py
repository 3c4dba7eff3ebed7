"""Persistent file logging for report and mutation runs."""

import logging
import os
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta
from pathlib import Path

LOG_DIR = Path.home() / ".rsc-report" / "logs"
LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
MAX_LOG_AGE_DAYS = 14
REDACTED = "***REDACTED***"


def generate_run_id() -> str:
    """Return an 8-character hex run identifier."""
    return uuid.uuid4().hex[:8]


class SecretRedactionFilter(logging.Filter):
    """Replace every known secret (bearer token, client secret, SMTP password) in a record."""

    def __init__(self, secrets: Iterable[str | None]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def _scrub(self, value: object) -> object:
        text = str(value)
        hit = False
        for secret in self._secrets:
            if secret in text:
                text = text.replace(secret, REDACTED)
                hit = True
        return text if hit else value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        record.msg = self._scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._scrub(a) for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: self._scrub(v) for k, v in record.args.items()}
        return True


def create_file_handler(
    run_id: str,
    secrets: Iterable[str | None] = (),
    level: int = logging.DEBUG,
    log_dir: Path | None = None,
) -> logging.FileHandler:
    """Create a handler writing to ``<log_dir>/<date>_<run_id>.log``.

    Old log files in the same directory are pruned as a side effect.
    """
    log_dir = log_dir or LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    # Owner-only permissions (POSIX)
    try:
        os.chmod(log_dir, 0o700)
    except OSError:
        pass

    date_str = datetime.now().strftime("%Y-%m-%d")
    handler = logging.FileHandler(str(log_dir / f"{date_str}_{run_id}.log"), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SecretRedactionFilter(secrets))

    cleanup_old_logs(log_dir)
    return handler


def cleanup_old_logs(log_dir: Path | None = None, max_age_days: int = MAX_LOG_AGE_DAYS) -> list[Path]:
    """Delete ``*.log`` files older than ``max_age_days``; returns the removed paths."""
    log_dir = log_dir or LOG_DIR
    if not log_dir.is_dir():
        return []

    removed = []
    cutoff = datetime.now() - timedelta(days=max_age_days)
    for path in log_dir.glob("*.log"):
        # YYYY-MM-DD_<run_id>.log
        try:
            file_date = datetime.strptime(path.stem.split("_", 1)[0], "%Y-%m-%d")
        except ValueError:
            continue
        if file_date < cutoff:
            path.unlink()
            removed.append(path)
    return removed
