"""Column resolution and cell formatting shared by every output format."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import pandas as pd

from rsc_report.models import ReportSchema

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_URL_FIELD = "URL"


def resolve_columns(
    records: list[dict[str, Any]],
    declared: list[str] | None = None,
    hidden: Iterable[str] = (),
) -> list[str]:
    """Work out the rendered column order.

    Declared columns come first, in declared order. A declared column that no
    record carries is skipped with a warning. Columns present in the records
    but not declared are appended alphabetically. With no declaration the
    order is alphabetical.
    """
    hidden = set(hidden)
    available: dict[str, None] = {}
    for record in records:
        for key in record:
            available.setdefault(key, None)

    if declared is None:
        return sorted(k for k in available if k not in hidden)

    columns = []
    for name in declared:
        if name in hidden or name in columns:
            continue
        if records and name not in available:
            logger.warning(f"Column '{name}' not present in records, skipping")
            continue
        columns.append(name)

    extras = sorted(k for k in available if k not in columns and k not in hidden)
    if extras and records:
        logger.debug(f"Appending undeclared columns: {extras}")
    return columns + extras


def columns_for(records: list[dict[str, Any]], schema: ReportSchema | None) -> list[str]:
    """Resolve the data columns for a schema (all fields, URL included)."""
    if schema is None:
        return resolve_columns(records)
    return resolve_columns(records, schema.column_names)


def link_column_for(
    records: list[dict[str, Any]],
    columns: list[str],
    schema: ReportSchema | None = None,
) -> str | None:
    """Column whose cells link to the record URL, or None.

    An explicit ``link_column`` wins. Otherwise, when any record carries the
    URL field, the first column other than the URL field is linked.
    """
    if schema is not None and schema.link_column:
        return schema.link_column
    url_field = schema.url_field if schema else DEFAULT_URL_FIELD
    if not any(url_field in r for r in records):
        return None
    return next((c for c in columns if c != url_field), None)


def format_value(value: Any) -> str:
    """Stringify one scalar cell value."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, list | tuple):
        return ", ".join(format_value(v) for v in value)
    return str(value)


def to_frame(
    records: list[dict[str, Any]],
    columns: list[str],
    schema: ReportSchema | None = None,
    stringify: bool = True,
) -> pd.DataFrame:
    """Build a DataFrame with exactly ``columns``, headed by their display labels."""
    rows = [
        [format_value(r.get(c)) if stringify else r.get(c) for c in columns] for r in records
    ]
    headers = [schema.header_for(c) if schema else c for c in columns]
    return pd.DataFrame(rows, columns=headers)
