"""Write flat records to a SQL table through SQLAlchemy."""

import logging
from datetime import datetime
from typing import Any

import pandas as pd
from sqlalchemy import BigInteger, Boolean, DateTime, Float, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine

from rsc_report.errors import RSCReportError

logger = logging.getLogger(__name__)


def column_type(values: list[Any]) -> TypeEngine[Any]:
    """Map the Python type of a column's non-null values to a SQL type.

    bool is checked before int because bool subclasses int. Mixed or unknown
    types fall back to text.
    """
    kinds = {type(v) for v in values if v is not None}
    if not kinds:
        return Text()
    if kinds == {bool}:
        return Boolean()
    if kinds == {int}:
        return BigInteger()
    if kinds <= {int, float}:
        return Float()
    if all(issubclass(k, datetime) for k in kinds):
        return DateTime(timezone=True)
    return Text()


def sql_types(records: list[dict[str, Any]], columns: list[str]) -> dict[str, TypeEngine[Any]]:
    return {c: column_type([r.get(c) for r in records]) for c in columns}


def _cell(value: Any) -> Any:
    if isinstance(value, list | tuple):
        return ", ".join(str(v) for v in value)
    return value


def write_records(
    records: list[dict[str, Any]],
    table: str,
    engine: Engine | str,
    columns: list[str] | None = None,
    if_exists: str = "append",
    schema: str | None = None,
) -> int:
    """Write records to ``table``; returns the number of rows written."""
    if not records:
        logger.info(f"No records to write to {table}")
        return 0

    if isinstance(engine, str):
        engine = create_engine(engine, future=True)
    columns = columns or list(records[0])
    df = pd.DataFrame([[_cell(r.get(c)) for c in columns] for r in records], columns=columns)
    dtype = sql_types(records, columns)

    try:
        df.to_sql(table, engine, schema=schema, if_exists=if_exists, index=False, dtype=dtype)
    except SQLAlchemyError as e:
        raise RSCReportError(f"Failed to write {len(df)} rows to {table}: {e}") from e

    logger.info(f"Wrote {len(df)} rows to table {table}")
    return len(df)
