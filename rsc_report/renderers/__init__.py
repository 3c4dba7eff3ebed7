"""Output renderers for report records."""

from rsc_report.models import ColumnSpec, ReportSchema, SortSpec
from rsc_report.renderers.columns import (
    columns_for,
    format_value,
    link_column_for,
    resolve_columns,
)
from rsc_report.renderers.csv_renderer import CSVRenderer
from rsc_report.renderers.html_renderer import HTMLRenderer
from rsc_report.renderers.report_renderer import RenderedReport, ReportRenderer
from rsc_report.renderers.xlsx_renderer import XLSXRenderer

__all__ = [
    "CSVRenderer",
    "ColumnSpec",
    "HTMLRenderer",
    "RenderedReport",
    "ReportRenderer",
    "ReportSchema",
    "SortSpec",
    "XLSXRenderer",
    "columns_for",
    "format_value",
    "link_column_for",
    "resolve_columns",
]
