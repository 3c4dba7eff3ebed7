# Copyright (c) 2026 rsc-report contributors
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""XLSX renderer for exporting records as Excel workbooks."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from rsc_report.models import ReportSchema
from rsc_report.renderers.columns import to_frame

# Excel's maximum row limit (excluding header)
EXCEL_MAX_ROWS = 1_048_575
MAX_COLUMN_WIDTH = 50


def _is_missing(value: Any) -> bool:
    # None, NaN and NaT all count as empty cells
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


class XLSXRenderer:
    """Single-sheet workbook with a formatted header row and typed cells."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def safe_sheet_name(name: str) -> str:
        """Excel worksheet names are limited to 31 characters and a few symbols."""
        for ch in "[]:*?/\\":
            name = name.replace(ch, "_")
        return name[:28] + "..." if len(name) > 31 else name or "Data"

    @staticmethod
    def _excel_value(value: Any) -> Any:
        # Excel has no timezone support
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.replace(tzinfo=None)
        if isinstance(value, list | tuple):
            return ", ".join(str(v) for v in value)
        return value

    def render(
        self,
        records: list[dict[str, Any]],
        columns: list[str],
        output_path: Path,
        sheet_name: str = "Data",
        schema: ReportSchema | None = None,
    ) -> None:
        rows = [{c: self._excel_value(r.get(c)) for c in columns} for r in records]
        df = to_frame(rows, columns, schema, stringify=False)

        if len(df) > EXCEL_MAX_ROWS:
            self.logger.warning(
                f"{len(df):,} rows exceed Excel's limit of {EXCEL_MAX_ROWS:,}; "
                f"truncating. Use CSV for full data."
            )
            df = df.head(EXCEL_MAX_ROWS)

        safe_name = self.safe_sheet_name(sheet_name)
        with pd.ExcelWriter(output_path, engine="xlsxwriter", datetime_format="yyyy-mm-dd hh:mm:ss") as writer:
            df.to_excel(writer, sheet_name=safe_name, index=False)
            workbook = writer.book
            worksheet = writer.sheets[safe_name]

            header_format = workbook.add_format(
                {"bold": True, "text_wrap": True, "valign": "top", "fg_color": "#D9EAD3", "border": 1}
            )
            for col_num, header in enumerate(df.columns.values):
                worksheet.write(0, col_num, header, header_format)
                width = len(str(header))
                if len(df):
                    lengths = df[header].map(lambda v: 0 if _is_missing(v) else len(str(v)))
                    width = max(width, int(lengths.max()))
                worksheet.set_column(col_num, col_num, min(width + 2, MAX_COLUMN_WIDTH))
            if len(df.columns):
                worksheet.freeze_panes(1, 0)
                worksheet.autofilter(0, 0, len(df), len(df.columns) - 1)

        self.logger.debug(f"XLSX exported to: {output_path}")
