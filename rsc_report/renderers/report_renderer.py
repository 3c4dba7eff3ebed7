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

"""Report renderer that coordinates all output formats."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from rsc_report.mapper import sort_records
from rsc_report.models import ReportSchema
from rsc_report.renderers.columns import columns_for
from rsc_report.renderers.csv_renderer import CSVRenderer
from rsc_report.renderers.html_renderer import HTMLRenderer
from rsc_report.renderers.xlsx_renderer import XLSXRenderer

DEFAULT_FORMATS = ("csv", "html")


@dataclass
class RenderedReport:
    """The documents produced for one record collection."""

    name: str
    columns: list[str]
    record_count: int
    html: str | None = None
    files: dict[str, Path] = field(default_factory=dict)

    @property
    def csv_path(self) -> Path | None:
        return self.files.get("csv")

    @property
    def html_path(self) -> Path | None:
        return self.files.get("html")


class ReportRenderer:
    """Sorts, lays out and writes a record collection in each requested format."""

    def __init__(self, output_dir: str | Path, template_path: Path | None = None) -> None:
        self.output_dir = Path(output_dir)
        self.logger = logging.getLogger(__name__)

        self.csv_renderer = CSVRenderer()
        self.xlsx_renderer = XLSXRenderer()
        self.html_renderer = HTMLRenderer(template_path)

    def render(
        self,
        name: str,
        records: list[dict[str, Any]],
        schema: ReportSchema | None = None,
        formats: list[str] | tuple[str, ...] = DEFAULT_FORMATS,
        description: str | None = None,
        window: str | None = None,
        instance: str | None = None,
        generated_at: datetime | None = None,
    ) -> RenderedReport:
        """
        Render ``records`` and write ``<name>-YYYY-MM-DD_HHMMSS.<ext>`` files.

        The HTML document is always built (it is the email body) but only
        written to disk when ``html`` is among ``formats``.
        """
        generated_at = (generated_at or datetime.now(UTC)).astimezone(UTC)
        formats = [f.lower() for f in formats]

        if schema is not None and schema.sort is not None:
            records = sort_records(records, schema.sort.column, schema.sort.descending)

        columns = columns_for(records, schema)
        report = RenderedReport(name=name, columns=columns, record_count=len(records))
        self.logger.debug(f"Rendering {name}: {len(records)} records, columns={columns}")

        report.html = self.html_renderer.render_string(
            name,
            records,
            columns,
            schema=schema,
            description=description,
            window=window,
            instance=instance,
            generated_at=generated_at,
        )

        self.output_dir.mkdir(parents=True, exist_ok=True)
        base = f"{self._sanitize_filename(name)}-{generated_at:%Y-%m-%d_%H%M%S}"

        if "csv" in formats:
            path = self.output_dir / f"{base}.csv"
            self.csv_renderer.render(records, columns, path, schema)
            report.files["csv"] = path
        if "xlsx" in formats:
            path = self.output_dir / f"{base}.xlsx"
            self.xlsx_renderer.render(records, columns, path, name, schema)
            report.files["xlsx"] = path
        if "html" in formats:
            path = self.output_dir / f"{base}.html"
            self.html_renderer.render(report.html, path)
            report.files["html"] = path

        for fmt, path in report.files.items():
            self.logger.info(f"Generated {fmt.upper()}: {path}")
        return report

    @staticmethod
    def _sanitize_filename(filename: str) -> str:
        """Sanitize filename for safe file system usage."""
        sanitized = filename
        for ch in '/\\:*?"<>|':
            sanitized = sanitized.replace(ch, "_")
        sanitized = sanitized.replace(" ", "_").strip("_.")
        return sanitized or "report"
