"""HTML renderer for report documents."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, PackageLoader, select_autoescape

from rsc_report import __version__
from rsc_report.models import ReportSchema
from rsc_report.renderers.columns import (
    DATETIME_FORMAT,
    DEFAULT_URL_FIELD,
    format_value,
    link_column_for,
)

DEFAULT_TEMPLATE = "report.html.j2"


class HTMLRenderer:
    """Renders a record collection into a single HTML document.

    The document has a header, a summary table (report name, record count,
    time window, generation time), the data table and a footer. A custom
    Jinja2 template receives the same context.
    """

    def __init__(self, template_path: Path | None = None) -> None:
        self.logger = logging.getLogger(__name__)
        if template_path is not None:
            loader: Any = FileSystemLoader(str(template_path.parent))
            self.template_name = template_path.name
        else:
            loader = PackageLoader("rsc_report", "renderers/templates")
            self.template_name = DEFAULT_TEMPLATE
        self.env = Environment(loader=loader, autoescape=select_autoescape(["html", "j2"]))

    def render_string(
        self,
        title: str,
        records: list[dict[str, Any]],
        columns: list[str],
        schema: ReportSchema | None = None,
        description: str | None = None,
        window: str | None = None,
        instance: str | None = None,
        generated_at: datetime | None = None,
    ) -> str:
        """Return the HTML document as a string."""
        generated_at = generated_at or datetime.now(UTC)
        url_field = schema.url_field if schema else DEFAULT_URL_FIELD
        link_column = link_column_for(records, columns, schema)
        if link_column is not None:
            columns = [c for c in columns if c != url_field]

        rows = []
        for record in records:
            row = []
            for column in columns:
                href = record.get(url_field) if column == link_column else None
                row.append({"text": format_value(record.get(column)), "href": href or None})
            rows.append(row)

        template = self.env.get_template(self.template_name)
        return template.render(
            title=title,
            description=description,
            instance=instance,
            window=window,
            record_count=len(records),
            generated_at=generated_at.astimezone(UTC).strftime(DATETIME_FORMAT) + " UTC",
            headers=[schema.header_for(c) if schema else c for c in columns],
            rows=rows,
            version=__version__,
        )

    def render(self, html: str, output_path: Path) -> None:
        """Write a rendered document to disk."""
        output_path.write_text(html, encoding="utf-8")
        self.logger.debug(f"HTML exported to: {output_path}")
