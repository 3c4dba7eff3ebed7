"""CSV renderer for exporting records."""

import logging
from pathlib import Path
from typing import Any

from rsc_report.models import ReportSchema
from rsc_report.renderers.columns import to_frame


class CSVRenderer:
    """One header row, then one row of stringified values per record."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    def render(
        self,
        records: list[dict[str, Any]],
        columns: list[str],
        output_path: Path,
        schema: ReportSchema | None = None,
    ) -> None:
        if not columns:
            output_path.write_text("", encoding="utf-8")
            self.logger.debug(f"Empty CSV written to: {output_path}")
            return

        df = to_frame(records, columns, schema)
        df.to_csv(output_path, index=False, encoding="utf-8")
        self.logger.debug(f"CSV exported to: {output_path} ({len(df)} rows)")
