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

"""Report engine: fetch, flatten, render and deliver one recipe at a time."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from sqlalchemy.engine import Engine

from rsc_report.api_client import GraphQLClient
from rsc_report.mapper import RecordMapper
from rsc_report.models import Recipe
from rsc_report.notify import EmailSender, email_report
from rsc_report.pagination import fetch_all_nodes
from rsc_report.recipe_loader import RecipeLoader
from rsc_report.renderers import RenderedReport, ReportRenderer
from rsc_report.session import RSCSession
from rsc_report.sql_writer import write_records
from rsc_report.time_window import TimeWindow, resolve_time_window


@dataclass
class ReportResult:
    """Outcome of running one recipe."""

    recipe: Recipe
    records: list[dict[str, Any]]
    report: RenderedReport | None = None
    complete: bool = True
    error: str | None = None
    rows_written: int | None = None


class ReportEngine:
    """Runs recipes against one RSC session."""

    def __init__(
        self,
        session: RSCSession,
        output_dir: str | Path = "./output",
        *,
        email_sender: EmailSender | None = None,
        sql_engine: Engine | str | None = None,
        template_path: Path | None = None,
        progress: bool = False,
        verbose: bool = False,
        transport: httpx.BaseTransport | None = None,
        page_size: int | None = None,
    ) -> None:
        self.session = session
        self.page_size = page_size
        self.client: GraphQLClient = session.client(verbose=verbose, transport=transport)
        self.renderer = ReportRenderer(output_dir, template_path)
        self.email_sender = email_sender
        self.sql_engine = sql_engine
        self.progress = progress
        self.logger = logging.getLogger(__name__)

    def fetch_records(
        self,
        recipe: Recipe,
        window: TimeWindow,
        variables: dict[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], bool, str | None]:
        """Fetch and flatten a recipe's records; returns (records, complete, error)."""
        descriptor = recipe.query.with_substitutions(window.as_variables())
        if variables:
            descriptor = descriptor.model_copy(update={"variables": {**descriptor.variables, **variables}})
        if self.page_size:
            # Configured size is an upper bound
            descriptor = descriptor.model_copy(
                update={"page_size": min(descriptor.page_size, self.page_size)}
            )

        nodes = fetch_all_nodes(self.client, descriptor, progress=self.progress)
        self.logger.info(f"Processing {len(nodes)} records...")
        records = RecordMapper(recipe.fields).map_nodes(nodes)
        return records, nodes.complete, nodes.error

    def run_recipe(
        self,
        recipe: Recipe,
        window: TimeWindow,
        *,
        variables: dict[str, Any] | None = None,
        formats: list[str] | None = None,
        email: bool = False,
        sql_table: str | None = None,
    ) -> ReportResult:
        """Run one recipe end to end."""
        self.logger.info(f"Running report: {recipe.name} ({window.describe()})")
        records, complete, error = self.fetch_records(recipe, window, variables)
        result = ReportResult(recipe, records, complete=complete, error=error)
        formats = list(recipe.output.formats if formats is None else formats)
        if email and "csv" not in formats:
            # Email attaches the CSV
            formats.append("csv")
        if not complete:
            self.logger.warning(f"{recipe.name}: results are incomplete ({error})")

        result.report = self.renderer.render(
            recipe.name,
            records,
            schema=recipe.output,
            formats=formats,
            description=recipe.description,
            window=window.describe(),
            instance=self.session.instance,
        )

        if email:
            if self.email_sender is None:
                self.logger.warning("Email requested but no email sender is configured")
            else:
                email_report(self.email_sender, result.report, f"{recipe.name} - {self.session.instance}")

        if sql_table:
            if self.sql_engine is None:
                self.logger.warning("SQL table given but no database URL is configured")
            else:
                result.rows_written = write_records(
                    records, sql_table, self.sql_engine, columns=RecordMapper(recipe.fields).schema
                )
        return result

    def run(self, recipes: list[Recipe], window: TimeWindow, **kwargs: Any) -> list[ReportResult]:
        """Run several recipes in order; returns one result per recipe."""
        self.logger.info(f"Starting report generation for {len(recipes)} recipe(s)...")
        return [self.run_recipe(recipe, window, **kwargs) for recipe in recipes]

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ReportEngine":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def run_report(
    session: RSCSession,
    recipe_name: str,
    *,
    days: int | None = None,
    hours: int | None = None,
    minutes: int | None = None,
    from_date: Any = None,
    to_date: Any = None,
    variables: dict[str, Any] | None = None,
    output_dir: str | Path = "./output",
    recipes_dir: Path | None = None,
    formats: list[str] | None = None,
    transport: httpx.BaseTransport | None = None,
    page_size: int | None = None,
) -> list[dict[str, Any]]:
    """Run a named report with flat parameters and return its records."""
    recipe = RecipeLoader(recipes_dir).get_recipe(recipe_name)
    window = resolve_time_window(days, hours, minutes, from_date, to_date)
    with ReportEngine(session, output_dir, transport=transport, page_size=page_size) as engine:
        return engine.run_recipe(recipe, window, variables=variables, formats=formats).records
