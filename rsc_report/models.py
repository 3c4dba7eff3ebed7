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

"""Pydantic models for queries, recipes and mutation results."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field, field_validator

from rsc_report.mapper import FieldMapping


class QueryDescriptor(BaseModel):
    """A paginated GraphQL query.

    ``variables`` may contain ``${start}`` / ``${end}`` placeholders which are
    replaced with the report's time window before the first request.
    """

    operation_name: str = Field(..., description="GraphQL operation name")
    query: str = Field(..., description="GraphQL document")
    variables: dict[str, Any] = Field(default_factory=dict)
    connection_path: str = Field(
        ...,
        description="Dot path under 'data' to the connection object (e.g. 'activitySeriesConnection')",
    )
    cursor_variable: str = Field("after", description="Variable that carries the page cursor")
    page_size_variable: str | None = Field("first", description="Variable that carries the page size")
    page_size: int = Field(1000, ge=1, le=1000)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Query text cannot be empty")
        return v.strip()

    def page_variables(self, cursor: str | None = None) -> dict[str, Any]:
        """Variables for one page request; only the cursor differs between pages."""
        variables = dict(self.variables)
        if self.page_size_variable:
            variables[self.page_size_variable] = self.page_size
        if cursor is not None:
            variables[self.cursor_variable] = cursor
        return variables

    def with_substitutions(self, values: dict[str, str]) -> "QueryDescriptor":
        """Return a copy with ``${name}`` placeholders in variables replaced."""
        return self.model_copy(update={"variables": _substitute(self.variables, values)})


def _substitute(obj: Any, values: dict[str, str]) -> Any:
    if isinstance(obj, str):
        for key, val in values.items():
            obj = obj.replace("${" + key + "}", val)
        return obj
    if isinstance(obj, dict):
        return {k: _substitute(v, values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute(v, values) for v in obj]
    return obj


class SortSpec(BaseModel):
    """Single-column sort applied before rendering."""

    column: str
    descending: bool = False


class ColumnSpec(BaseModel):
    """A report column and its optional display label."""

    name: str
    label: str | None = None

    @property
    def header(self) -> str:
        return self.label or self.name


class ReportSchema(BaseModel):
    """Column layout for rendering a record collection.

    When ``columns`` is None the columns are the record keys in alphabetical
    order.
    """

    columns: list[ColumnSpec] | None = Field(None, description="Column order for rendering")
    link_column: str | None = Field(
        None, description="Column rendered as a hyperlink to the record's URL field"
    )
    url_field: str = Field("URL", description="Record field holding the link target")
    sort: SortSpec | None = None

    @field_validator("columns", mode="before")
    @classmethod
    def coerce_columns(cls, v: Any) -> Any:
        """Allow plain column names alongside ``{name, label}`` mappings."""
        if isinstance(v, list):
            return [{"name": c} if isinstance(c, str) else c for c in v]
        return v

    @property
    def column_names(self) -> list[str] | None:
        return [c.name for c in self.columns] if self.columns is not None else None

    def header_for(self, name: str) -> str:
        for column in self.columns or []:
            if column.name == name:
                return column.header
        return name


class OutputConfig(ReportSchema):
    """Output configuration."""

    formats: list[str] = Field(
        default_factory=lambda: ["csv", "html"],
        description="Output formats to generate (csv, html, xlsx)",
    )

    @field_validator("formats")
    @classmethod
    def validate_formats(cls, v: list[str]) -> list[str]:
        formats = [f.lower() for f in v]
        unknown = set(formats) - {"csv", "html", "xlsx"}
        if unknown:
            raise ValueError(f"Unsupported output formats: {sorted(unknown)}")
        return formats


class Recipe(BaseModel):
    """A report definition: query, field mapping and output settings."""

    name: str = Field(..., description="Recipe name")
    description: str | None = None
    query: QueryDescriptor
    fields: list[FieldMapping] = Field(..., min_length=1)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Recipe name cannot be empty")
        return v.strip()

    @field_validator("fields")
    @classmethod
    def validate_unique_outputs(cls, v: list[FieldMapping]) -> list[FieldMapping]:
        names = [f.output for f in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate output fields: {duplicates}")
        return v


class RequestStatus(StrEnum):
    """Outcome of a single request."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class MutationResult(BaseModel):
    """Status record returned by every mutation."""

    operation: str
    request_status: RequestStatus = Field(
        ..., description="SUCCESS when the HTTP call did not raise, regardless of body errors"
    )
    parameters: dict[str, Any] = Field(default_factory=dict)
    job_id: str | None = None
    error_message: str | None = Field(
        None, description="First GraphQL error message from the response body"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def outcome(self) -> RequestStatus:
        """SUCCESS only if the transport succeeded and the body carried no errors."""
        if self.request_status == RequestStatus.SUCCESS and not self.error_message:
            return RequestStatus.SUCCESS
        return RequestStatus.FAILED

    def as_record(self) -> dict[str, Any]:
        """Flatten into a single-level record for tabular output."""
        record: dict[str, Any] = {"Operation": self.operation}
        record.update(self.parameters)
        record["RequestStatus"] = self.request_status.value
        record["Outcome"] = self.outcome.value
        record["JobID"] = self.job_id
        record["ErrorMessage"] = self.error_message
        return record
