"""Flatten raw GraphQL nodes into flat report records."""

import re
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, Field, model_validator

from rsc_report import conversions

# ``name``, ``[0]``, ``[objectType=VSPHERE_HOST]`` or ``[*]``
_TOKEN_RE = re.compile(r"([^.\[\]]+)|\[([^\]]*)\]")


class FieldMapping(BaseModel):
    """Mapping configuration for a single output field."""

    output: str = Field(description="Output column name")
    path: str | None = Field(
        default=None, description="Path into the node (e.g., 'cluster.name', 'physicalPath[0].name')"
    )
    paths: list[str] | None = Field(
        default=None, description="Several paths; the transform receives the list of values"
    )
    transform: str | None = Field(default=None, description="Transform function name")
    args: dict[str, Any] = Field(default_factory=dict, description="Keyword arguments for the transform")
    default: Any = Field(default=None, description="Value used when the result is None")
    compute: Callable[[dict[str, Any]], Any] | None = Field(
        default=None, exclude=True, description="Derive the value from the whole node"
    )

    @model_validator(mode="after")
    def validate_source(self) -> "FieldMapping":
        sources = [s for s in (self.path, self.paths, self.compute) if s is not None]
        if len(sources) != 1:
            raise ValueError(
                f"Field '{self.output}' needs exactly one of 'path', 'paths' or 'compute'"
            )
        if self.transform and self.transform not in TRANSFORMS:
            raise ValueError(f"Unknown transform '{self.transform}' on field '{self.output}'")
        return self

    def source_paths(self) -> list[str]:
        if self.path is not None:
            return [self.path]
        return list(self.paths or [])


def parse_path(path: str) -> list[tuple[str, ...]]:
    """Split a path into steps: ``("key", k)``, ``("index", n)``, ``("match", k, v)``, ``("all",)``."""
    steps: list[tuple[str, ...]] = []
    for name, bracket in _TOKEN_RE.findall(path):
        if name:
            steps.append(("key", name))
        elif bracket == "*":
            steps.append(("all",))
        elif "=" in bracket:
            key, _, value = bracket.partition("=")
            steps.append(("match", key.strip(), value.strip()))
        else:
            steps.append(("index", bracket.strip()))
    return steps


def resolve_path(data: Any, path: str | list[tuple[str, ...]]) -> Any:
    """Extract a value from nested dicts/lists; returns None if any step is missing."""
    steps = parse_path(path) if isinstance(path, str) else path
    current = data

    for i, step in enumerate(steps):
        if current is None:
            return None
        kind = step[0]
        if kind == "key":
            if not isinstance(current, dict):
                return None
            current = current.get(step[1])
        elif kind == "index":
            if not isinstance(current, list):
                return None
            try:
                current = current[int(step[1])]
            except (ValueError, IndexError):
                return None
        elif kind == "match":
            if not isinstance(current, list):
                return None
            _, key, value = step
            current = next(
                (e for e in current if isinstance(e, dict) and str(e.get(key)) == value),
                None,
            )
        else:
            if not isinstance(current, list):
                return None
            rest = steps[i + 1 :]
            return [resolve_path(e, rest) for e in current]

    return current


# ── Transforms ────────────────────────────────────────────────────────
# Every transform maps None to None.


def _join(value: Any, separator: str = ", ") -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return separator.join(str(v) for v in value if v is not None)
    return str(value)


def _count(value: Any) -> int | None:
    if value is None:
        return None
    return len(value) if isinstance(value, (list, dict, str)) else 1


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _upper(value: Any) -> str | None:
    return None if value is None else str(value).upper()


def _lower(value: Any) -> str | None:
    return None if value is None else str(value).lower()


def _bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _equals(value: Any, value_to_match: Any = None) -> bool | None:
    if value is None:
        return None
    return str(value) == str(value_to_match)


def _round(value: Any, places: int = 2) -> float | None:
    return None if value is None else round(float(value), places)


def _contains(value: Any, phrase: str = "") -> bool | None:
    return conversions.contains_phrase(value, phrase)


def _pair(value: Any) -> tuple[Any, Any]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None, None


def _duration_minutes(value: Any) -> float | None:
    return conversions.compute_duration(*_pair(value)).minutes


def _duration_seconds(value: Any) -> int | None:
    return conversions.compute_duration(*_pair(value)).seconds


def _duration_formatted(value: Any) -> str | None:
    return conversions.compute_duration(*_pair(value)).formatted


def _dedupe_ratio(value: Any, places: int = 2) -> float | None:
    return conversions.dedupe_ratio(*_pair(value), places=places)


TRANSFORMS: dict[str, Callable[..., Any]] = {
    "unix_ms_to_utc": conversions.unix_ms_to_utc,
    "unix_s_to_utc": conversions.unix_s_to_utc,
    "iso_to_utc": conversions.iso_to_utc,
    "bytes_to_gb": conversions.bytes_to_gb,
    "hours_since": conversions.hours_since,
    "contains": _contains,
    "join": _join,
    "count": _count,
    "first": _first,
    "upper": _upper,
    "lower": _lower,
    "bool": _bool,
    "equals": _equals,
    "round": _round,
    "duration_minutes": _duration_minutes,
    "duration_seconds": _duration_seconds,
    "duration_formatted": _duration_formatted,
    "dedupe_ratio": _dedupe_ratio,
}


class RecordMapper:
    """
    Maps raw nodes to flat records using an ordered list of field mappings.

    The mapping list is the record schema: every record produced by one mapper
    has the same keys in the same order, whatever the node contained.
    """

    def __init__(self, fields: Iterable[FieldMapping]):
        self.fields = list(fields)
        if not self.fields:
            raise ValueError("RecordMapper needs at least one field mapping")
        names = [f.output for f in self.fields]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate output fields: {sorted(duplicates)}")
        self._steps = {
            f.output: [parse_path(p) for p in f.source_paths()] for f in self.fields
        }

    @property
    def schema(self) -> list[str]:
        """Output field names in record order."""
        return [f.output for f in self.fields]

    def map_node(self, node: dict[str, Any]) -> dict[str, Any]:
        """Transform one raw node into a flat record."""
        record: dict[str, Any] = {}
        for field in self.fields:
            record[field.output] = self._extract(field, node)
        return record

    def map_nodes(self, nodes: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Map nodes in server order."""
        return [self.map_node(n) for n in nodes]

    def _extract(self, field: FieldMapping, node: dict[str, Any]) -> Any:
        if field.compute is not None:
            value = field.compute(node)
        else:
            values = [resolve_path(node, steps) for steps in self._steps[field.output]]
            value = values[0] if field.path is not None else values

        if field.transform:
            value = TRANSFORMS[field.transform](value, **field.args)

        return field.default if value is None else value

    def unmapped_paths(self, query_text: str) -> list[str]:
        """Paths whose leaf field name never appears in ``query_text``.

        Such fields always map to None because the query does not request them.
        """
        missing = []
        for field in self.fields:
            for path in field.source_paths():
                keys = [s[1] for s in parse_path(path) if s[0] == "key"]
                if keys and not re.search(rf"\b{re.escape(keys[-1])}\b", query_text):
                    missing.append(path)
        return missing


def sort_records(
    records: list[dict[str, Any]], column: str, descending: bool = False
) -> list[dict[str, Any]]:
    """Stable single-column sort; records with a None value go last."""
    present = [r for r in records if r.get(column) is not None]
    missing = [r for r in records if r.get(column) is None]
    present.sort(key=lambda r: r[column], reverse=descending)
    return present + missing
