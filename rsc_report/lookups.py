"""Precondition checks against previously fetched reference collections."""

from collections.abc import Iterable
from typing import Any

from rsc_report.errors import PreconditionError


def require_known_id(
    reference: Iterable[dict[str, Any]],
    value: str,
    key: str = "id",
    kind: str = "object",
) -> dict[str, Any]:
    """Return the reference entry whose ``key`` equals ``value``.

    Raises:
        PreconditionError: no entry matches; the caller must not go on to
            issue any request.
    """
    for entry in reference:
        if str(entry.get(key)) == str(value):
            return entry
    raise PreconditionError(f"Unknown {kind} ID: {value}")


def find_by_name(
    reference: Iterable[dict[str, Any]],
    name: str,
    key: str = "name",
    kind: str = "object",
) -> dict[str, Any]:
    """Exact, case-sensitive name match; ambiguous or absent names are errors."""
    matches = [e for e in reference if e.get(key) == name]
    if not matches:
        raise PreconditionError(f"No {kind} named '{name}'")
    if len(matches) > 1:
        raise PreconditionError(f"{kind.capitalize()} name '{name}' is not unique ({len(matches)} matches)")
    return matches[0]
