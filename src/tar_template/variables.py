from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from tar_template.errors import VarsValidationError
from tar_template.evidence.stable_json import read_json


def _category(value: Any) -> str | None:
    """Category label for values that cannot be template variables."""

    if value is None:
        return "null"
    if isinstance(value, Mapping):
        return "map"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "list"
    if isinstance(value, (str, int, float, bool)):
        return None
    return type(value).__name__


def _primitive_to_str(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def validate_vars(raw: Mapping[Any, Any] | None, key: str = "vars") -> dict[str, str]:
    """Return a string-only copy of ``raw`` or raise listing every bad key.

    vars can only be primitives: lists and maps are rejected here, before any
    template is rendered. Numbers and booleans are converted to strings.
    """

    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise VarsValidationError(f"{key}: expected a map, got {type(raw).__name__}")

    bad_vars: list[str] = []
    scope: dict[str, str] = {}
    for k in sorted(raw, key=str):
        v = raw[k]
        if not isinstance(k, str) or not k:
            bad_vars.append(f"{k!r} (key)")
            continue
        category = _category(v)
        if category is not None:
            bad_vars.append(f"{k} ({category})")
            continue
        scope[k] = _primitive_to_str(v)

    if bad_vars:
        raise VarsValidationError(
            f"{key}: cannot contain non-primitives; bad keys: {', '.join(bad_vars)}",
            bad_vars,
        )
    return scope


def parse_var_assignments(items: Iterable[str]) -> dict[str, str]:
    """Parse ``NAME=VALUE`` pairs; the value may itself contain ``=``."""

    parsed: dict[str, str] = {}
    malformed: list[str] = []
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            malformed.append(item)
            continue
        parsed[name.strip()] = value
    if malformed:
        raise VarsValidationError(
            "malformed variable assignment(s), expected NAME=VALUE: "
            + ", ".join(repr(m) for m in malformed),
            malformed,
        )
    return parsed


def load_vars_file(path: str | Path) -> dict[str, Any]:
    data = read_json(path)
    if not isinstance(data, dict):
        raise VarsValidationError(f"vars file must contain a JSON object: {path}")
    return data
