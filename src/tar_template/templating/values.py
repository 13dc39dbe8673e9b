from __future__ import annotations

import re
from typing import Any

from tar_template.templating.parser import TemplateEvaluationError

Value = str | int | float | bool

_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?$")


def to_text(value: Any) -> str:
    """Convert an evaluated value to its interpolated text form."""

    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError as exc:
            raise TemplateEvaluationError(f"integer result too large to render: {exc}") from exc
    if isinstance(value, float):
        return repr(value)
    raise TemplateEvaluationError(
        f"expression result of type {type(value).__name__} is not string-coercible"
    )


def to_number(value: Any, what: str = "operand") -> int | float:
    """Numbers pass through; numeric strings are converted implicitly."""

    if isinstance(value, bool):
        raise TemplateEvaluationError(f"{what} must be a number, got bool")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        if _INT_RE.match(text):
            try:
                return int(text)
            except ValueError as exc:
                raise TemplateEvaluationError(f"{what} {text[:20]!r}... is too large") from exc
        if _FLOAT_RE.match(text):
            return float(text)
        raise TemplateEvaluationError(f"{what} {value!r} is not a number")
    raise TemplateEvaluationError(f"{what} must be a number, got {type(value).__name__}")


def trunc_div(a: int, b: int) -> int:
    # Integer division truncating toward zero.
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q
