"""Named functions callable from template expressions.

A ``FunctionTable`` is passed to the evaluator explicitly; deployments can
extend or restrict it without touching the evaluator.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import math
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from tar_template.templating.parser import TemplateEvaluationError
from tar_template.templating.values import Value, to_number, to_text


@dataclass(frozen=True, slots=True)
class TemplateFunction:
    func: Callable[..., Any]
    min_args: int
    max_args: int | None = None  # None: variadic

    def __call__(self, name: str, args: list[Value]) -> Any:
        if len(args) < self.min_args or (
            self.max_args is not None and len(args) > self.max_args
        ):
            raise TemplateEvaluationError(
                f"{name}: expected {self._arity_text()} argument(s), got {len(args)}"
            )
        try:
            return self.func(*args)
        except TemplateEvaluationError as exc:
            raise TemplateEvaluationError(f"{name}: {exc}") from exc
        except (ArithmeticError, ValueError) as exc:
            # NaN/inf to int, text that cannot be encoded, and similar.
            raise TemplateEvaluationError(f"{name}: {exc}") from exc

    def _arity_text(self) -> str:
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.max_args == self.min_args:
            return str(self.min_args)
        return f"{self.min_args}..{self.max_args}"


class FunctionTable(Mapping[str, TemplateFunction]):
    """Immutable name -> function mapping."""

    def __init__(self, functions: Mapping[str, TemplateFunction] | None = None):
        self._functions = MappingProxyType(dict(functions or {}))

    def __getitem__(self, name: str) -> TemplateFunction:
        return self._functions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def with_(self, name: str, function: TemplateFunction) -> FunctionTable:
        merged = dict(self._functions)
        merged[name] = function
        return FunctionTable(merged)

    def without(self, *names: str) -> FunctionTable:
        return FunctionTable({k: v for k, v in self._functions.items() if k not in names})


# --- Built-ins -------------------------------------------------------------


def _title(s: Value) -> str:
    return re.sub(r"(^|\s)(\S)", lambda m: m.group(1) + m.group(2).upper(), to_text(s))


def _replace(s: Value, search: Value, replacement: Value) -> str:
    return to_text(s).replace(to_text(search), to_text(replacement))


def _substr(s: Value, offset: Value, length: Value) -> str:
    text = to_text(s)
    start = to_number(offset, "offset")
    count = to_number(length, "length")
    if not isinstance(start, int) or not isinstance(count, int):
        raise TemplateEvaluationError("offset and length must be integers")
    if start < 0:
        start += len(text)
    if start < 0 or start > len(text):
        raise TemplateEvaluationError(f"offset {start} out of range for length {len(text)}")
    if count == -1:
        return text[start:]
    if count < 0 or start + count > len(text):
        raise TemplateEvaluationError(f"length {count} out of range")
    return text[start : start + count]


def _min(*values: Value) -> int | float:
    return min(to_number(v) for v in values)


def _max(*values: Value) -> int | float:
    return max(to_number(v) for v in values)


def _signum(value: Value) -> int:
    n = to_number(value)
    return (n > 0) - (n < 0)


def _coalesce(*values: Value) -> str:
    for v in values:
        text = to_text(v)
        if text != "":
            return text
    return ""


def _base64decode(s: Value) -> str:
    try:
        raw = base64.b64decode(to_text(s), validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise TemplateEvaluationError(f"invalid base64 data: {exc}") from exc


def _digest(algorithm: str) -> Callable[[Value], str]:
    def run(s: Value) -> str:
        return hashlib.new(algorithm, to_text(s).encode("utf-8")).hexdigest()

    return run


def default_functions() -> FunctionTable:
    return FunctionTable(
        {
            "upper": TemplateFunction(lambda s: to_text(s).upper(), 1, 1),
            "lower": TemplateFunction(lambda s: to_text(s).lower(), 1, 1),
            "title": TemplateFunction(_title, 1, 1),
            "trimspace": TemplateFunction(lambda s: to_text(s).strip(), 1, 1),
            "replace": TemplateFunction(_replace, 3, 3),
            "substr": TemplateFunction(_substr, 3, 3),
            "length": TemplateFunction(lambda s: len(to_text(s)), 1, 1),
            "min": TemplateFunction(_min, 1),
            "max": TemplateFunction(_max, 1),
            "abs": TemplateFunction(lambda n: abs(to_number(n)), 1, 1),
            "ceil": TemplateFunction(lambda n: math.ceil(to_number(n)), 1, 1),
            "floor": TemplateFunction(lambda n: math.floor(to_number(n)), 1, 1),
            "signum": TemplateFunction(_signum, 1, 1),
            "coalesce": TemplateFunction(_coalesce, 1),
            "base64encode": TemplateFunction(
                lambda s: base64.b64encode(to_text(s).encode("utf-8")).decode("ascii"), 1, 1
            ),
            "base64decode": TemplateFunction(_base64decode, 1, 1),
            "md5": TemplateFunction(_digest("md5"), 1, 1),
            "sha1": TemplateFunction(_digest("sha1"), 1, 1),
            "sha256": TemplateFunction(_digest("sha256"), 1, 1),
        }
    )
