from __future__ import annotations

import math
from collections.abc import Mapping

from tar_template.templating.functions import FunctionTable, default_functions
from tar_template.templating.parser import (
    Binary,
    Call,
    Expr,
    Literal,
    Template,
    TemplateEvaluationError,
    Unary,
    VariableRef,
    parse_template,
)
from tar_template.templating.values import Value, to_number, to_text, trunc_div


class Evaluator:
    """Evaluates parsed expressions against a flat string scope."""

    def __init__(self, scope: Mapping[str, str], functions: FunctionTable | None = None):
        self.scope = scope
        self.functions = default_functions() if functions is None else functions

    def evaluate(self, node: Expr) -> Value:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, VariableRef):
            if node.name not in self.scope:
                raise TemplateEvaluationError(f"unknown variable accessed: {node.name}")
            return self.scope[node.name]
        if isinstance(node, Unary):
            operand = to_number(self.evaluate(node.operand))
            return -operand if node.op == "-" else operand
        if isinstance(node, Binary):
            return self._binary(node)
        if isinstance(node, Call):
            function = self.functions.get(node.name)
            if function is None:
                raise TemplateEvaluationError(f"unknown function called: {node.name}")
            args = [self.evaluate(arg) for arg in node.args]
            result = function(node.name, args)
            # Reject non-coercible results where they are produced.
            to_text(result)
            return result
        raise TemplateEvaluationError(f"unsupported expression node: {type(node).__name__}")

    def _binary(self, node: Binary) -> Value:
        left = to_number(self.evaluate(node.left), f"left operand of {node.op!r}")
        right = to_number(self.evaluate(node.right), f"right operand of {node.op!r}")
        op = node.op

        if op == "+":
            return left + right
        if op == "-":
            return left - right
        if op == "*":
            return left * right

        if right == 0:
            raise TemplateEvaluationError("divide by zero" if op == "/" else "modulo by zero")
        if isinstance(left, int) and isinstance(right, int):
            quotient = trunc_div(left, right)
            return quotient if op == "/" else left - right * quotient
        return left / right if op == "/" else math.fmod(left, right)

    def render(self, template: Template) -> str:
        out: list[str] = []
        for part in template.parts:
            if isinstance(part, str):
                out.append(part)
                continue
            try:
                out.append(to_text(self.evaluate(part.expr)))
            except TemplateEvaluationError as exc:
                if exc.offset is not None:
                    raise
                raise TemplateEvaluationError(str(exc), part.offset) from exc
            except OverflowError as exc:
                raise TemplateEvaluationError(f"numeric overflow: {exc}", part.offset) from exc
            except (ArithmeticError, ValueError) as exc:
                raise TemplateEvaluationError(f"numeric error: {exc}", part.offset) from exc
            except RecursionError as exc:
                # Long operator chains parse iteratively but evaluate recursively.
                raise TemplateEvaluationError("expression too deeply nested", part.offset) from exc
        return "".join(out)


def render(
    raw_text: str,
    scope: Mapping[str, str],
    *,
    functions: FunctionTable | None = None,
) -> str:
    """Render ``raw_text`` against ``scope``.

    Raises ``TemplateSyntaxError`` for malformed markers or expressions and
    ``TemplateEvaluationError`` for undefined variables, unknown functions and
    type mismatches. Text without markers is returned unchanged.
    """

    template = parse_template(raw_text)
    return Evaluator(scope, functions).render(template)
