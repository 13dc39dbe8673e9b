"""``${ ... }`` interpolation templates over a flat string scope."""

from __future__ import annotations

from tar_template.templating.evaluator import Evaluator, render
from tar_template.templating.functions import (
    FunctionTable,
    TemplateFunction,
    default_functions,
)
from tar_template.templating.parser import (
    TemplateError,
    TemplateEvaluationError,
    TemplateSyntaxError,
    parse_template,
)

__all__ = [
    "Evaluator",
    "FunctionTable",
    "TemplateError",
    "TemplateEvaluationError",
    "TemplateFunction",
    "TemplateSyntaxError",
    "default_functions",
    "parse_template",
    "render",
]
