"""Interpolation template parser.

A template is literal text with embedded ``${ expression }`` markers; ``$${``
emits a literal ``${``. Expressions are parsed with a small Pratt parser.

Precedence (highest -> lowest):
  prefix: -, +
  *, /, %
  +, -
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union


class TemplateError(ValueError):
    """Base class for template parse and evaluation failures."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


class TemplateSyntaxError(TemplateError):
    pass


class TemplateEvaluationError(TemplateError):
    pass


# --- AST -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Literal:
    value: str | int | float | bool


@dataclass(frozen=True, slots=True)
class VariableRef:
    name: str


@dataclass(frozen=True, slots=True)
class Unary:
    op: str
    operand: "Expr"


@dataclass(frozen=True, slots=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple["Expr", ...]


Expr = Union[Literal, VariableRef, Unary, Binary, Call]


@dataclass(frozen=True, slots=True)
class Interpolation:
    expr: Expr
    offset: int


@dataclass(frozen=True, slots=True)
class Template:
    parts: tuple[str | Interpolation, ...]


# --- Lexer -----------------------------------------------------------------

TOK_REGEX = re.compile(
    r"""\s*(?:
    (?P<number>\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)|
    (?P<string>"(?:[^"\\]|\\.)*")|
    (?P<op>[()+\-*/%,])|
    (?P<ident>[A-Za-z_][A-Za-z0-9_.]*)
    )""",
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}

VAR_PREFIX = "var."

_BLANK_TAIL = re.compile(r"\s*\Z")


def _unescape(raw: str, offset: int) -> str:
    body = raw[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\":
            nxt = body[i + 1]
            if nxt not in _ESCAPES:
                raise TemplateSyntaxError(f"unknown escape sequence \\{nxt}", offset)
            out.append(_ESCAPES[nxt])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


class Lexer:
    def __init__(self, text: str, offset: int = 0):
        self.text = text
        self.offset = offset
        self.tokens: list[tuple[str, object]] = []
        pos = 0
        while pos < len(text):
            if _BLANK_TAIL.match(text, pos):
                break
            m = TOK_REGEX.match(text, pos)
            if not m:
                raise TemplateSyntaxError(
                    f"unexpected character {text[pos:].lstrip()[:10]!r}", offset + pos
                )
            pos = m.end(0)
            kind = m.lastgroup
            if kind == "number":
                val = m.group("number")
                if "." in val or "e" in val or "E" in val:
                    self.tokens.append(("number", float(val)))
                else:
                    try:
                        self.tokens.append(("number", int(val)))
                    except ValueError as exc:
                        raise TemplateSyntaxError(
                            "integer literal too large", offset + m.start("number")
                        ) from exc
            elif kind == "string":
                value = _unescape(m.group("string"), offset + m.start("string"))
                self.tokens.append(("string", value))
            elif kind == "op":
                self.tokens.append(("op", m.group("op")))
            else:
                self.tokens.append(("ident", m.group("ident")))
        self.tokens.append(("eof", None))
        self.i = 0

    def peek(self) -> tuple[str, object]:
        return self.tokens[self.i]

    def pop(self) -> tuple[str, object]:
        tok = self.tokens[self.i]
        self.i += 1
        return tok

    def expect_op(self, op: str) -> None:
        tok = self.pop()
        if tok != ("op", op):
            raise TemplateSyntaxError(f"expected {op!r}, got {_describe(tok)}", self.offset)


def _describe(tok: tuple[str, object]) -> str:
    kind, value = tok
    if kind == "eof":
        return "end of expression"
    return f"{kind} {value!r}"


# --- Expression parser -----------------------------------------------------

BP = {
    "+": 10,
    "-": 10,
    "*": 20,
    "/": 20,
    "%": 20,
}

PREFIX_BP = 30

# Parentheses, prefix operators and call arguments each add a level.
MAX_NESTING = 64


class ExpressionParser:
    def __init__(self, text: str, offset: int = 0):
        self.offset = offset
        self.lx = Lexer(text, offset)
        self.depth = 0

    def parse(self) -> Expr:
        if self.lx.peek()[0] == "eof":
            raise TemplateSyntaxError("empty interpolation", self.offset)
        expr = self.parse_bp(0)
        if self.lx.peek()[0] != "eof":
            raise TemplateSyntaxError(
                f"unexpected trailing {_describe(self.lx.peek())}", self.offset
            )
        return expr

    def nud(self, tok: tuple[str, object]) -> Expr:
        kind, value = tok
        if kind in ("number", "string"):
            return Literal(value)  # type: ignore[arg-type]
        if kind == "ident":
            name = str(value)
            if self.lx.peek() == ("op", "("):
                self.lx.pop()
                return Call(name, self._call_args())
            if name in ("true", "false"):
                return Literal(name == "true")
            if name.startswith(VAR_PREFIX):
                name = name[len(VAR_PREFIX) :]
            return VariableRef(name)
        if tok == ("op", "("):
            expr = self.parse_bp(0)
            self.lx.expect_op(")")
            return expr
        if tok in (("op", "-"), ("op", "+")):
            return Unary(str(value), self.parse_bp(PREFIX_BP))
        raise TemplateSyntaxError(f"unexpected {_describe(tok)}", self.offset)

    def _call_args(self) -> tuple[Expr, ...]:
        args: list[Expr] = []
        if self.lx.peek() == ("op", ")"):
            self.lx.pop()
            return ()
        while True:
            args.append(self.parse_bp(0))
            tok = self.lx.pop()
            if tok == ("op", ")"):
                return tuple(args)
            if tok != ("op", ","):
                raise TemplateSyntaxError(
                    f"expected ',' or ')' in call, got {_describe(tok)}", self.offset
                )

    def parse_bp(self, min_bp: int) -> Expr:
        if self.depth >= MAX_NESTING:
            raise TemplateSyntaxError(
                f"expression nested more than {MAX_NESTING} levels deep", self.offset
            )
        self.depth += 1
        try:
            return self._parse_bp(min_bp)
        finally:
            self.depth -= 1

    def _parse_bp(self, min_bp: int) -> Expr:
        left = self.nud(self.lx.pop())
        while True:
            kind, value = self.lx.peek()
            if kind != "op" or value not in BP:
                break
            lbp = BP[str(value)]
            if lbp <= min_bp:
                break
            self.lx.pop()
            # Left-associative: the right operand binds strictly tighter.
            right = self.parse_bp(lbp)
            left = Binary(str(value), left, right)
        return left


def parse_expression(text: str, offset: int = 0) -> Expr:
    return ExpressionParser(text, offset).parse()


# --- Template splitting ----------------------------------------------------


def _find_close(text: str, start: int) -> int:
    """Index of the ``}`` closing an interpolation opened just before ``start``."""

    in_string = False
    i = start
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "}":
            return i
        i += 1
    return -1


def parse_template(text: str) -> Template:
    parts: list[str | Interpolation] = []
    literal: list[str] = []
    i = 0
    while i < len(text):
        if text.startswith("$${", i):
            literal.append("${")
            i += 3
            continue
        if text.startswith("${", i):
            close = _find_close(text, i + 2)
            if close < 0:
                raise TemplateSyntaxError("unterminated interpolation", i)
            if literal:
                parts.append("".join(literal))
                literal = []
            expr = parse_expression(text[i + 2 : close], i)
            parts.append(Interpolation(expr, i))
            i = close + 1
            continue
        literal.append(text[i])
        i += 1
    if literal:
        parts.append("".join(literal))
    return Template(tuple(parts))
