"""Boolean label expressions used to select checks.

Grammar, after ``-`` is rewritten to ``_`` and ``,`` to ``||``::

    expr  := term (("&&" | "||") term)*     # "&&" binds tighter than "||"
    term  := "!" term | "(" expr ")" | IDENT
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable, Union

from ..core.errors import InternalError, LabelExpressionError

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
_PRECEDENCE = {"||": 1, "&&": 2}


@dataclass(frozen=True)
class Ident:
    name: str


@dataclass(frozen=True)
class Not:
    operand: "Node"


@dataclass(frozen=True)
class And:
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class Or:
    left: "Node"
    right: "Node"


Node = Union[Ident, Not, And, Or]


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    pos: int


def normalize_label(label: str) -> str:
    return str(label).strip().replace("-", "_")


def normalize_expression(expr: str) -> str:
    return str(expr).replace("-", "_").replace(",", "||")


def _tokenize(expr: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(expr):
        char = expr[pos]
        if char.isspace():
            pos += 1
            continue
        if expr.startswith("&&", pos) or expr.startswith("||", pos):
            tokens.append(_Token("op", expr[pos : pos + 2], pos))
            pos += 2
            continue
        if char in "!()":
            tokens.append(_Token(char, char, pos))
            pos += 1
            continue
        match = _IDENT_RE.match(expr, pos)
        if match is None:
            raise LabelExpressionError(f"unexpected character `{char}` at offset {pos} in `{expr}`")
        tokens.append(_Token("ident", match.group(0), pos))
        pos = match.end()
    tokens.append(_Token("eof", "", len(expr)))
    return tokens


class _Parser:
    def __init__(self, expr: str) -> None:
        self._expr = expr
        self._tokens = _tokenize(expr)
        self._index = 0

    def _peek(self) -> _Token:
        return self._tokens[self._index]

    def _advance(self) -> _Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _fail(self, token: _Token, expected: str) -> LabelExpressionError:
        found = token.text or "end of expression"
        return LabelExpressionError(f"expected {expected} at offset {token.pos} in `{self._expr}`, found `{found}`")

    def parse(self) -> Node:
        node = self._expression(1)
        token = self._peek()
        if token.kind != "eof":
            raise self._fail(token, "operator")
        return node

    def _expression(self, min_precedence: int) -> Node:
        left = self._term()
        while True:
            token = self._peek()
            precedence = _PRECEDENCE.get(token.text, 0) if token.kind == "op" else 0
            if precedence < min_precedence:
                return left
            self._advance()
            right = self._expression(precedence + 1)
            left = And(left, right) if token.text == "&&" else Or(left, right)

    def _term(self) -> Node:
        token = self._advance()
        if token.kind == "!":
            return Not(self._term())
        if token.kind == "(":
            inner = self._expression(1)
            closing = self._advance()
            if closing.kind != ")":
                raise self._fail(closing, "`)`")
            return inner
        if token.kind == "ident":
            return Ident(token.text)
        raise self._fail(token, "label")


def parse_labels_expr(expr: str) -> Node:
    normalized = normalize_expression(expr)
    if not normalized.strip():
        raise LabelExpressionError("label expression is empty")
    try:
        root = _Parser(normalized).parse()
        # both operands are always visited, so one dry run bounds every later eval
        _evaluate(root, frozenset())
    except RecursionError as exc:
        raise LabelExpressionError(f"label expression nests too deeply ({len(normalized)} characters)") from exc
    return root


def _evaluate(node: Node, labels: frozenset[str]) -> bool:
    if isinstance(node, Ident):
        return node.name in labels
    if isinstance(node, Not):
        return not _evaluate(node.operand, labels)
    if isinstance(node, And):
        left = _evaluate(node.left, labels)
        right = _evaluate(node.right, labels)
        return left and right
    if isinstance(node, Or):
        left = _evaluate(node.left, labels)
        right = _evaluate(node.right, labels)
        return left or right
    raise InternalError(f"unsupported label expression node: {type(node).__name__}")


class LabelsExprEvaluator:
    """Compiled label filter. ``eval`` is pure and may be called any number of times."""

    def __init__(self, expr: str, root: Node) -> None:
        self.expr = expr
        self.root = root

    def eval(self, labels: Iterable[str]) -> bool:
        return _evaluate(self.root, frozenset(normalize_label(label) for label in labels))

    def __repr__(self) -> str:
        return f"LabelsExprEvaluator({self.expr!r})"


def compile_labels_expr(expr: str) -> LabelsExprEvaluator:
    return LabelsExprEvaluator(expr, parse_labels_expr(expr))


__all__ = [
    "And",
    "Ident",
    "LabelsExprEvaluator",
    "Node",
    "Not",
    "Or",
    "compile_labels_expr",
    "normalize_expression",
    "normalize_label",
    "parse_labels_expr",
]
