"""A small expression language for checking values pulled out of documents.

Supported: number, string and boolean literals, named parameters, function
calls, ``! -`` prefixes, ``* / %``, ``+ -``, comparisons
(``== != < > <= >= =~ !~``) and the logical ``&&`` / ``||`` operators.
String literals that read as a time become a Unix timestamp.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Mapping

from .extract import ExtractError, try_parse_time


class ExpressionError(ValueError):
    """Raised when an expression cannot be parsed or evaluated."""


Node = Callable[[Mapping[str, Any]], Any]

_OPERATORS = (
    "&&", "||", "==", "!=", "<=", ">=", "=~", "!~",
    "<", ">", "+", "-", "*", "/", "%", "!", "(", ")", ",",
)
_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")
_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")


def _tokenize(text: str) -> list[tuple[str, Any]]:
    tokens: list[tuple[str, Any]] = []
    pos = 0
    while pos < len(text):
        char = text[pos]
        if char.isspace():
            pos += 1
            continue
        if char in "'\"":
            pos, value = _read_string(text, pos)
            tokens.append(("value", _string_literal(value)))
            continue
        number = _NUMBER.match(text, pos)
        if number:
            tokens.append(("value", float(number.group())))
            pos = number.end()
            continue
        ident = _IDENT.match(text, pos)
        if ident:
            word = ident.group()
            pos = ident.end()
            if word in ("true", "false"):
                tokens.append(("value", word == "true"))
            else:
                rest = text[pos:].lstrip()
                tokens.append(("func" if rest.startswith("(") else "name", word))
            continue
        for op in _OPERATORS:
            if text.startswith(op, pos):
                tokens.append(("op", op))
                pos += len(op)
                break
        else:
            raise ExpressionError(f"unexpected character {char!r} at {pos}")
    return tokens


def _read_string(text: str, pos: int) -> tuple[int, str]:
    quote = text[pos]
    pos += 1
    chars = []
    while pos < len(text):
        char = text[pos]
        if char == "\\" and pos + 1 < len(text):
            chars.append(text[pos + 1])
            pos += 2
            continue
        if char == quote:
            return pos + 1, "".join(chars)
        chars.append(char)
        pos += 1
    raise ExpressionError("unclosed string literal")


def _string_literal(value: str) -> Any:
    try:
        return try_parse_time(value).timestamp()
    except (ExtractError, OverflowError, OSError):
        return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize(value: Any) -> Any:
    if _is_number(value):
        return float(value)
    return value


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _numbers(op: str, left: Any, right: Any) -> None:
    if not (_is_number(left) and _is_number(right)):
        raise ExpressionError(f"value '{left}' or '{right}' cannot be used with '{op}'")


def _divide(left: float, right: float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left)
    return left / right


def _modulo(left: float, right: float) -> float:
    if right == 0:
        return math.nan
    return math.fmod(left, right)


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, str) or isinstance(right, str):
        return _text(left) + _text(right)
    _numbers("+", left, right)
    return left + right


def _arith(op: str, fn: Callable[[float, float], float]) -> Callable[[Any, Any], Any]:
    def apply(left: Any, right: Any) -> Any:
        _numbers(op, left, right)
        return fn(left, right)
    return apply


def _order(op: str, fn: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def apply(left: Any, right: Any) -> bool:
        if (_is_number(left) and _is_number(right)) or (
            isinstance(left, str) and isinstance(right, str)
        ):
            return fn(left, right)
        raise ExpressionError(f"value '{left}' and '{right}' cannot be compared with '{op}'")
    return apply


def _regex(negate: bool) -> Callable[[Any, Any], bool]:
    def apply(left: Any, right: Any) -> bool:
        if not (isinstance(left, str) and isinstance(right, str)):
            raise ExpressionError("regex comparison needs string operands")
        try:
            found = re.search(right, left) is not None
        except re.error as exc:
            raise ExpressionError(f"invalid regex {right!r}: {exc}") from exc
        return found != negate
    return apply


_BINARY: dict[str, Callable[[Any, Any], Any]] = {
    "+": _add,
    "-": _arith("-", lambda a, b: a - b),
    "*": _arith("*", lambda a, b: a * b),
    "/": _arith("/", _divide),
    "%": _arith("%", _modulo),
    "==": lambda a, b: a == b,
    "!=": lambda a, b: a != b,
    "<": _order("<", lambda a, b: a < b),
    ">": _order(">", lambda a, b: a > b),
    "<=": _order("<=", lambda a, b: a <= b),
    ">=": _order(">=", lambda a, b: a >= b),
    "=~": _regex(False),
    "!~": _regex(True),
}
_COMPARATORS = ("==", "!=", "<", ">", "<=", ">=", "=~", "!~")


def _need_bool(value: Any, op: str) -> bool:
    if not isinstance(value, bool):
        raise ExpressionError(f"value '{value}' cannot be used with '{op}'")
    return value


class _Parser:
    def __init__(self, tokens: list[tuple[str, Any]], functions: Mapping[str, Callable]):
        self.tokens = tokens
        self.pos = 0
        self.functions = functions

    def peek(self) -> tuple[str, Any] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take_op(self, *ops: str) -> str | None:
        token = self.peek()
        if token and token[0] == "op" and token[1] in ops:
            self.pos += 1
            return token[1]
        return None

    def expect(self, op: str) -> None:
        if self.take_op(op) is None:
            raise ExpressionError(f"expected '{op}'")

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionError("empty expression")
        node = self.logical_or()
        if self.peek() is not None:
            raise ExpressionError(f"unexpected token {self.peek()[1]!r}")
        return node

    def logical_or(self) -> Node:
        node = self.logical_and()
        while self.take_op("||"):
            node = self._logic(node, self.logical_and(), "||")
        return node

    def logical_and(self) -> Node:
        node = self.comparison()
        while self.take_op("&&"):
            node = self._logic(node, self.comparison(), "&&")
        return node

    @staticmethod
    def _logic(left: Node, right: Node, op: str) -> Node:
        def run(params: Mapping[str, Any]) -> bool:
            first = _need_bool(left(params), op)
            if first == (op == "||"):
                return first
            return _need_bool(right(params), op)
        return run

    def comparison(self) -> Node:
        node = self.additive()
        while (op := self.take_op(*_COMPARATORS)) is not None:
            node = self._binary(node, self.additive(), op)
        return node

    def additive(self) -> Node:
        node = self.multiplicative()
        while (op := self.take_op("+", "-")) is not None:
            node = self._binary(node, self.multiplicative(), op)
        return node

    def multiplicative(self) -> Node:
        node = self.unary()
        while (op := self.take_op("*", "/", "%")) is not None:
            node = self._binary(node, self.unary(), op)
        return node

    @staticmethod
    def _binary(left: Node, right: Node, op: str) -> Node:
        apply = _BINARY[op]
        return lambda params: apply(left(params), right(params))

    def unary(self) -> Node:
        if self.take_op("!"):
            inner = self.unary()
            return lambda params: not _need_bool(inner(params), "!")
        if self.take_op("-"):
            inner = self.unary()

            def negate(params: Mapping[str, Any]) -> float:
                value = inner(params)
                if not _is_number(value):
                    raise ExpressionError(f"value '{value}' cannot be negated")
                return -value
            return negate
        return self.primary()

    def primary(self) -> Node:
        token = self.peek()
        if token is None:
            raise ExpressionError("unexpected end of expression")
        kind, value = token
        if kind == "op":
            self.expect("(")
            node = self.logical_or()
            self.expect(")")
            return node
        self.pos += 1
        if kind == "value":
            return lambda params: value
        if kind == "name":
            return self._parameter(value)
        return self._call(value)

    @staticmethod
    def _parameter(name: str) -> Node:
        def lookup(params: Mapping[str, Any]) -> Any:
            if name not in params:
                raise ExpressionError(f"No parameter '{name}' found.")
            return _normalize(params[name])
        return lookup

    def _call(self, name: str) -> Node:
        if name not in self.functions:
            raise ExpressionError(f"unknown function '{name}'")
        function = self.functions[name]
        self.expect("(")
        args: list[Node] = []
        if not self.take_op(")"):
            args.append(self.logical_or())
            while self.take_op(","):
                args.append(self.logical_or())
            self.expect(")")

        def call(params: Mapping[str, Any]) -> Any:
            values = [arg(params) for arg in args]
            try:
                return _normalize(function(*values))
            except ValueError:
                raise
            except Exception as exc:
                raise ExpressionError(f"function '{name}' failed: {exc}") from exc
        return call


class Expression:
    """A parsed expression that can be evaluated against named parameters."""

    def __init__(self, text: str, functions: Mapping[str, Callable] | None = None) -> None:
        self.text = text
        self.functions = dict(functions or {})
        self._root = _Parser(_tokenize(text), self.functions).parse()

    def evaluate(self, parameters: Mapping[str, Any] | None = None) -> Any:
        """Evaluate the expression; numbers come back as floats."""
        return self._root(parameters or {})