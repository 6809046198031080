"""Arithmetic calculator — tokenizer plus precedence-climbing parser.

Grammar (lowest to highest precedence):

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/" | "%") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER | "(" expr ")"

Only decimal literals and the operators above are understood; the input is
never handed to a language evaluator.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal

from chatmate.errors import EvaluationError, InvalidExpression

_INVALID_CHARS = re.compile(r"[^0-9+\-*/(). %\s]")
_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")

# Binary operator → (precedence, function)
_BINARY_OPS = {
    "+": (1, lambda a, b: a + b),
    "-": (1, lambda a, b: a - b),
    "*": (2, lambda a, b: a * b),
    "/": (2, lambda a, b: _divide(a, b)),
    "%": (2, lambda a, b: _remainder(a, b)),
}


@dataclass(frozen=True)
class Token:
    kind: str  # "num", "op", "(", ")"
    value: str
    pos: int


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise EvaluationError("Division by zero")
    return a / b


def _remainder(a: float, b: float) -> float:
    if b == 0:
        raise EvaluationError("Modulo by zero")
    # Sign follows the dividend
    return math.fmod(a, b)


def tokenize(expression: str) -> list[Token]:
    """Split an expression into tokens. Raises EvaluationError on malformed literals."""
    tokens: list[Token] = []
    i = 0
    while i < len(expression):
        ch = expression[i]
        if ch.isspace():
            i += 1
            continue
        if ch in _BINARY_OPS:
            tokens.append(Token("op", ch, i))
            i += 1
            continue
        if ch in "()":
            tokens.append(Token(ch, ch, i))
            i += 1
            continue
        m = _NUMBER.match(expression, i)
        if not m:
            raise EvaluationError(f"Unexpected character {ch!r} at position {i}")
        tokens.append(Token("num", m.group(), i))
        i = m.end()
    return tokens


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _advance(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise EvaluationError("Unexpected end of expression")
        self._pos += 1
        return tok

    def parse(self) -> float:
        if not self._tokens:
            raise EvaluationError("Empty expression")
        value = self._expr(1)
        tok = self._peek()
        if tok is not None:
            raise EvaluationError(f"Unexpected {tok.value!r} at position {tok.pos}")
        return value

    def _expr(self, min_prec: int) -> float:
        left = self._unary()
        while True:
            tok = self._peek()
            if tok is None or tok.kind != "op":
                return left
            prec, fn = _BINARY_OPS[tok.value]
            if prec < min_prec:
                return left
            self._advance()
            # All operators are left-associative
            right = self._expr(prec + 1)
            left = fn(left, right)

    def _unary(self) -> float:
        tok = self._peek()
        if tok is not None and tok.kind == "op" and tok.value in "+-":
            self._advance()
            operand = self._unary()
            return -operand if tok.value == "-" else operand
        return self._primary()

    def _primary(self) -> float:
        tok = self._advance()
        if tok.kind == "num":
            return float(tok.value)
        if tok.kind == "(":
            value = self._expr(1)
            closing = self._advance()
            if closing.kind != ")":
                raise EvaluationError(f"Expected ')' at position {closing.pos}")
            return value
        raise EvaluationError(f"Unexpected {tok.value!r} at position {tok.pos}")


def calculate(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Raises InvalidExpression for characters outside the arithmetic set and
    EvaluationError for malformed input or a non-finite result.
    """
    bad = _INVALID_CHARS.search(expression)
    if bad:
        raise InvalidExpression(f"Invalid character {bad.group()!r} in expression")

    try:
        result = _Parser(tokenize(expression)).parse()
    except OverflowError as e:
        raise EvaluationError("Result out of range") from e
    except RecursionError as e:
        raise EvaluationError("Expression is nested too deeply") from e
    if not math.isfinite(result):
        raise EvaluationError("Result is not a finite number")
    return result


def format_number(value: float) -> str:
    """Render a result the way a person would write it: 4, not 4.0.

    Integral values below 1e21 are written out in full, padding the shortest
    round-trip digits with zeros (1e17 -> 100000000000000000).
    """
    if value.is_integer() and abs(value) < 1e21:
        return str(int(Decimal(repr(value))))
    return repr(value)
