"""Text to expression tree parser.

Grammar (whitespace is insignificant)::

    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := '-' unary | power
    power   := primary ('^' unary)?
    primary := NUMBER | 'x' | PARAM | FUNC '(' expr ')' | '(' expr ')'

``^`` is right-associative and binds tighter than unary minus, so ``-x^2``
is ``-(x^2)``. A parameter is a letter optionally followed by digits.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..errors import ParseError
from .expression_tree import UNARY_OPERATORS
from .expression_tree import VARIABLE_NAME
from .expression_tree import ExpressionNode
from .expression_tree import NodeType

logger = logging.getLogger(__name__)

FUNCTION_ALIASES = {"log": "ln"}
FUNCTION_NAMES = frozenset(name for name in UNARY_OPERATORS if name != "neg") | frozenset(
    FUNCTION_ALIASES
)

PARAM_NAME_RE = re.compile(r"^[A-Za-z][0-9]*$")

_TOKEN_RE = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z_0-9]*)
    |(?P<op>[-+*/^()])
    |(?P<space>\s+)
    """,
    re.VERBOSE,
)

_BINARY_BY_SYMBOL = {"+": "add", "-": "sub", "*": "mul", "/": "div"}


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    """Split expression text into tokens, ending with an ``end`` token."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ParseError("unexpected character", text, pos)
        kind = match.lastgroup
        if kind != "space":
            tokens.append(Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(Token("end", "", len(text)))
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def error(self, message: str, token: Token | None = None) -> ParseError:
        token = token or self.current
        return ParseError(message, self.text, token.position)

    def accept_op(self, symbol: str) -> bool:
        if self.current.kind == "op" and self.current.text == symbol:
            self.index += 1
            return True
        return False

    def expect_op(self, symbol: str) -> None:
        if not self.accept_op(symbol):
            raise self.error(f"expected '{symbol}'")

    def parse(self) -> ExpressionNode:
        if self.current.kind == "end":
            raise self.error("empty expression")
        node = self.parse_expr()
        if self.current.kind != "end":
            raise self.error("unexpected token")
        return node

    def parse_expr(self) -> ExpressionNode:
        node = self.parse_term()
        while self.current.kind == "op" and self.current.text in "+-":
            op = _BINARY_BY_SYMBOL[self.advance().text]
            node = ExpressionNode.binary(op, node, self.parse_term())
        return node

    def parse_term(self) -> ExpressionNode:
        node = self.parse_unary()
        while self.current.kind == "op" and self.current.text in "*/":
            op = _BINARY_BY_SYMBOL[self.advance().text]
            node = ExpressionNode.binary(op, node, self.parse_unary())
        return node

    def parse_unary(self) -> ExpressionNode:
        if self.accept_op("-"):
            operand = self.parse_unary()
            # A literal directly after '-' is read as a negative constant
            if operand.node_type == NodeType.CONSTANT:
                return ExpressionNode.constant(-operand.value)
            return ExpressionNode.unary("neg", operand)
        return self.parse_power()

    def parse_power(self) -> ExpressionNode:
        base = self.parse_primary()
        if self.accept_op("^"):
            return ExpressionNode.binary("pow", base, self.parse_unary())
        return base

    def parse_primary(self) -> ExpressionNode:
        token = self.current
        if token.kind == "number":
            self.advance()
            return ExpressionNode.constant(float(token.text))
        if token.kind == "name":
            self.advance()
            return self._parse_name(token)
        if self.accept_op("("):
            node = self.parse_expr()
            self.expect_op(")")
            return node
        if token.kind == "end":
            raise self.error("unexpected end of input")
        raise self.error("unexpected token")

    def _parse_name(self, token: Token) -> ExpressionNode:
        name = token.text
        if name in FUNCTION_NAMES:
            if not self.accept_op("("):
                raise self.error(f"expected '(' after function '{name}'")
            argument = self.parse_expr()
            self.expect_op(")")
            return ExpressionNode.unary(FUNCTION_ALIASES.get(name, name), argument)
        if name == VARIABLE_NAME:
            return ExpressionNode.variable()
        if PARAM_NAME_RE.match(name):
            return ExpressionNode.parameter(name)
        raise self.error(f"unknown identifier '{name}'", token)


def parse(text: str) -> ExpressionNode:
    """Parse expression text into a tree.

    Args:
        text: Expression such as ``"a*exp(-((x-m)/s)^2) + h"``

    Returns:
        Root node of the parsed tree

    Raises:
        ParseError: If the text is malformed
    """
    node = _Parser(text).parse()
    logger.debug("Parsed %r into %d nodes", text, node.count_nodes())
    return node
