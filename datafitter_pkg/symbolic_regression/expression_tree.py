"""Expression tree data structure for symbolic regression.

This module implements the algebraic tree that the generator builds, the
simplifier rewrites and the fit engine evaluates.

Key Classes:
    - NodeType: Enum for terminal/operator node types
    - ExpressionNode: Single node (and, recursively, a whole tree)

Evaluation follows IEEE-754 semantics: division by zero gives +-inf and
invalid domains (negative base with fractional exponent, log of a negative
number) give NaN. Evaluation never raises on numeric grounds; callers decide
what a non-finite value means.
"""

from __future__ import annotations

import string
from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import auto
from typing import Any
from typing import Callable

import numpy as np
import sympy as sp

VARIABLE_NAME = "x"


class NodeType(Enum):
    """Types of nodes in an expression tree."""

    CONSTANT = auto()  # Numeric constant (e.g., 0.5)
    VARIABLE = auto()  # The independent input x
    PARAMETER = auto()  # Named free parameter (e.g., a, b)
    UNARY_OP = auto()  # Unary operator (e.g., neg, sin, exp)
    BINARY_OP = auto()  # Binary operator (e.g., add, pow)


# numpy ufuncs give IEEE results on float64 input (with warnings silenced)
UNARY_OPERATORS: dict[str, Callable[[Any], Any]] = {
    "neg": np.negative,
    "exp": np.exp,
    "ln": np.log,
    "sqrt": np.sqrt,
    "sin": np.sin,
    "cos": np.cos,
    "tan": np.tan,
    "abs": np.abs,
}

BINARY_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "add": np.add,
    "sub": np.subtract,
    "mul": np.multiply,
    "div": np.divide,
    "pow": np.power,
}

BINARY_SYMBOLS: dict[str, str] = {
    "add": "+",
    "sub": "-",
    "mul": "*",
    "div": "/",
    "pow": "^",
}

# SymPy equivalents for symbolic conversion
SYMPY_UNARY: dict[str, Callable] = {
    "neg": lambda x: -x,
    "exp": sp.exp,
    "ln": sp.log,
    "sqrt": sp.sqrt,
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "abs": sp.Abs,
}

SYMPY_BINARY: dict[str, Callable] = {
    "add": lambda x, y: x + y,
    "sub": lambda x, y: x - y,
    "mul": lambda x, y: x * y,
    "div": lambda x, y: x / y,
    "pow": lambda x, y: x**y,
}


def canonical_param_names() -> Iterator[str]:
    """Yield parameter names in canonical order: a, b, ..., z, a1, b1, ...

    The variable letter is never used as a parameter name.
    """
    letters = [c for c in string.ascii_lowercase if c != VARIABLE_NAME]
    suffix = 0
    while True:
        tail = str(suffix) if suffix else ""
        for letter in letters:
            yield letter + tail
        suffix += 1


def format_constant(value: float, precise: bool = False) -> str:
    """Render a constant so that parsing the text gives the same float.

    Short ``%g`` form is used when it is exact, ``repr`` otherwise. Negative
    values are parenthesized so they can follow any operator.
    """
    value = float(value)
    text = repr(value) if precise else f"{value:.6g}"
    if not precise and float(text) != value:
        text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    if value < 0 or text.startswith("-"):
        return f"({text})"
    return text


@dataclass
class ExpressionNode:
    """A node in an expression tree.

    Attributes:
        node_type: Type of this node
        value: For CONSTANT: the numeric value; for VARIABLE: ``"x"``;
               for PARAMETER: the parameter name; for operators: the
               operator name (e.g., 'add', 'sin')
        children: Child nodes (empty for terminals, 1 for unary, 2 for binary)

    Children are owned exclusively by their parent, so trees never share
    subtrees and never contain cycles. Equality is structural.
    """

    node_type: NodeType
    value: Any
    children: list[ExpressionNode] = field(default_factory=list)

    # ---- constructors ----
    @staticmethod
    def constant(value: float) -> ExpressionNode:
        return ExpressionNode(NodeType.CONSTANT, float(value))

    @staticmethod
    def variable() -> ExpressionNode:
        return ExpressionNode(NodeType.VARIABLE, VARIABLE_NAME)

    @staticmethod
    def parameter(name: str) -> ExpressionNode:
        return ExpressionNode(NodeType.PARAMETER, name)

    @staticmethod
    def unary(op: str, child: ExpressionNode) -> ExpressionNode:
        if op not in UNARY_OPERATORS:
            raise ValueError(f"Unknown unary operator: {op}")
        return ExpressionNode(NodeType.UNARY_OP, op, [child])

    @staticmethod
    def binary(op: str, left: ExpressionNode, right: ExpressionNode) -> ExpressionNode:
        if op not in BINARY_OPERATORS:
            raise ValueError(f"Unknown binary operator: {op}")
        return ExpressionNode(NodeType.BINARY_OP, op, [left, right])

    # ---- structure ----
    @property
    def arity(self) -> int:
        """Number of children this node should have."""
        if self.node_type == NodeType.UNARY_OP:
            return 1
        if self.node_type == NodeType.BINARY_OP:
            return 2
        return 0

    @property
    def is_terminal(self) -> bool:
        """Whether this is a terminal (leaf) node."""
        return self.node_type in (NodeType.CONSTANT, NodeType.VARIABLE, NodeType.PARAMETER)

    def is_constant(self, value: float | None = None) -> bool:
        """Whether this is a constant (optionally equal to ``value``)."""
        if self.node_type != NodeType.CONSTANT:
            return False
        return value is None or self.value == value

    def iter_nodes(self) -> Iterator[ExpressionNode]:
        """Yield every node of this subtree in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def count_nodes(self) -> int:
        """Count total nodes in this subtree."""
        return 1 + sum(child.count_nodes() for child in self.children)

    def depth(self) -> int:
        """Calculate depth of this subtree."""
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)

    def parameter_names(self) -> list[str]:
        """Distinct parameter names in first-occurrence (pre-order) order."""
        seen: dict[str, None] = {}
        for node in self.iter_nodes():
            if node.node_type == NodeType.PARAMETER:
                seen.setdefault(node.value, None)
        return list(seen)

    def copy(self) -> ExpressionNode:
        """Create a deep copy of this subtree."""
        return ExpressionNode(
            node_type=self.node_type,
            value=self.value,
            children=[child.copy() for child in self.children],
        )

    def rename_parameters(self, mapping: Mapping[str, str]) -> ExpressionNode:
        """Return a copy with parameters renamed through ``mapping``."""
        if self.node_type == NodeType.PARAMETER:
            return ExpressionNode.parameter(mapping.get(self.value, self.value))
        return ExpressionNode(
            self.node_type,
            self.value,
            [child.rename_parameters(mapping) for child in self.children],
        )

    # ---- evaluation ----
    def evaluate(
        self, x: float | np.ndarray, params: Mapping[str, float] | None = None
    ) -> float | np.ndarray:
        """Evaluate this subtree.

        Args:
            x: Value (or array of values) of the independent variable
            params: Mapping of parameter name to current value

        Returns:
            A float for scalar ``x``, an array shaped like ``x`` otherwise
        """
        params = params or {}
        x_arr = np.asarray(x, dtype=np.float64)
        with np.errstate(all="ignore"):
            result = self._evaluate(x_arr, params)
        if x_arr.ndim == 0:
            return float(result)
        result = np.asarray(result, dtype=np.float64)
        if result.shape != x_arr.shape:
            result = np.broadcast_to(result, x_arr.shape).copy()
        return result

    def _evaluate(self, x: np.ndarray, params: Mapping[str, float]) -> Any:
        if self.node_type == NodeType.CONSTANT:
            return np.float64(self.value)
        elif self.node_type == NodeType.VARIABLE:
            return x
        elif self.node_type == NodeType.PARAMETER:
            return np.float64(params[self.value])
        elif self.node_type == NodeType.UNARY_OP:
            return UNARY_OPERATORS[self.value](self.children[0]._evaluate(x, params))
        else:  # BINARY_OP
            return BINARY_OPERATORS[self.value](
                self.children[0]._evaluate(x, params),
                self.children[1]._evaluate(x, params),
            )

    # ---- printing ----
    def to_string(self) -> str:
        """Textual form that ``parse`` reads back."""
        return self._render(None, top=True)

    def to_string_for_plot(self, params: Mapping[str, float]) -> str:
        """Textual form with parameter values substituted at full precision."""
        return self._render(params, top=True)

    def _render(self, params: Mapping[str, float] | None, top: bool = False) -> str:
        precise = params is not None
        if self.node_type == NodeType.CONSTANT:
            return format_constant(self.value, precise=precise)
        elif self.node_type == NodeType.VARIABLE:
            return VARIABLE_NAME
        elif self.node_type == NodeType.PARAMETER:
            if params is None:
                return str(self.value)
            return format_constant(params[self.value], precise=True)
        elif self.node_type == NodeType.UNARY_OP:
            if self.value == "neg":
                text = "-" + self.children[0]._render(params)
                return text if top else f"({text})"
            return f"{self.value}({self.children[0]._render(params, top=True)})"
        else:  # BINARY_OP
            text = (
                f"{self.children[0]._render(params)} "
                f"{BINARY_SYMBOLS[self.value]} "
                f"{self.children[1]._render(params)}"
            )
            return text if top else f"({text})"

    def to_sympy(self, params: Mapping[str, float] | None = None) -> sp.Expr:
        """Convert this subtree to a SymPy expression.

        Args:
            params: If given, parameters are replaced by their values

        Returns:
            SymPy expression (no simplification applied)
        """
        if self.node_type == NodeType.CONSTANT:
            return sp.Float(self.value)
        elif self.node_type == NodeType.VARIABLE:
            return sp.Symbol(VARIABLE_NAME)
        elif self.node_type == NodeType.PARAMETER:
            if params is not None:
                return sp.Float(params[self.value])
            return sp.Symbol(self.value)
        elif self.node_type == NodeType.UNARY_OP:
            return SYMPY_UNARY[self.value](self.children[0].to_sympy(params))
        else:  # BINARY_OP
            return SYMPY_BINARY[self.value](
                self.children[0].to_sympy(params), self.children[1].to_sympy(params)
            )

    def to_pretty_string(self, params: Mapping[str, float] | None = None) -> str:
        """Get a cleaned-up string representation via SymPy."""
        try:
            # Skip SymPy for very large trees to keep reporting cheap
            if self.count_nodes() > 60:
                return self.to_string()
            return str(self.to_sympy(params))
        except Exception:
            return self.to_string()

    def __str__(self) -> str:
        return self.to_string()
