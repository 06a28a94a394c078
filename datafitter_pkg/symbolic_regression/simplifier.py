"""Rewrite-to-fixpoint simplification of expression trees.

Rules (each one removes at least one node, so the loop terminates):

- constant folding, kept only when the folded value is finite
- identities: e+0, 0+e, e-0, e*1, 1*e, e/1, e^1 -> e; e*0, 0*e -> 0;
  e^0 -> 1; 0-e -> -e
- --e -> e, and -c folds into a constant
- add/mul chains: several constants merge into one

``simplify`` additionally drops unused parameters and renames the rest to
a, b, c, ... in order of first occurrence.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from .expression_tree import BINARY_OPERATORS
from .expression_tree import UNARY_OPERATORS
from .expression_tree import ExpressionNode
from .expression_tree import NodeType
from .expression_tree import canonical_param_names
from .params import Candidate
from .params import Param
from .params import Params

logger = logging.getLogger(__name__)

ASSOCIATIVE_OPS = ("add", "mul")


def _fold(op: str, *values: float) -> float | None:
    """Apply ``op`` to constants; None when the result is not finite."""
    with np.errstate(all="ignore"):
        if op in UNARY_OPERATORS:
            result = UNARY_OPERATORS[op](np.float64(values[0]))
        else:
            result = BINARY_OPERATORS[op](np.float64(values[0]), np.float64(values[1]))
    result = float(result)
    return result if math.isfinite(result) else None


def _flatten_chain(node: ExpressionNode, op: str) -> list[ExpressionNode]:
    """Operands of a nested chain of ``op`` nodes, left to right."""
    if node.node_type == NodeType.BINARY_OP and node.value == op:
        return _flatten_chain(node.children[0], op) + _flatten_chain(node.children[1], op)
    return [node]


def _merge_chain(node: ExpressionNode, op: str) -> ExpressionNode | None:
    """Merge the constants of an add/mul chain into one.

    Returns the rebuilt chain, or None when nothing could be merged.
    """
    operands = _flatten_chain(node, op)
    constants = [i for i, item in enumerate(operands) if item.node_type == NodeType.CONSTANT]
    if len(constants) < 2:
        return None
    merged_constant = operands[constants[0]].value
    for i in constants[1:]:
        merged_constant = _fold(op, merged_constant, operands[i].value)
        if merged_constant is None:
            return None
    dropped = set(constants[1:])

    kept = []
    for i, item in enumerate(operands):
        if i in dropped:
            continue
        if i == constants[0]:
            kept.append(ExpressionNode.constant(merged_constant))
        else:
            kept.append(item)
    result = kept[0]
    for item in kept[1:]:
        result = ExpressionNode.binary(op, result, item)
    return result


def _rewrite_unary(node: ExpressionNode) -> ExpressionNode:
    op, child = node.value, node.children[0]
    if child.node_type == NodeType.CONSTANT:
        folded = _fold(op, child.value)
        if folded is not None:
            return ExpressionNode.constant(folded)
    if op == "neg" and child.node_type == NodeType.UNARY_OP and child.value == "neg":
        return child.children[0]
    return node


def _rewrite_binary(node: ExpressionNode) -> ExpressionNode:
    op = node.value
    left, right = node.children

    if left.node_type == NodeType.CONSTANT and right.node_type == NodeType.CONSTANT:
        folded = _fold(op, left.value, right.value)
        if folded is not None:
            return ExpressionNode.constant(folded)

    if op == "add":
        if right.is_constant(0.0):
            return left
        if left.is_constant(0.0):
            return right
    elif op == "sub":
        if right.is_constant(0.0):
            return left
        if left.is_constant(0.0):
            return ExpressionNode.unary("neg", right)
    elif op == "mul":
        if left.is_constant(0.0) or right.is_constant(0.0):
            return ExpressionNode.constant(0.0)
        if right.is_constant(1.0):
            return left
        if left.is_constant(1.0):
            return right
    elif op == "div":
        if right.is_constant(1.0):
            return left
    elif op == "pow":
        if right.is_constant(1.0):
            return left
        if right.is_constant(0.0):
            return ExpressionNode.constant(1.0)

    if op in ASSOCIATIVE_OPS:
        merged = _merge_chain(node, op)
        if merged is not None:
            return merged
    return node


def _simplify_pass(node: ExpressionNode) -> ExpressionNode:
    """One bottom-up rewrite pass; returns a new tree."""
    if node.is_terminal:
        return node.copy()
    children = [_simplify_pass(child) for child in node.children]
    rebuilt = ExpressionNode(node.node_type, node.value, children)
    if rebuilt.node_type == NodeType.UNARY_OP:
        return _rewrite_unary(rebuilt)
    if rebuilt.node_type == NodeType.BINARY_OP:
        return _rewrite_binary(rebuilt)
    raise AssertionError(f"unexpected node type: {rebuilt.node_type}")


def simplify_expression(node: ExpressionNode) -> ExpressionNode:
    """Apply the rewrite rules until the tree stops changing.

    The input is left untouched. Node count and parameter count of the result
    never exceed those of the input, and simplifying the result again returns
    an equal tree.
    """
    current = node
    while True:
        rewritten = _simplify_pass(current)
        if rewritten == current:
            return rewritten
        current = rewritten


def simplify(candidate: Candidate) -> Candidate:
    """Simplify a candidate and rename its parameters canonically.

    Parameters that no longer occur are dropped; the rest are renamed to
    a, b, c, ... (skipping x) in first-occurrence order and keep their values.
    """
    expression = simplify_expression(candidate.expression)
    old_names = expression.parameter_names()
    mapping = dict(zip(old_names, canonical_param_names()))
    expression = expression.rename_parameters(mapping)
    params = Params(Param(mapping[name], candidate.params[name]) for name in old_names)
    logger.debug(
        "Simplified %d -> %d nodes, %d -> %d params",
        candidate.expression.count_nodes(),
        expression.count_nodes(),
        len(candidate.params),
        len(params),
    )
    return Candidate(expression, params)
