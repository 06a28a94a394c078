"""Random expression generator bounded by a complexity budget."""

from __future__ import annotations

import math
import random
from typing import TYPE_CHECKING

from .expression_tree import BINARY_OPERATORS
from .expression_tree import UNARY_OPERATORS
from .expression_tree import ExpressionNode
from .expression_tree import canonical_param_names

if TYPE_CHECKING:
    from ..config import SearchConfig
    from .params import Params

UNARY_KINDS = tuple(UNARY_OPERATORS)
BINARY_KINDS = tuple(BINARY_OPERATORS)

# Simple constants a leaf may take
CONSTANT_TABLE = (0.5, 1.0, 2.0, 3.0, 10.0, math.pi, math.e)

# Leaf kind weights: variable, parameter, constant
VARIABLE_LEAF_WEIGHT = 0.4
PARAMETER_LEAF_WEIGHT = 0.4


def fresh_param_name(params: Params) -> str:
    """First canonical name not yet used in ``params``."""
    for name in canonical_param_names():
        if name not in params:
            return name
    raise AssertionError("canonical parameter names are unbounded")


def random_leaf(rng: random.Random, config: SearchConfig, params: Params) -> ExpressionNode:
    """Variable, constant or a fresh parameter (registered in ``params``)."""
    roll = rng.random()
    if roll < VARIABLE_LEAF_WEIGHT:
        return ExpressionNode.variable()
    if roll < VARIABLE_LEAF_WEIGHT + PARAMETER_LEAF_WEIGHT:
        name = fresh_param_name(params)
        params.add(name, rng.uniform(config.param_value_min, config.param_value_max))
        return ExpressionNode.parameter(name)
    return ExpressionNode.constant(rng.choice(CONSTANT_TABLE))


def generate(
    complexity_budget: int,
    rng: random.Random,
    config: SearchConfig,
    params: Params,
) -> ExpressionNode:
    """Build a random expression tree.

    A budget of zero or less forces a leaf. Otherwise a leaf is chosen with
    probability ``config.leaf_probability``, else an operator: unary with
    probability ``config.unary_probability``, binary otherwise. A unary
    operator hands ``budget - 1`` to its child; a binary operator splits
    ``budget - 1`` uniformly between its two children.

    Every fresh parameter is appended to ``params`` with a value drawn
    uniformly from the parameter domain, so the number of parameters added
    never exceeds ``complexity_budget + 1``.

    Args:
        complexity_budget: Size bound for the tree
        rng: Random stream (owned by the caller, never re-seeded here)
        config: Supplies probabilities and the parameter domain
        params: Parameter set receiving the fresh parameters

    Returns:
        Root of the new tree
    """
    if complexity_budget <= 0 or rng.random() < config.leaf_probability:
        return random_leaf(rng, config, params)

    remaining = complexity_budget - 1
    if rng.random() < config.unary_probability:
        op = rng.choice(UNARY_KINDS)
        return ExpressionNode.unary(op, generate(remaining, rng, config, params))

    op = rng.choice(BINARY_KINDS)
    left_budget = rng.randint(0, remaining)
    left = generate(left_budget, rng, config, params)
    right = generate(remaining - left_budget, rng, config, params)
    return ExpressionNode.binary(op, left, right)
