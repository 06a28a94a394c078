"""Residual (cost) functions comparing a candidate's predictions to data."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Callable

import numpy as np

from ..utils.data_loading import Dataset
from .expression_tree import ExpressionNode


def least_squares(predicted: np.ndarray, observed: np.ndarray) -> float:
    """Sum of squared differences."""
    return float(np.sum((predicted - observed) ** 2))


def absolute(predicted: np.ndarray, observed: np.ndarray) -> float:
    """Sum of absolute differences."""
    return float(np.sum(np.abs(predicted - observed)))


RESIDUAL_FUNCTIONS: dict[str, Callable[[np.ndarray, np.ndarray], float]] = {
    "least_squares": least_squares,
    "absolute": absolute,
}


def get_residual_function(kind: str) -> Callable[[np.ndarray, np.ndarray], float]:
    try:
        return RESIDUAL_FUNCTIONS[kind]
    except KeyError:
        raise ValueError(
            f"Unknown residual function: {kind!r} "
            f"(choose from {', '.join(RESIDUAL_FUNCTIONS)})"
        ) from None


def residual(
    expression: ExpressionNode,
    params: Mapping[str, float],
    dataset: Dataset,
    kind: str = "least_squares",
) -> float:
    """Aggregate disagreement between the expression and the dataset.

    Any non-finite prediction, or a non-finite aggregate, yields ``inf``.

    Raises:
        ValueError: If ``kind`` is not a registered residual function
    """
    func = get_residual_function(kind)
    predicted = expression.evaluate(dataset.x, params)
    if not np.all(np.isfinite(predicted)):
        return math.inf
    with np.errstate(all="ignore"):
        value = func(predicted, dataset.y)
    return value if math.isfinite(value) else math.inf
