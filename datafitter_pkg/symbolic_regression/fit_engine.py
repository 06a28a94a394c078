"""Derivative-free parameter fitting.

Two algorithms are registered in ``FIT_ALGORITHMS``:

- ``pattern_search``: coordinate pattern search with step halving (default)
- ``nelder_mead``: bounded Nelder-Mead simplex from ``scipy.optimize``

Both optimize the candidate's parameters in place and report failures
through ``FitError`` subclasses.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy.optimize import minimize

from ..config import SearchConfig
from ..errors import DivergedError
from ..errors import NoParametersError
from ..errors import NotConvergedError
from ..utils.data_loading import Dataset
from .params import Candidate
from .residual import get_residual_function
from .residual import residual

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FitResult:
    """Outcome of a successful fit."""

    residue: float
    iterations: int


def pattern_search(candidate: Candidate, dataset: Dataset, config: SearchConfig) -> FitResult:
    """Fit parameters by coordinate pattern search.

    Every parameter starts with step ``initial_step_fraction * domain width``.
    Each iteration visits the parameters in declared order and tries
    ``value + step`` then ``value - step`` (clamped to the domain), keeping
    the first move that strictly lowers the residual. An iteration without
    any improvement halves every step. The fit converges once all steps are
    below ``min_step``.

    Args:
        candidate: Candidate whose parameters are optimized in place
        dataset: Samples to fit
        config: Domain bounds, step sizes, iteration cap and residual kind

    Returns:
        FitResult with the final residue and the iteration count

    Raises:
        NoParametersError: The candidate has no parameters
        NotConvergedError: More than ``fit_max_iters`` iterations were needed
        DivergedError: The residual never became finite
    """
    params = candidate.params
    if len(params) == 0:
        raise NoParametersError()

    lower, upper = config.param_value_min, config.param_value_max
    params.clamp(lower, upper)
    names = params.names()
    steps = [config.initial_step_fraction * config.param_domain_width] * len(names)

    def cost() -> float:
        return residual(candidate.expression, params, dataset, config.residual_function)

    current = cost()
    iterations = 0
    while any(step >= config.min_step for step in steps):
        if iterations >= config.fit_max_iters:
            if not math.isfinite(current):
                raise DivergedError(iterations)
            raise NotConvergedError(current, iterations)
        iterations += 1

        improved = False
        for i, name in enumerate(names):
            base = params[name]
            for trial in (base + steps[i], base - steps[i]):
                trial = min(max(trial, lower), upper)
                if trial == base:
                    continue
                params[name] = trial
                value = cost()
                if value < current:
                    current = value
                    improved = True
                    break
                params[name] = base

        if not improved:
            steps = [step / 2 for step in steps]

    if not math.isfinite(current):
        raise DivergedError(iterations)
    return FitResult(current, iterations)


def nelder_mead(candidate: Candidate, dataset: Dataset, config: SearchConfig) -> FitResult:
    """Fit parameters with SciPy's bounded Nelder-Mead simplex.

    The optimum is clipped to the parameter domain and written back into the
    candidate's parameters. ``fit_max_iters`` caps the simplex iterations and
    ``min_step`` is the absolute tolerance on parameter values.
    """
    params = candidate.params
    if len(params) == 0:
        raise NoParametersError()

    lower, upper = config.param_value_min, config.param_value_max
    names = params.names()
    residual_func = get_residual_function(config.residual_function)
    x0 = np.clip(params.value_array(), lower, upper)

    def objective(values: np.ndarray) -> float:
        point = dict(zip(names, np.clip(values, lower, upper)))
        predicted = candidate.expression.evaluate(dataset.x, point)
        if not np.all(np.isfinite(predicted)):
            return math.inf
        value = residual_func(predicted, dataset.y)
        return value if math.isfinite(value) else math.inf

    with np.errstate(all="ignore"):
        result = minimize(
            objective,
            x0,
            method="Nelder-Mead",
            bounds=[(lower, upper)] * len(names),
            options={"maxiter": config.fit_max_iters, "xatol": config.min_step},
        )

    params.set_values(np.clip(result.x, lower, upper))
    residue = float(result.fun)
    iterations = int(result.nit)
    if not math.isfinite(residue):
        raise DivergedError(iterations)
    if not result.success:
        raise NotConvergedError(residue, iterations)
    return FitResult(residue, iterations)


FIT_ALGORITHMS: dict[str, Callable[[Candidate, Dataset, SearchConfig], FitResult]] = {
    "pattern_search": pattern_search,
    "nelder_mead": nelder_mead,
}


def get_fit_algorithm(name: str) -> Callable[[Candidate, Dataset, SearchConfig], FitResult]:
    try:
        return FIT_ALGORITHMS[name]
    except KeyError:
        raise ValueError(
            f"Unknown fit algorithm: {name!r} (choose from {', '.join(FIT_ALGORITHMS)})"
        ) from None


def fit(candidate: Candidate, dataset: Dataset, config: SearchConfig) -> FitResult:
    """Fit the candidate's parameters with ``config.fit_algorithm``.

    Parameters are mutated in place; copy the candidate first to keep the
    starting point.

    Raises:
        FitError: NoParametersError, NotConvergedError or DivergedError
        ValueError: Unknown algorithm or residual function name
    """
    algorithm = get_fit_algorithm(config.fit_algorithm)
    result = algorithm(candidate, dataset, config)
    logger.debug(
        "Fitted %s: residue=%.6g after %d iterations",
        candidate.to_string(),
        result.residue,
        result.iterations,
    )
    return result
