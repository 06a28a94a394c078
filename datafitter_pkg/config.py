"""Centralized configuration for datafitter.

This module defines:
- Default values for the search loop, the generator and the fit engine
- The immutable ``SearchConfig`` object passed to every component

Defaults can be overridden via:
- CLI flags (see cli/app.py)
- Environment variables (prefixed with DATAFITTER_)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace as _dc_replace

VERSION = "0.3.0"


def _env_optional_int(name: str) -> int | None:
    value = os.getenv(name)
    return int(value) if value else None


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


# Dataset
DATASET_PATH = os.getenv("DATAFITTER_DATASET_PATH", "./data/fit_Dm_4.dat")

# Candidate acceptance
FIT_RESIDUE_THRESHOLD = float(
    os.getenv("DATAFITTER_FIT_RESIDUE_THRESHOLD", "inf")
)  # First best must beat this
FUNCTION_MAX_PARAMS = int(
    os.getenv("DATAFITTER_FUNCTION_MAX_PARAMS", "7")
)  # Larger candidates are never fitted

# Fit engine
FIT_ALGORITHM = os.getenv(
    "DATAFITTER_FIT_ALGORITHM", "pattern_search"
)  # "pattern_search", "nelder_mead"
RESIDUAL_FUNCTION = os.getenv(
    "DATAFITTER_RESIDUAL_FUNCTION", "least_squares"
)  # "least_squares", "absolute"
PARAM_VALUE_MIN = float(os.getenv("DATAFITTER_PARAM_VALUE_MIN", "-5"))
PARAM_VALUE_MAX = float(os.getenv("DATAFITTER_PARAM_VALUE_MAX", "5"))
MIN_STEP = float(os.getenv("DATAFITTER_MIN_STEP", "1e-3"))
FIT_MAX_ITERS = int(os.getenv("DATAFITTER_FIT_MAX_ITERS", "1000"))
INITIAL_STEP_FRACTION = float(
    os.getenv("DATAFITTER_INITIAL_STEP_FRACTION", "0.1")
)  # Of the parameter domain width

# Generator
COMPLEXITY_MIN = int(os.getenv("DATAFITTER_COMPLEXITY_MIN", "10"))
COMPLEXITY_MAX = int(os.getenv("DATAFITTER_COMPLEXITY_MAX", "30"))
LEAF_PROBABILITY = float(os.getenv("DATAFITTER_LEAF_PROBABILITY", "0.25"))
UNARY_PROBABILITY = float(os.getenv("DATAFITTER_UNARY_PROBABILITY", "0.3"))

# Stop conditions (unset means unbounded)
MAX_GENERATED = _env_optional_int("DATAFITTER_MAX_GENERATED")
MAX_FITTED = _env_optional_int("DATAFITTER_MAX_FITTED")
MAX_DURATION = _env_optional_float("DATAFITTER_MAX_DURATION")  # seconds

# Reporting
STATS_INTERVAL = float(
    os.getenv("DATAFITTER_STATS_INTERVAL", "10")
)  # Seconds between throughput lines, 0 disables
SEED = _env_optional_int("DATAFITTER_SEED")

# Named templates for --template: (expression, initial parameter values)
TEMPLATE_PRESETS: dict[str, tuple[str, dict[str, float]]] = {
    "exp_shift": (
        "h + a*exp(k*(x-m))",
        {"h": 0.0, "a": 1.0, "k": -1.0, "m": 0.0},
    ),
    "two_gaussians": (
        "h + a*exp(-((x-m)/s)^2) + b*exp(-((x-n)/t)^2)",
        {"h": 0.5, "a": 5.0, "m": 1.5, "s": 0.6, "b": 2.5, "n": 3.5, "t": 0.6},
    ),
    "benchmark": (
        "((exp(x) / x)^(w))^(q) * (x * f)",
        {"f": -1.0, "q": -1.0, "w": -1.0},
    ),
}


def resolve_template(
    name_or_text: str, overrides: dict[str, float] | None = None
) -> tuple[str, tuple[tuple[str, float], ...]]:
    """Expand a preset name into its expression and initial values.

    Text that is not a preset name is returned unchanged. ``overrides`` take
    precedence over preset values.
    """
    text, values = TEMPLATE_PRESETS.get(name_or_text, (name_or_text, {}))
    merged = dict(values)
    merged.update(overrides or {})
    return text, tuple(merged.items())


@dataclass(frozen=True)
class SearchConfig:
    """Immutable configuration shared by generator, fit engine and search driver.

    Built once at startup and passed by reference. Use ``replace`` to derive a
    modified copy.
    """

    dataset_path: str = DATASET_PATH
    residue_threshold: float = FIT_RESIDUE_THRESHOLD
    max_params: int = FUNCTION_MAX_PARAMS

    fit_algorithm: str = FIT_ALGORITHM
    residual_function: str = RESIDUAL_FUNCTION
    param_value_min: float = PARAM_VALUE_MIN
    param_value_max: float = PARAM_VALUE_MAX
    min_step: float = MIN_STEP
    fit_max_iters: int = FIT_MAX_ITERS
    initial_step_fraction: float = INITIAL_STEP_FRACTION

    complexity_min: int = COMPLEXITY_MIN
    complexity_max: int = COMPLEXITY_MAX
    leaf_probability: float = LEAF_PROBABILITY
    unary_probability: float = UNARY_PROBABILITY

    max_generated: int | None = MAX_GENERATED
    max_fitted: int | None = MAX_FITTED
    max_duration: float | None = MAX_DURATION

    seed: int | None = SEED
    stats_interval: float = STATS_INTERVAL
    verbose: bool = True

    # Fixed-template fitting: fit this expression instead of random ones
    template: str | None = None
    template_params: tuple[tuple[str, float], ...] = field(default_factory=tuple)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if the configuration is inconsistent."""
        if not self.param_value_min < self.param_value_max:
            raise ValueError(
                f"param_value_min ({self.param_value_min}) must be below "
                f"param_value_max ({self.param_value_max})"
            )
        if not (math.isfinite(self.param_value_min) and math.isfinite(self.param_value_max)):
            raise ValueError("parameter domain bounds must be finite")
        if self.min_step <= 0:
            raise ValueError("min_step must be positive")
        if self.fit_max_iters < 1:
            raise ValueError("fit_max_iters must be at least 1")
        if not 0 < self.initial_step_fraction <= 1:
            raise ValueError("initial_step_fraction must be in (0, 1]")
        if self.max_params < 0:
            raise ValueError("max_params must be non-negative")
        if not 0 <= self.complexity_min <= self.complexity_max:
            raise ValueError(
                f"complexity range [{self.complexity_min}, {self.complexity_max}] is invalid"
            )
        for name in ("leaf_probability", "unary_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")
        for name in ("max_generated", "max_fitted"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.max_duration is not None and self.max_duration < 0:
            raise ValueError("max_duration must be non-negative")
        if self.stats_interval < 0:
            raise ValueError("stats_interval must be non-negative")

    def replace(self, **changes) -> SearchConfig:
        """Return a copy with the given fields changed (re-validated)."""
        return _dc_replace(self, **changes)

    @property
    def param_domain_width(self) -> float:
        return self.param_value_max - self.param_value_min

    @property
    def has_stop_condition(self) -> bool:
        return (
            self.max_generated is not None
            or self.max_fitted is not None
            or self.max_duration is not None
        )
