"""Random-search driver: generate, simplify, fit, compare.

The driver owns the random stream and the best-so-far record. Each ``step``
handles one candidate; ``run`` repeats steps until a configured stop
condition holds (or forever when none is configured).
"""

from __future__ import annotations

import logging
import math
import random
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable
from typing import TextIO

from ..config import SearchConfig
from ..errors import FitError
from ..utils.data_loading import Dataset
from ..utils.formatting import format_best_report
from ..utils.formatting import format_stats
from .fit_engine import fit
from .fit_engine import get_fit_algorithm
from .params import Candidate
from .residual import get_residual_function

logger = logging.getLogger(__name__)


class StepOutcome(Enum):
    """What happened to the candidate handled by one ``step``."""

    TOO_MANY_PARAMS = "too_many_params"
    FIT_FAILED = "fit_failed"
    NON_FINITE = "non_finite"
    NOT_BETTER = "not_better"
    NEW_BEST = "new_best"


class StopReason(Enum):
    MAX_GENERATED = "max_generated"
    MAX_FITTED = "max_fitted"
    MAX_DURATION = "max_duration"
    INTERRUPTED = "interrupted"


@dataclass
class BestRecord:
    candidate: Candidate
    residue: float
    fit_iters: int


@dataclass
class SearchResult:
    """Summary returned by ``FitSearch.run``."""

    best: BestRecord
    generated: int
    fitted: int
    elapsed: float
    stop_reason: StopReason

    @property
    def found(self) -> bool:
        """Whether any candidate was accepted."""
        return math.isfinite(self.best.residue)


class FitSearch:
    """Search for the expression that best fits a dataset.

    Args:
        dataset: Samples every candidate is fitted against
        config: Search configuration (defaults from ``config.py``)
        rng: Random stream; ``random.Random(config.seed)`` when omitted
        clock: Monotonic time source in seconds
        stream: Where reports are printed (stdout by default)

    Raises:
        ValueError: Unknown fit algorithm or residual name, or a template
            with more parameters than ``config.max_params``
        ParseError: Malformed template text

    Example:
        >>> search = FitSearch(load_dataset("data.dat"), SearchConfig(max_fitted=1000))
        >>> result = search.run()
        >>> print(result.best.candidate.to_string_for_plot())
    """

    def __init__(
        self,
        dataset: Dataset,
        config: SearchConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.perf_counter,
        stream: TextIO | None = None,
    ):
        self.dataset = dataset
        self.config = config or SearchConfig()
        get_fit_algorithm(self.config.fit_algorithm)
        get_residual_function(self.config.residual_function)

        self.rng = rng if rng is not None else random.Random(self.config.seed)
        self.clock = clock
        self.stream = stream if stream is not None else sys.stdout

        self._template: Candidate | None = None
        self._template_used = False
        if self.config.template:
            self._template = Candidate.from_template(
                self.config.template, self.config, dict(self.config.template_params)
            )
            if self._template.param_count > self.config.max_params:
                raise ValueError(
                    f"template has {self._template.param_count} parameters, "
                    f"more than max_params={self.config.max_params}"
                )

        self.best = BestRecord(Candidate.sentinel(), self.config.residue_threshold, 0)
        self.generated = 0
        self.fitted = 0
        self.started_at: float | None = None
        self._last_stats_at: float | None = None

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return self.clock() - self.started_at

    def _emit(self, lines: list[str]) -> None:
        if not self.config.verbose:
            return
        for line in lines:
            print(line, file=self.stream)
        self.stream.flush()

    def print_stats(self) -> None:
        self._emit(format_stats(self.generated, self.fitted, self.elapsed))

    def report_best(self) -> None:
        best = self.best
        self.print_stats()
        self._emit([""])
        self._emit(
            format_best_report(
                best.fit_iters,
                best.candidate.to_string_for_plot(),
                best.candidate.to_pretty_string(),
                best.residue,
            )
        )
        self._emit(["", "searching..."])

    def next_candidate(self) -> Candidate:
        """Produce the next candidate to fit.

        In template mode the first candidate starts from the configured
        initial values and later ones from random points of the domain.
        Otherwise a random expression is generated and simplified.
        """
        if self._template is not None:
            candidate = self._template.copy()
            if self._template_used:
                lower, upper = self.config.param_value_min, self.config.param_value_max
                candidate.params.set_values(
                    self.rng.uniform(lower, upper) for _ in range(candidate.param_count)
                )
            self._template_used = True
            return candidate
        return Candidate.generate(self.rng, self.config).simplify()

    def step(self) -> StepOutcome:
        """Handle one candidate: generate, simplify, fit and compare."""
        if self.started_at is None:
            self.started_at = self.clock()

        candidate = self.next_candidate()
        self.generated += 1

        if candidate.param_count > self.config.max_params:
            logger.debug(
                "Skipping %s: %d parameters (max %d)",
                candidate.to_string(),
                candidate.param_count,
                self.config.max_params,
            )
            return StepOutcome.TOO_MANY_PARAMS

        try:
            result = fit(candidate, self.dataset, self.config)
        except FitError as exc:
            logger.debug("Skipping %s: %s", candidate.to_string(), exc)
            return StepOutcome.FIT_FAILED
        self.fitted += 1

        if not math.isfinite(result.residue):
            logger.debug("Skipping %s: non-finite residue", candidate.to_string())
            return StepOutcome.NON_FINITE

        if result.residue <= self.best.residue:
            self.best = BestRecord(candidate, result.residue, result.iterations)
            logger.info(
                "New best after %d candidates: %s (residue=%.6g)",
                self.generated,
                candidate.to_string(),
                result.residue,
            )
            self.report_best()
            return StepOutcome.NEW_BEST
        return StepOutcome.NOT_BETTER

    def stop_reason(self) -> StopReason | None:
        """The first stop condition that currently holds, if any."""
        config = self.config
        if config.max_generated is not None and self.generated >= config.max_generated:
            return StopReason.MAX_GENERATED
        if config.max_fitted is not None and self.fitted >= config.max_fitted:
            return StopReason.MAX_FITTED
        if config.max_duration is not None and self.elapsed >= config.max_duration:
            return StopReason.MAX_DURATION
        return None

    def _maybe_print_stats(self) -> None:
        interval = self.config.stats_interval
        if interval <= 0:
            return
        now = self.clock()
        if now - self._last_stats_at >= interval:
            self._last_stats_at = now
            self.print_stats()

    def run(self) -> SearchResult:
        """Loop ``step`` until a stop condition holds.

        Without any stop condition the loop only ends on KeyboardInterrupt,
        which is reported as ``StopReason.INTERRUPTED``.
        """
        if self.started_at is None:
            self.started_at = self.clock()
        self._last_stats_at = self.started_at
        if not self.config.has_stop_condition:
            logger.info("No stop condition configured; searching until interrupted")
        self._emit(["searching..."])

        try:
            while True:
                reason = self.stop_reason()
                if reason is not None:
                    break
                self.step()
                self._maybe_print_stats()
        except KeyboardInterrupt:
            reason = StopReason.INTERRUPTED
            logger.info("Search interrupted after %d candidates", self.generated)

        logger.info(
            "Search stopped (%s): %d generated, %d fitted, best residue %.6g",
            reason.value,
            self.generated,
            self.fitted,
            self.best.residue,
        )
        return SearchResult(self.best, self.generated, self.fitted, self.elapsed, reason)
