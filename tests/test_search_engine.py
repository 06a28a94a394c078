import io
import random

import pytest

from datafitter_pkg.config import SearchConfig
from datafitter_pkg.errors import NotConvergedError
from datafitter_pkg.errors import ParseError
from datafitter_pkg.symbolic_regression import search_engine
from datafitter_pkg.symbolic_regression.fit_engine import FitResult
from datafitter_pkg.symbolic_regression.search_engine import FitSearch
from datafitter_pkg.symbolic_regression.search_engine import StepOutcome
from datafitter_pkg.symbolic_regression.search_engine import StopReason
from datafitter_pkg.utils.data_loading import Dataset


class FakeClock:
    """Advances by a fixed amount on every call."""

    def __init__(self, step=0.0):
        self.now = 0.0
        self.step = step

    def __call__(self):
        value = self.now
        self.now += self.step
        return value


class ScriptedFit:
    """Stand-in for ``fit`` returning scripted outcomes and recording candidates."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.seen = []

    def __call__(self, candidate, dataset, config):
        self.seen.append(candidate)
        outcome = self.outcomes.pop(0) if self.outcomes else FitResult(1e9, 1)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _quiet(**changes):
    return SearchConfig(verbose=False, seed=1, stats_interval=0, **changes)


def test_stops_after_max_generated(linear_dataset):
    search = FitSearch(linear_dataset, _quiet(max_generated=15, fit_max_iters=200))
    result = search.run()
    assert result.stop_reason == StopReason.MAX_GENERATED
    assert result.generated == 15
    assert result.fitted <= 15


def test_stops_after_max_fitted(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([]))
    search = FitSearch(linear_dataset, _quiet(max_fitted=10, max_params=100))
    result = search.run()
    assert result.stop_reason == StopReason.MAX_FITTED
    assert result.fitted == 10


def test_stops_after_max_duration(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([]))
    clock = FakeClock(step=1.0)
    search = FitSearch(linear_dataset, _quiet(max_duration=5.0), clock=clock)
    result = search.run()
    assert result.stop_reason == StopReason.MAX_DURATION
    assert result.elapsed >= 5.0
    assert result.generated < 5


def test_parameter_cap_keeps_candidates_from_fit(linear_dataset, monkeypatch):
    scripted = ScriptedFit([])
    monkeypatch.setattr(search_engine, "fit", scripted)
    search = FitSearch(linear_dataset, _quiet(max_params=1, max_generated=300))
    outcomes = [search.step() for _ in range(300)]
    assert StepOutcome.TOO_MANY_PARAMS in outcomes
    assert all(candidate.param_count <= 1 for candidate in scripted.seen)
    assert search.fitted == len(scripted.seen)


def test_best_replaced_on_less_or_equal(linear_dataset, monkeypatch):
    scripted = ScriptedFit(
        [FitResult(5.0, 3), FitResult(5.0, 4), FitResult(7.0, 5), FitResult(3.0, 6)]
    )
    monkeypatch.setattr(search_engine, "fit", scripted)
    search = FitSearch(linear_dataset, _quiet(max_params=100))
    outcomes = [search.step() for _ in range(4)]
    assert outcomes == [
        StepOutcome.NEW_BEST,
        StepOutcome.NEW_BEST,
        StepOutcome.NOT_BETTER,
        StepOutcome.NEW_BEST,
    ]
    assert search.best.residue == 3.0
    assert search.best.fit_iters == 6
    assert search.best.candidate is scripted.seen[3]


def test_threshold_blocks_worse_candidates(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([FitResult(2.0, 1)]))
    search = FitSearch(linear_dataset, _quiet(max_params=100, residue_threshold=1.0))
    assert search.step() == StepOutcome.NOT_BETTER
    assert search.best.residue == 1.0
    assert search.best.candidate.to_string() == "x"


def test_fit_errors_are_skipped(linear_dataset, monkeypatch):
    monkeypatch.setattr(
        search_engine, "fit", ScriptedFit([NotConvergedError(1.0, 5), FitResult(float("inf"), 2)])
    )
    search = FitSearch(linear_dataset, _quiet(max_params=100))
    assert search.step() == StepOutcome.FIT_FAILED
    assert search.step() == StepOutcome.NON_FINITE
    assert search.generated == 2
    assert search.fitted == 1


def test_failed_fits_do_not_count_as_fitted(linear_dataset, monkeypatch):
    failures = [NotConvergedError(1.0, 5) for _ in range(20)]
    monkeypatch.setattr(search_engine, "fit", ScriptedFit(failures))
    search = FitSearch(linear_dataset, _quiet(max_params=100, max_fitted=5, max_generated=20))
    result = search.run()
    assert result.stop_reason == StopReason.MAX_GENERATED
    assert result.generated == 20
    assert result.fitted == 0


def test_new_best_report_format(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([FitResult(0.25, 7)]))
    stream = io.StringIO()
    config = SearchConfig(seed=1, max_params=100, stats_interval=0)
    search = FitSearch(linear_dataset, config, clock=FakeClock(step=0.5), stream=stream)
    assert search.step() == StepOutcome.NEW_BEST

    lines = stream.getvalue().splitlines()
    assert lines[0].startswith("candidates generated: 1\t")
    assert lines[1].startswith("candidates fitted   : 1\t")
    block = lines[lines.index("FOUND NEW BEST FUNCTION:") :]
    assert block[1] == "fit_iters: 7"
    assert block[2] == "FUNCTION:"
    assert block[3] == search.best.candidate.to_string_for_plot()
    assert block[4] == "SIMPLIFIED:"
    assert block[6] == "residue = 0.25"
    assert block[7] == "-" * 42
    assert lines[-1] == "searching..."


def test_quiet_prints_nothing(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([FitResult(0.25, 7)]))
    stream = io.StringIO()
    search = FitSearch(linear_dataset, _quiet(max_params=100, max_generated=3), stream=stream)
    search.run()
    assert stream.getvalue() == ""


def test_periodic_stats(linear_dataset, monkeypatch):
    monkeypatch.setattr(search_engine, "fit", ScriptedFit([]))
    stream = io.StringIO()
    config = SearchConfig(seed=1, max_params=100, max_generated=6, stats_interval=2.0)
    search = FitSearch(linear_dataset, config, clock=FakeClock(step=1.0), stream=stream)
    search.run()
    assert stream.getvalue().count("candidates generated:") >= 3


def test_same_seed_same_candidates(linear_dataset):
    first = FitSearch(linear_dataset, _quiet(), rng=random.Random(5))
    second = FitSearch(linear_dataset, _quiet(), rng=random.Random(5))
    assert [first.next_candidate().to_string() for _ in range(10)] == [
        second.next_candidate().to_string() for _ in range(10)
    ]


def test_template_mode_fits_template(linear_dataset):
    config = _quiet(
        template="a*x + b",
        template_params=(("a", 1.0), ("b", 1.0)),
        max_generated=3,
        min_step=1e-6,
        fit_max_iters=10000,
    )
    result = FitSearch(linear_dataset, config).run()
    assert result.found
    assert result.best.residue < 1e-6
    assert result.best.candidate.params.names() == ["a", "b"]


def test_template_restarts_from_random_points(linear_dataset):
    config = _quiet(template="a*x + b", template_params=(("a", 1.0), ("b", 1.0)))
    search = FitSearch(linear_dataset, config)
    first = search.next_candidate()
    second = search.next_candidate()
    assert first.params.as_dict() == {"a": 1.0, "b": 1.0}
    assert second.params.as_dict() != {"a": 1.0, "b": 1.0}
    assert second.params.within(config.param_value_min, config.param_value_max)


def test_template_with_too_many_params():
    dataset = Dataset.from_pairs([(0, 0), (1, 1)])
    with pytest.raises(ValueError, match="max_params"):
        FitSearch(dataset, _quiet(template="a + b*x + c*x^2", max_params=2))


def test_template_parse_error():
    dataset = Dataset.from_pairs([(0, 0), (1, 1)])
    with pytest.raises(ParseError):
        FitSearch(dataset, _quiet(template="a*(x"))


def test_unknown_algorithm_rejected_at_construction(linear_dataset):
    with pytest.raises(ValueError):
        FitSearch(linear_dataset, _quiet(fit_algorithm="annealing"))


def test_real_search_finds_something(linear_dataset):
    config = _quiet(max_generated=60, fit_max_iters=200)
    result = FitSearch(linear_dataset, config).run()
    assert result.found
    assert result.best.candidate.params.within(config.param_value_min, config.param_value_max)
