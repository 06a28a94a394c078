import math

import pytest

from datafitter_pkg.symbolic_regression.parser import parse
from datafitter_pkg.symbolic_regression.residual import RESIDUAL_FUNCTIONS
from datafitter_pkg.symbolic_regression.residual import residual
from datafitter_pkg.utils.data_loading import Dataset


@pytest.fixture
def small_dataset():
    return Dataset.from_pairs([(0, 0), (1, 2)])


def test_registry_names():
    assert set(RESIDUAL_FUNCTIONS) == {"least_squares", "absolute"}


def test_perfect_fit_is_zero(linear_dataset):
    assert residual(parse("a*x"), {"a": 2.0}, linear_dataset) == 0.0


def test_least_squares(small_dataset):
    assert residual(parse("x"), {}, small_dataset, "least_squares") == 1.0
    assert residual(parse("x + 2"), {}, small_dataset) == 4.0 + 1.0


def test_absolute(small_dataset):
    assert residual(parse("x + 1"), {}, small_dataset, "absolute") == 1.0
    assert residual(parse("x - 1"), {}, small_dataset, "absolute") == 1.0 + 2.0


def test_nan_prediction_is_infinite(small_dataset):
    assert residual(parse("ln(x - 5)"), {}, small_dataset) == math.inf


def test_infinite_prediction_is_infinite(small_dataset):
    assert residual(parse("1/x"), {}, small_dataset) == math.inf


def test_overflowing_aggregate_is_infinite(small_dataset):
    assert residual(parse("1e200 * (x + 1)"), {}, small_dataset) == math.inf


def test_unknown_kind(small_dataset):
    with pytest.raises(ValueError, match="Unknown residual function"):
        residual(parse("x"), {}, small_dataset, "huber")
