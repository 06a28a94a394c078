import math
import random

import numpy as np
import pytest

from datafitter_pkg.config import SearchConfig
from datafitter_pkg.errors import ParseError
from datafitter_pkg.symbolic_regression.params import Candidate
from datafitter_pkg.symbolic_regression.parser import parse
from datafitter_pkg.symbolic_regression.parser import tokenize


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1 + 2 * 3", 7.0),
        ("(1 + 2) * 3", 9.0),
        ("2^3^2", 512.0),
        ("-2^2", -4.0),
        ("(-2)^2", 4.0),
        ("8/4/2", 1.0),
        ("10-4-3", 3.0),
        ("2*-3", -6.0),
        ("2.5e2 / 100", 2.5),
        (".5 + 2E1", 20.5),
    ],
)
def test_precedence_and_associativity(text, expected):
    assert parse(text).evaluate(0.0) == expected


def test_whitespace_is_insignificant():
    assert parse("a*x+b") == parse("  a * x\t+ b ")


def test_log_alias():
    assert parse("log(x)") == parse("ln(x)")
    assert parse("ln(x)").evaluate(math.e) == pytest.approx(1.0)


def test_parameters_with_digits():
    assert parse("b1 * x + k").parameter_names() == ["b1", "k"]


def test_literal_after_minus_is_negative_constant():
    node = parse("-2")
    assert node.is_constant(-2.0)


def test_tokenize_positions():
    tokens = tokenize("a + 12")
    assert [(t.kind, t.text, t.position) for t in tokens] == [
        ("name", "a", 0),
        ("op", "+", 2),
        ("number", "12", 4),
        ("end", "", 6),
    ]


@pytest.mark.parametrize(
    "text, position",
    [
        ("", 0),
        ("2 +", 3),
        ("2 $ 3", 2),
        ("foo(x)", 0),
        ("sin x", 4),
        ("(x + 1", 6),
        ("x y", 2),
        ("x + )", 4),
    ],
)
def test_malformed_input(text, position):
    with pytest.raises(ParseError) as info:
        parse(text)
    assert info.value.position == position
    assert info.value.fragment == text[position : position + 12]


def test_parse_error_is_value_error():
    with pytest.raises(ValueError, match="position 2"):
        parse("2 $ 3")


@pytest.mark.parametrize("seed", range(40))
def test_generated_trees_round_trip(seed):
    config = SearchConfig()
    candidate = Candidate.generate(random.Random(seed), config)
    reparsed = parse(candidate.to_string())
    xs = np.linspace(-4.0, 4.0, 33)
    np.testing.assert_array_equal(
        reparsed.evaluate(xs, candidate.params), candidate.evaluate(xs)
    )


@pytest.mark.parametrize("seed", range(20))
def test_plot_form_round_trip(seed):
    config = SearchConfig()
    candidate = Candidate.generate(random.Random(seed), config)
    reparsed = parse(candidate.to_string_for_plot())
    assert reparsed.parameter_names() == []
    xs = np.linspace(-4.0, 4.0, 33)
    np.testing.assert_array_equal(reparsed.evaluate(xs), candidate.evaluate(xs))
